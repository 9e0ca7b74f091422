"""Command line participant/editor client for a Join Live session."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import sys
from typing import Any

import httpx

from joinlive.client import EditorClient, LiveSessionClient, ParticipantClient
from joinlive.media import GatewayFeedDirectory, channel_id_from_resource_url


logger = logging.getLogger(__name__)


class StaticIngest:
    """Ingest stand-in for a feed that is already being published elsewhere."""

    def __init__(self, resource: str) -> None:
        self.resource = resource

    async def start(self) -> None:
        logger.info("Using existing ingest resource %s", self.resource)

    async def stop(self) -> None:
        return None

    async def resolve_channel_id(self) -> str | None:
        if "/" in self.resource:
            return channel_id_from_resource_url(self.resource)
        return self.resource


def _print_event(event: dict[str, Any]) -> None:
    print(json.dumps(event, sort_keys=True), flush=True)


async def _wait_connected(client: LiveSessionClient, timeout: float) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not client.connected:
        if loop.time() > deadline:
            return False
        await asyncio.sleep(0.05)
    return True


async def _hold(duration: float) -> None:
    if duration > 0:
        await asyncio.sleep(duration)
    else:
        await asyncio.Event().wait()


async def run_participant(args: argparse.Namespace) -> int:
    client = ParticipantClient(args.url, reconnect_delay=args.reconnect_delay, on_event=_print_event)
    runner = asyncio.create_task(client.run())
    try:
        if not await _wait_connected(client, args.connect_timeout):
            logger.error("could not connect to %s", args.url)
            return 1
        channel_id = await client.go_live(StaticIngest(args.feed))
        if channel_id is None:
            logger.error("could not derive a channel id from %s", args.feed)
            return 1
        if args.message:
            await client.submit_message(args.name, args.message)
        await _hold(args.duration)
        await client.stop_live()
    finally:
        await client.stop()
        runner.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await runner
    return 0


async def run_editor(args: argparse.Namespace) -> int:
    async def on_event(event: dict[str, Any]) -> None:
        _print_event(event)
        if args.approve_all and event.get("type") == "newMessageInQueue":
            await client.approve(event["message"]["id"])

    client = EditorClient(
        args.url,
        countdown_seconds=args.countdown_seconds,
        reconnect_delay=args.reconnect_delay,
        on_event=on_event,
    )
    runner = asyncio.create_task(client.run())
    try:
        if not await _wait_connected(client, args.connect_timeout):
            logger.error("could not connect to %s", args.url)
            return 1
        if args.feeds_url:
            directory = GatewayFeedDirectory(args.feeds_url, args.feeds_key)
            try:
                for feed_id in await client.refresh_feeds(directory):
                    print(feed_id, flush=True)
            except httpx.HTTPError as exc:
                logger.error("could not list feeds from %s: %s", directory.channel_url, exc)
        if args.countdown:
            await client.toggle_countdown()
        if len(args.take) == 1:
            await client.take(args.take[0])
        elif args.take:
            await client.take_multiple(args.take)
        if args.pair:
            await client.pair(*args.pair)
        if args.message:
            await client.send_editor_message(args.message)
        await _hold(args.duration)
    finally:
        await client.stop()
        runner.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await runner
    return 0


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--reconnect-delay", type=float, default=3.0, help="Seconds between reconnect attempts")
    parser.add_argument("--connect-timeout", type=float, default=10.0, help="Give up if not connected by then")
    parser.add_argument(
        "--duration",
        type=float,
        default=0.0,
        help="Seconds to stay connected (0 keeps running until interrupted)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log verbosity level",
    )
    subparsers = parser.add_subparsers(dest="role", required=True)

    participant = subparsers.add_parser("participant", help="Join as a participant feed")
    participant.add_argument("url", help="Websocket URL, e.g. ws://localhost:8000/ws/live")
    participant.add_argument("feed", help="Channel id or ingest resource URL of the published feed")
    participant.add_argument("--name", default="Participant", help="Name attached to --message")
    participant.add_argument("--message", help="Submit a message for moderation after joining")

    editor = subparsers.add_parser("editor", help="Connect as the editor")
    editor.add_argument("url", help="Websocket URL, e.g. ws://localhost:8000/ws/live")
    editor.add_argument("--take", nargs="*", default=[], metavar="CHANNEL", help="Feed(s) to put on air")
    editor.add_argument("--countdown", action="store_true", help="Take feeds through a countdown")
    editor.add_argument("--countdown-seconds", type=int, default=5)
    editor.add_argument("--pair", nargs=2, metavar=("A", "B"), help="Pair two live participants")
    editor.add_argument("--message", help="Broadcast a moderator message")
    editor.add_argument("--approve-all", action="store_true", help="Approve every submitted message")
    editor.add_argument("--feeds-url", help="Playback gateway base URL whose published feeds are listed")
    editor.add_argument("--feeds-key", help="Bearer key for the playback gateway")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    runner = run_participant if args.role == "participant" else run_editor
    try:
        return asyncio.run(runner(args))
    except KeyboardInterrupt:  # pragma: no cover - manual interruption
        logger.warning("interrupted by user")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
