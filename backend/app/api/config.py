"""Configuration endpoints for exposing runtime options to the frontend."""

from __future__ import annotations

import json
from urllib.parse import urlsplit, urlunsplit

from fastapi import APIRouter, Request, Response

from app.config import Settings, get_settings

router = APIRouter(prefix="/config", tags=["config"])
script_router = APIRouter(tags=["config"])

LIVE_WS_PATH = "/ws/live"


def _normalize_ws_url(ws_source: str | None, prefer_secure: bool) -> str | None:
    """Normalize HTTP/WS URLs and enforce secure scheme when required."""

    if not ws_source:
        return None

    normalized = ws_source
    if normalized.startswith("http://"):
        normalized = "ws://" + normalized.removeprefix("http://")
    elif normalized.startswith("https://"):
        normalized = "wss://" + normalized.removeprefix("https://")
    elif normalized.startswith("//"):
        normalized = ("wss" if prefer_secure else "ws") + ":" + normalized

    if prefer_secure and normalized.startswith("ws://"):
        normalized = "wss://" + normalized.removeprefix("ws://")

    return normalized


def _incoming_host(request: Request) -> str | None:
    forwarded_host = request.headers.get("x-forwarded-host") or request.headers.get("host")
    if not forwarded_host:
        return None
    return forwarded_host.split(",")[0].strip() or None


def _apply_forwarded_host(ws_url: str | None, request: Request, prefer_secure: bool) -> str | None:
    """Rewrite loopback hosts to the host the request arrived on.

    A configured ``ws://localhost:8000`` is useless to a browser on another
    machine, so such hosts are replaced with the externally visible host
    (honouring X-Forwarded-Host) while an explicit port is kept.
    """

    if not ws_url:
        return None

    incoming_host = _incoming_host(request)
    if not incoming_host:
        return ws_url

    parsed = urlsplit(ws_url)
    if parsed.scheme not in {"ws", "wss"}:
        return ws_url

    if parsed.hostname not in {None, "", "localhost", "127.0.0.1", "0.0.0.0"}:
        return ws_url

    target_hostname, _, target_port = incoming_host.partition(":")
    port = parsed.port or (int(target_port) if target_port else None)
    scheme = "wss" if prefer_secure or parsed.scheme == "wss" else "ws"
    netloc = f"{target_hostname}:{port}" if port else target_hostname
    path = parsed.path or LIVE_WS_PATH

    return urlunsplit((scheme, netloc, path, parsed.query, parsed.fragment))


def _is_secure_request(request: Request) -> bool:
    forwarded_proto = request.headers.get("x-forwarded-proto", "").split(",")[0].strip()
    if forwarded_proto:
        return forwarded_proto.lower() == "https"

    return request.url.scheme == "https"


def _live_ws_url(request: Request, settings: Settings) -> str | None:
    prefer_secure = _is_secure_request(request)
    if settings.live_ws_url:
        ws_url = _normalize_ws_url(settings.live_ws_url, prefer_secure)
        return _apply_forwarded_host(ws_url, request, prefer_secure)

    host = _incoming_host(request)
    if not host:
        return None
    return f"{'wss' if prefer_secure else 'ws'}://{host}{LIVE_WS_PATH}"


def gateway_config(settings: Settings) -> dict[str, object]:
    return {
        "whipUrl": settings.whip_ingest_url,
        "whepUrl": settings.whep_gateway_base,
        "whipAuthKey": settings.whip_auth_key,
        "whepAuthKey": settings.whep_key,
        "countdownSeconds": settings.countdown_default_seconds,
    }


@router.get("")
def read_live_config(request: Request) -> dict[str, object]:
    """Expose media gateway endpoints and live session defaults."""

    settings = get_settings()
    return {**gateway_config(settings), "wsUrl": _live_ws_url(request, settings)}


@script_router.get("/config.js", response_class=Response)
def read_config_script() -> Response:
    """Render the gateway configuration as browser globals."""

    config = gateway_config(get_settings())
    lines = [
        f"window.WHIP_GATEWAY_URL = {json.dumps(config['whipUrl'])};",
        f"window.WHIP_AUTH_KEY = {json.dumps(config['whipAuthKey'])};",
        f"window.WHEP_GATEWAY_URL = {json.dumps(config['whepUrl'])};",
        f"window.WHEP_AUTH_KEY = {json.dumps(config['whepAuthKey'])};",
        f"window.COUNTDOWN_SECONDS = {json.dumps(config['countdownSeconds'])};",
    ]
    return Response(content="\n".join(lines), media_type="application/javascript")
