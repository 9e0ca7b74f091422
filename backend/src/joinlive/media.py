"""Interfaces of the media collaborators used by live clients.

The coordination protocol never touches audio or video. Participants publish
their camera through an ingest client and editors watch feeds through a
playback client; both are treated as capability objects. The feeds an editor
can choose from are listed by the playback gateway.
"""

from __future__ import annotations

import re
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlsplit

import httpx


_LAST_SEGMENT = re.compile(r"/([^/]+)$")
_FEED_ID_KEYS = ("channelId", "id", "streamId", "channel")


@runtime_checkable
class MediaIngest(Protocol):
    """Publishes the local camera/microphone and names the resulting feed."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def resolve_channel_id(self) -> str | None: ...


@runtime_checkable
class MediaPlayback(Protocol):
    """Renders one feed identified by its channel id."""

    async def start(self, channel_id: str) -> None: ...

    async def stop(self) -> None: ...

    async def resolve_channel_id(self) -> str | None: ...


def channel_id_from_resource_url(resource_url: str | None) -> str | None:
    """Return the feed id encoded as the last path segment of an ingest resource URL."""

    if not resource_url:
        return None
    match = _LAST_SEGMENT.search(urlsplit(resource_url).path)
    return match.group(1) if match else None


@runtime_checkable
class FeedDirectory(Protocol):
    """Lists the feeds currently published to the media gateway."""

    async def list_feeds(self) -> list[str]: ...


def feed_ids_from_listing(data: Any) -> list[str]:
    """Extract feed ids from a gateway channel listing.

    The gateway answers with a bare list, or wraps it in ``streams`` or
    ``channels``. Entries are ids or objects naming the id under one of
    ``channelId``, ``id``, ``streamId`` or ``channel``.
    """

    if isinstance(data, dict):
        streams = data.get("streams")
        data = streams if isinstance(streams, list) else data.get("channels")
    if not isinstance(data, list):
        return []

    feed_ids: list[str] = []
    for entry in data:
        if isinstance(entry, dict):
            entry = next((entry[key] for key in _FEED_ID_KEYS if entry.get(key)), None)
        if isinstance(entry, bool) or not isinstance(entry, (str, int)):
            continue
        feed_id = str(entry).strip()
        if feed_id and feed_id not in feed_ids:
            feed_ids.append(feed_id)
    return feed_ids


class GatewayFeedDirectory:
    """Reads the channel listing of the playback gateway."""

    def __init__(
        self,
        base_url: str,
        auth_key: str | None = None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.channel_url = base_url.rstrip("/") + "/whep/channel"
        self.auth_key = auth_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Any) -> "GatewayFeedDirectory":
        return cls(settings.whep_gateway_base, settings.whep_key)

    def _get_headers(self) -> dict[str, str]:
        if not self.auth_key:
            return {}
        return {"Authorization": f"Bearer {self.auth_key}"}

    async def list_feeds(self) -> list[str]:
        """
        Fetch the ids of the feeds currently published.

        Raises:
            httpx.HTTPError: If request fails
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(self.channel_url, headers=self._get_headers())
            response.raise_for_status()
            return feed_ids_from_listing(response.json())
