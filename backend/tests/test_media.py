from __future__ import annotations

import httpx
import pytest

from joinlive.media import (
    FeedDirectory,
    GatewayFeedDirectory,
    channel_id_from_resource_url,
    feed_ids_from_listing,
)


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://gw.example/api/v2/whip/sfu-broadcaster/5d1c9f", "5d1c9f"),
        ("https://gw.example/api/v2/whip/sfu-broadcaster/5d1c9f?token=abc", "5d1c9f"),
        ("/whip/resource/feed-1", "feed-1"),
        ("https://gw.example/", None),
        ("", None),
        (None, None),
    ],
)
def test_channel_id_from_resource_url(url, expected) -> None:
    assert channel_id_from_resource_url(url) == expected


@pytest.mark.parametrize(
    ("data", "expected"),
    [
        (["cam-1", "cam-2"], ["cam-1", "cam-2"]),
        ({"streams": [{"channelId": "cam-1"}, {"id": "cam-2"}]}, ["cam-1", "cam-2"]),
        ({"channels": [{"streamId": "cam-3"}, {"channel": 4}, {"name": "no id"}]}, ["cam-3", "4"]),
        ({"streams": None, "channels": ["cam-5", "cam-5", " "]}, ["cam-5"]),
        ({"unexpected": []}, []),
        ("cam-1", []),
    ],
)
def test_feed_ids_from_listing(data, expected) -> None:
    assert feed_ids_from_listing(data) == expected


@pytest.mark.anyio
async def test_gateway_directory_lists_feeds_with_bearer_key() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"streams": [{"channelId": "cam-1"}, {"channelId": "cam-2"}]})

    directory = GatewayFeedDirectory(
        "https://gw.example/", "secret", transport=httpx.MockTransport(handler)
    )

    assert isinstance(directory, FeedDirectory)
    assert await directory.list_feeds() == ["cam-1", "cam-2"]
    assert str(requests[0].url) == "https://gw.example/whep/channel"
    assert requests[0].method == "GET"
    assert requests[0].headers["Authorization"] == "Bearer secret"


@pytest.mark.anyio
async def test_gateway_directory_without_key_and_failing_gateway() -> None:
    seen_headers: list[httpx.Headers] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_headers.append(request.headers)
        return httpx.Response(503, json={"error": "unavailable"})

    directory = GatewayFeedDirectory("https://gw.example", transport=httpx.MockTransport(handler))

    with pytest.raises(httpx.HTTPStatusError):
        await directory.list_feeds()
    assert "authorization" not in seen_headers[0]
