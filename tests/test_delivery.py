"""
Unit tests for response delivery and content storage over HTTP.
"""

import json

import httpx
import pytest

from mockwallet.delivery import HttpCallbackDelivery, ReturnDelivery
from mockwallet.errors import NetworkUnavailableError
from mockwallet.storage import IpfsStorage

IPFS_HASH = "QmWATWQ7fVPP2EFGu71UkfnqhYXDYH566qy47CnJDgvs8u"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestReturnDelivery:

    @pytest.mark.asyncio
    async def test_returns_response(self):
        assert await ReturnDelivery().deliver("token", "https://rp/cb") == "token"


class TestHttpCallbackDelivery:
    """Callback POSTs."""

    @pytest.mark.asyncio
    async def test_posts_json(self):
        posted = []

        def handler(request: httpx.Request) -> httpx.Response:
            posted.append((str(request.url), json.loads(request.content)))
            return httpx.Response(200)

        delivery = HttpCallbackDelivery(client=_client(handler))
        response = await delivery.deliver({"access_token": "T"}, "https://rp.example/cb")

        assert response == {"access_token": "T"}
        assert posted == [("https://rp.example/cb", {"access_token": "T"})]
        assert delivery.stats == {"delivered": 1, "skipped": 0}

    @pytest.mark.asyncio
    async def test_no_url_skips_post(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("unexpected request")

        delivery = HttpCallbackDelivery(client=_client(handler))

        assert await delivery.deliver("token", None) == "token"
        assert delivery.stats["skipped"] == 1

    @pytest.mark.asyncio
    async def test_failed_callback(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        with pytest.raises(NetworkUnavailableError) as exc_info:
            await HttpCallbackDelivery(client=_client(handler)).deliver("token", "https://rp/cb")
        assert exc_info.value.stage == "deliver"


class TestIpfsStorage:
    """Profile publication and retrieval."""

    @pytest.mark.asyncio
    async def test_publish(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v0/add"
            assert b"John Ether" in request.content
            return httpx.Response(200, json={"Name": "profile.json", "Hash": IPFS_HASH})

        storage = IpfsStorage(api_url="http://ipfs.local:5001/", client=_client(handler))
        assert await storage.publish({"name": "John Ether"}) == IPFS_HASH

    @pytest.mark.asyncio
    async def test_fetch(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == f"http://gateway.local/ipfs/{IPFS_HASH}"
            return httpx.Response(200, json={"name": "John Ether"})

        storage = IpfsStorage(gateway_url="http://gateway.local/ipfs", client=_client(handler))
        assert await storage.fetch(IPFS_HASH) == {"name": "John Ether"}

    @pytest.mark.asyncio
    async def test_publish_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"Message": "no Hash here"})

        with pytest.raises(NetworkUnavailableError) as exc_info:
            await IpfsStorage(client=_client(handler)).publish({})
        assert exc_info.value.stage == "storage"
