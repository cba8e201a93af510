"""
Response delivery strategies.

The wallet always returns its response to the caller; an HTTP delivery
additionally POSTs it to the relying party's callback URL first.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from mockwallet.config import HTTP_TIMEOUT
from mockwallet.errors import NetworkUnavailableError

logger = logging.getLogger(__name__)


class ResponseDelivery(ABC):
    """Abstract interface for response delivery."""

    @abstractmethod
    async def deliver(self, response: Any, url: Optional[str]) -> Any:
        """Deliver a response to ``url``. Returns the response."""
        pass


class ReturnDelivery(ResponseDelivery):
    """Hands the response back to the caller only."""

    async def deliver(self, response: Any, url: Optional[str]) -> Any:
        return response


class HttpCallbackDelivery(ResponseDelivery):
    """
    POSTs the response as JSON to the callback URL, then returns it.

    Requests without a callback URL are returned without a POST.
    """

    def __init__(self, http_timeout: float = HTTP_TIMEOUT, client: Optional[httpx.AsyncClient] = None):
        self._http_timeout = http_timeout
        self._http_client = client
        self._stats = {"delivered": 0, "skipped": 0}

    async def deliver(self, response: Any, url: Optional[str]) -> Any:
        if not url:
            self._stats["skipped"] += 1
            return response

        client = self._http_client or httpx.AsyncClient(timeout=self._http_timeout)
        try:
            reply = await client.post(url, json=response)
            reply.raise_for_status()
        except httpx.HTTPError as e:
            raise NetworkUnavailableError(f"Callback to {url} failed: {e}", stage="deliver") from e
        finally:
            if self._http_client is None:
                await client.aclose()

        self._stats["delivered"] += 1
        logger.debug(f"Delivered response to {url}")
        return response

    @property
    def stats(self) -> dict:
        return self._stats.copy()
