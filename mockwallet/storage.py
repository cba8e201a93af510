"""
Mock Wallet Content Storage - IPFS publication of profile documents.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from mockwallet.config import HTTP_TIMEOUT, IPFS_API_URL, IPFS_GATEWAY_URL
from mockwallet.errors import NetworkUnavailableError

logger = logging.getLogger(__name__)


class ContentStorage(ABC):
    """Abstract interface for content-addressed storage."""

    @abstractmethod
    async def publish(self, document: Dict[str, Any]) -> str:
        """Store a JSON document. Returns its content hash."""
        pass

    @abstractmethod
    async def fetch(self, content_hash: str) -> Dict[str, Any]:
        """Fetch a JSON document by content hash."""
        pass


class IpfsStorage(ContentStorage):
    """
    IPFS storage over the HTTP API (publish) and a gateway (fetch).

    Example:
        >>> storage = IpfsStorage()
        >>> ipfs_hash = await storage.publish({'name': 'John Ether'})
    """

    def __init__(
        self,
        api_url: str = IPFS_API_URL,
        gateway_url: str = IPFS_GATEWAY_URL,
        http_timeout: float = HTTP_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.gateway_url = gateway_url if gateway_url.endswith("/") else gateway_url + "/"
        self._http_timeout = http_timeout
        self._http_client = client

    async def publish(self, document: Dict[str, Any]) -> str:
        content = json.dumps(document).encode("utf-8")
        client = self._http_client or httpx.AsyncClient(timeout=self._http_timeout)

        try:
            response = await client.post(
                f"{self.api_url}/api/v0/add", files={"file": ("profile.json", content)}
            )
            response.raise_for_status()
            content_hash = response.json()["Hash"]
        except (httpx.HTTPError, ValueError, KeyError) as e:
            raise NetworkUnavailableError(f"IPFS publish failed: {e}", stage="storage") from e
        finally:
            if self._http_client is None:
                await client.aclose()

        logger.info(f"Published profile to IPFS: {content_hash}")
        return content_hash

    async def fetch(self, content_hash: str) -> Dict[str, Any]:
        client = self._http_client or httpx.AsyncClient(timeout=self._http_timeout)

        try:
            response = await client.get(f"{self.gateway_url}{content_hash}")
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise NetworkUnavailableError(f"IPFS fetch failed: {e}", stage="storage") from e
        finally:
            if self._http_client is None:
                await client.aclose()
