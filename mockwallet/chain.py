"""
Mock Wallet Chain Provider - JSON-RPC access to an Ethereum node.

Used to submit signed raw transactions, read receipts and make read-only
contract calls (registry lookups). The engine never retries a failed call;
retry policy is left to the caller.
"""

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from mockwallet.config import HTTP_TIMEOUT
from mockwallet.errors import NetworkUnavailableError

logger = logging.getLogger(__name__)


class ChainProvider(ABC):
    """Abstract interface for chain submission providers."""

    @abstractmethod
    async def send_raw_transaction(self, raw_transaction: str) -> str:
        """Submit a signed, serialized transaction. Returns its hash."""
        pass

    @abstractmethod
    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Return the receipt for a transaction, or None while pending."""
        pass

    @abstractmethod
    async def call(self, to: str, data: str) -> str:
        """Execute a read-only contract call. Returns hex encoded return data."""
        pass

    @abstractmethod
    async def get_transaction_count(self, address: str) -> int:
        """Number of transactions sent from ``address``, counting pending ones."""
        pass

    async def wait_for_receipt(
        self, tx_hash: str, poll_interval: float = 1.0, attempts: int = 60
    ) -> Dict[str, Any]:
        """
        Poll until a transaction is mined.

        Raises:
            NetworkUnavailableError: If the transaction is not mined in time or reverted.
        """
        for _ in range(attempts):
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt is not None:
                if receipt.get("status") in ("0x0", 0):
                    raise NetworkUnavailableError(f"Transaction {tx_hash} reverted", stage="chain")
                return receipt
            await asyncio.sleep(poll_interval)

        raise NetworkUnavailableError(
            f"Transaction {tx_hash} not mined after {attempts} attempts", stage="chain"
        )


class JsonRpcProvider(ChainProvider):
    """
    JSON-RPC 2.0 provider over HTTP.

    Example:
        >>> async with JsonRpcProvider('https://rinkeby.infura.io') as provider:
        ...     tx_hash = await provider.send_raw_transaction(raw)
        ...     receipt = await provider.wait_for_receipt(tx_hash)
    """

    def __init__(
        self,
        rpc_url: str,
        http_timeout: float = HTTP_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the provider.

        Args:
            rpc_url: Node JSON-RPC endpoint.
            http_timeout: Timeout for each request.
            client: Optional pre-built client (e.g. with a mock transport).
        """
        self.rpc_url = rpc_url
        self._http_timeout = http_timeout
        self._http_client = client
        self._owns_client = False
        self._ids = itertools.count(1)

    async def __aenter__(self):
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._http_timeout)
            self._owns_client = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
            self._owns_client = False

    async def request(self, method: str, params: List[Any]) -> Any:
        """Send one JSON-RPC request and return its result."""
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        client = self._http_client or httpx.AsyncClient(timeout=self._http_timeout)

        try:
            response = await client.post(self.rpc_url, json=body)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise NetworkUnavailableError(f"{method} failed: {e}", stage="chain") from e
        finally:
            if self._http_client is None:
                await client.aclose()

        if data.get("error"):
            error = data["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise NetworkUnavailableError(f"{method} failed: {message}", stage="chain")

        logger.debug(f"{method} -> {data.get('result')!r}")
        return data.get("result")

    async def send_raw_transaction(self, raw_transaction: str) -> str:
        return await self.request("eth_sendRawTransaction", [raw_transaction])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.request("eth_getTransactionReceipt", [tx_hash])

    async def call(self, to: str, data: str) -> str:
        return await self.request("eth_call", [{"to": to, "data": data}, "latest"])

    async def get_transaction_count(self, address: str) -> int:
        result = await self.request("eth_getTransactionCount", [address, "pending"])
        try:
            return int(result, 16)
        except (TypeError, ValueError):
            raise NetworkUnavailableError(
                f"eth_getTransactionCount returned {result!r}", stage="chain"
            )
