"""
Mock Wallet Transaction Nonce Tracking.

Hands out the per-session transaction nonce. Every constructed transaction
reserves exactly one value; a reserved value is never handed out again, even
if the transaction it was reserved for later fails.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


class NonceCounter:
    """
    Monotonic nonce counter safe under concurrent reservation.

    Example:
        >>> counter = NonceCounter(start=0)
        >>> await counter.reserve()
        0
        >>> await counter.reserve()
        1
    """

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("Nonce must not be negative")
        self._next = start
        self._lock = asyncio.Lock()
        self._reserved = 0

    async def reserve(self) -> int:
        """Reserve and return the next nonce."""
        async with self._lock:
            nonce = self._next
            self._next += 1
            self._reserved += 1

        logger.debug(f"Reserved nonce {nonce}")
        return nonce

    @property
    def current(self) -> int:
        """The value the next reservation will return."""
        return self._next

    @property
    def stats(self) -> dict:
        """Return reservation statistics."""
        return {"next": self._next, "reserved": self._reserved}
