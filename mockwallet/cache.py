"""
Mock Wallet Profile Cache.

Resolved issuer profiles, keyed by checksummed issuer address. A profile is
served from here until its TTL runs out, after which the verifier goes back
to the registry.
"""

import time
import logging
from typing import Dict, Optional, Tuple

from mockwallet.config import PROFILE_CACHE_TTL
from mockwallet.registry import ProfileDocument, normalize_address

logger = logging.getLogger(__name__)


class ProfileCache:
    """
    TTL cache of issuer profiles.

    Lookups accept any spelling of an address; ``0xabc...`` and its
    checksummed form share one entry.

    Example:
        >>> cache = ProfileCache(ttl=300)
        >>> cache.put(issuer, profile)
        >>> cache.get(issuer.lower()) is profile
        True
    """

    def __init__(self, ttl: float = PROFILE_CACHE_TTL):
        self._ttl = ttl
        self._profiles: Dict[str, Tuple[float, ProfileDocument]] = {}

    def get(self, issuer: str) -> Optional[ProfileDocument]:
        """The cached profile for ``issuer``, or None if absent or stale."""
        key = normalize_address(issuer)
        entry = self._profiles.get(key)
        if entry is None:
            return None

        expires_at, profile = entry
        if time.monotonic() >= expires_at:
            del self._profiles[key]
            logger.debug(f"Cached profile for {key} expired")
            return None
        return profile

    def put(self, issuer: str, profile: ProfileDocument) -> None:
        """Cache the profile resolved for ``issuer``."""
        key = normalize_address(issuer)
        self._profiles[key] = (time.monotonic() + self._ttl, profile)

    def __len__(self) -> int:
        return len(self._profiles)
