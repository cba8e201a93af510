"""
Unit tests for the profile cache.
"""

import pytest

from mockwallet.cache import ProfileCache
from mockwallet.errors import RegistryError
from mockwallet.registry import ProfileDocument


@pytest.fixture
def profile(issuer) -> ProfileDocument:
    return ProfileDocument(address=issuer.address, public_key=issuer.public_key)


class TestProfileCache:
    """Lookup and expiry."""

    def test_put_and_get(self, profile):
        cache = ProfileCache(ttl=60)
        cache.put(profile.address, profile)

        assert cache.get(profile.address) is profile
        assert len(cache) == 1

    def test_miss(self, issuer):
        assert ProfileCache().get(issuer.address) is None

    def test_address_spelling_shares_entry(self, profile):
        """Lowercase and checksummed issuers hit the same entry."""
        cache = ProfileCache(ttl=60)
        cache.put(profile.address.lower(), profile)

        assert cache.get(profile.address) is profile
        assert cache.get("0x" + profile.address[2:].upper()) is profile
        assert len(cache) == 1

    def test_expired_entry_dropped(self, profile):
        cache = ProfileCache(ttl=-1)
        cache.put(profile.address, profile)

        assert cache.get(profile.address) is None
        assert len(cache) == 0

    def test_non_address_issuer(self):
        with pytest.raises(RegistryError):
            ProfileCache().get("did:uport:2nQtiQG6Cgm1GYTBaaKAgr76uY7iSexUkqX")
