"""
Mock Wallet Identity Registry.

Resolves an issuer address to its public profile document so token
signatures can be checked against the issuer's published key. Two resolvers
are provided: an in-memory registry for offline tests and a resolver that
reads the on-chain registry contract and fetches the profile from IPFS.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import base58
from eth_utils import decode_hex, is_hex_address, to_checksum_address

from mockwallet.abi import encode_function_call
from mockwallet.chain import ChainProvider
from mockwallet.errors import EncodingError, RegistryError
from mockwallet.storage import ContentStorage

logger = logging.getLogger(__name__)

# Registration id under which profiles are stored: IPFS sha2-256 multihash
PROFILE_REGISTRATION_ID = "uPortProfileIPFS1220"
MULTIHASH_PREFIX = bytes.fromhex("1220")

REGISTRY_GET = "get(bytes32,address,address)"
REGISTRY_SET = "set(bytes32,address,bytes32)"


@dataclass
class ProfileDocument:
    """An identity's public profile as published to content storage."""

    address: str
    public_key: Optional[str] = None
    name: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, address: str, data: Mapping[str, Any]) -> "ProfileDocument":
        """
        Parse a profile document fetched for ``address``.

        Raises:
            RegistryError: If the document is not a JSON object.
        """
        if not isinstance(data, Mapping):
            raise RegistryError(f"Profile for {address} is not a JSON object")
        return cls(
            address=address,
            public_key=data.get("publicKey"),
            name=data.get("name"),
            raw=dict(data),
        )

    def to_json(self) -> Dict[str, Any]:
        document = {"@context": "http://schema.org", "@type": "Person", **self.raw}
        if self.public_key:
            document["publicKey"] = self.public_key
        if self.name:
            document["name"] = self.name
        return document


def registration_id() -> bytes:
    """The profile registration identifier as a right-padded bytes32."""
    return PROFILE_REGISTRATION_ID.encode("ascii").ljust(32, b"\x00")


def ipfs_hash_to_bytes32(ipfs_hash: str) -> bytes:
    """Strip the sha2-256 multihash prefix from a base58 IPFS hash."""
    if not isinstance(ipfs_hash, str):
        raise EncodingError(f"IPFS hash must be a string, got {ipfs_hash!r}")
    try:
        raw = base58.b58decode(ipfs_hash)
    except (ValueError, TypeError) as e:
        raise EncodingError(f"Not a base58 IPFS hash: {ipfs_hash!r}: {e}")
    if len(raw) != 34 or raw[:2] != MULTIHASH_PREFIX:
        raise EncodingError(f"Not a sha2-256 IPFS hash: {ipfs_hash}")
    return raw[2:]


def bytes32_to_ipfs_hash(value: bytes) -> str:
    """Rebuild the base58 IPFS hash stored in the registry."""
    return base58.b58encode(MULTIHASH_PREFIX + value).decode("ascii")


def normalize_address(address: str) -> str:
    """Checksum an address, raising RegistryError for anything else."""
    if not isinstance(address, str) or not is_hex_address(address):
        raise RegistryError(f"Not a resolvable address: {address!r}")
    return to_checksum_address(address)


class RegistryResolver(ABC):
    """Abstract interface for issuer profile resolution."""

    @abstractmethod
    async def resolve(self, address: str) -> ProfileDocument:
        """
        Resolve an address to its profile.

        Raises:
            RegistryError: If no profile is registered for the address.
        """
        pass


class StaticRegistry(RegistryResolver):
    """
    Pre-loaded registry of profiles, for offline verification.

    Example:
        >>> registry = StaticRegistry()
        >>> registry.register_key(issuer.address, issuer.public_key, name='Issuer')
        >>> profile = await registry.resolve(issuer.address)
    """

    def __init__(self, profiles: Optional[List[ProfileDocument]] = None):
        self._profiles: Dict[str, ProfileDocument] = {}
        self._lock = threading.RLock()
        for profile in profiles or []:
            self.register(profile)

    def register(self, profile: ProfileDocument) -> None:
        """Register a profile."""
        with self._lock:
            self._profiles[normalize_address(profile.address)] = profile
            logger.debug(f"Registered profile: {profile.address}")

    def register_key(self, address: str, public_key: str, name: Optional[str] = None) -> None:
        """Register a public key for an address."""
        self.register(ProfileDocument(address=address, public_key=public_key, name=name))

    def unregister(self, address: str) -> bool:
        """Remove a profile from the registry."""
        with self._lock:
            return self._profiles.pop(normalize_address(address), None) is not None

    async def resolve(self, address: str) -> ProfileDocument:
        with self._lock:
            profile = self._profiles.get(normalize_address(address))
        if profile is None:
            raise RegistryError(f"No profile registered for {address}")
        return profile

    @property
    def count(self) -> int:
        """Number of registered profiles."""
        return len(self._profiles)


class ChainRegistryResolver(RegistryResolver):
    """
    Resolves profiles through the registry contract and content storage.

    The registry maps (registration id, issuer, subject) to a bytes32 IPFS
    digest; the profile document is then fetched from storage.
    """

    def __init__(self, provider: ChainProvider, registry_address: str, storage: ContentStorage):
        self._provider = provider
        self._registry_address = to_checksum_address(registry_address)
        self._storage = storage

    async def resolve(self, address: str) -> ProfileDocument:
        subject = normalize_address(address)
        data = encode_function_call(REGISTRY_GET, args=[registration_id(), subject, subject])

        result = await self._provider.call(self._registry_address, data)
        value = decode_hex(result or "0x")[:32]
        if len(value) != 32 or not any(value):
            raise RegistryError(f"No profile registered for {address}")

        ipfs_hash = bytes32_to_ipfs_hash(value)
        logger.debug(f"Resolved {subject} to profile {ipfs_hash}")
        document = await self._storage.fetch(ipfs_hash)
        return ProfileDocument.from_json(subject, document)
