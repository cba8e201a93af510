"""
Mock Wallet Key Management.

Generates and loads secp256k1 key pairs. The public key and the address are
pure functions of the private key, so a KeyPair can always be rebuilt from
its private half.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from eth_account import Account
from jwcrypto import jwk

from mockwallet.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyPair:
    """A secp256k1 key pair and its derived address."""

    private_key: str  # 32-byte hex, no 0x prefix
    public_key: str  # uncompressed SEC1 point, hex with 0x04 prefix
    address: str  # EIP-55 checksummed

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    def to_jwk(self, private: bool = True) -> jwk.JWK:
        """Export as a jwcrypto key for ES256K signing or verification."""
        key = _private_key_object(self.private_key)
        return jwk.JWK.from_pyca(key if private else key.public_key())


@dataclass(frozen=True)
class Identity:
    """
    The wallet's identity: a device key, a recovery key and, once created on
    chain, the identity contract address.

    Identities are never mutated; regeneration and on-chain creation build a
    new Identity.
    """

    device: KeyPair
    recovery: KeyPair
    on_chain_id: Optional[str] = None

    @property
    def address(self) -> str:
        """The address relying parties should see for this identity."""
        return self.on_chain_id or self.device.address

    def with_on_chain_id(self, on_chain_id: str) -> "Identity":
        return Identity(device=self.device, recovery=self.recovery, on_chain_id=on_chain_id)

    def to_dict(self) -> Dict:
        return {
            "device": self.device.to_dict(),
            "recovery": self.recovery.to_dict(),
            "on_chain_id": self.on_chain_id,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Identity":
        return cls(
            device=keypair_from_private_key(data["device"]["private_key"]),
            recovery=keypair_from_private_key(data["recovery"]["private_key"]),
            on_chain_id=data.get("on_chain_id"),
        )


def _private_key_object(private_key: str) -> ec.EllipticCurvePrivateKey:
    try:
        secret = int(private_key[2:] if private_key.startswith("0x") else private_key, 16)
        return ec.derive_private_key(secret, ec.SECP256K1())
    except ValueError as e:
        raise ConfigurationError(f"Invalid secp256k1 private key: {e}")


def public_key_from_private_key(private_key: str) -> str:
    """Derive the uncompressed public key (hex, 0x04 prefixed)."""
    point = _private_key_object(private_key).public_key().public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )
    return "0x" + point.hex()


def keypair_from_private_key(private_key: str) -> KeyPair:
    """Rebuild a KeyPair from its private key."""
    private_key = private_key[2:] if private_key.startswith("0x") else private_key
    public_key = public_key_from_private_key(private_key)
    try:
        address = Account.from_key(bytes.fromhex(private_key)).address
    except ValueError as e:
        raise ConfigurationError(f"Invalid secp256k1 private key: {e}")
    return KeyPair(private_key=private_key.lower(), public_key=public_key, address=address)


def generate_keypair() -> KeyPair:
    """
    Generate a fresh secp256k1 key pair from the OS random source.

    Returns:
        KeyPair with private key, uncompressed public key and address.
    """
    account = Account.create()
    keypair = keypair_from_private_key(bytes(account.key).hex())
    logger.debug(f"Generated key pair for {keypair.address}")
    return keypair


def generate_identity() -> Identity:
    """Generate a fresh device and recovery key pair."""
    return Identity(device=generate_keypair(), recovery=generate_keypair())
