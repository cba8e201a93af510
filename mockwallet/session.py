"""
Mock Wallet Session.

All mutable wallet state (identity, credential store, profile info, nonce)
lives in one Session that handlers receive explicitly. Delivery and
transaction signing are strategies picked when the session is built; the
transaction signer is swapped exactly once, when an on-chain identity is
installed.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from mockwallet.chain import ChainProvider
from mockwallet.config import NetworkConfig
from mockwallet.credentials import CredentialStore
from mockwallet.delivery import ResponseDelivery, ReturnDelivery
from mockwallet.keys import Identity, generate_identity
from mockwallet.nonce import NonceCounter
from mockwallet.signer import Signer
from mockwallet.storage import ContentStorage
from mockwallet.transactions import (
    DeviceKeySigner,
    IdentityProxySigner,
    TransactionBuilder,
    TransactionSigner,
)
from mockwallet.verifier import TokenVerifier

logger = logging.getLogger(__name__)


class Session:
    """
    One wallet session and its collaborators.

    Args:
        identity: Device/recovery keys; generated when omitted.
        credentials: Initial credential store.
        info: Initial self-asserted profile attributes.
        nonce: First transaction nonce.
        delivery: Response delivery strategy.
        network: Network parameters; None for an offline session.
        verifier: Token verifier, used only when a network is configured.
        provider: Chain provider; transactions are submitted when set.
        storage: Content storage for profile publication.
        builder: Transaction builder; defaults use the network's chain id.
    """

    def __init__(
        self,
        identity: Optional[Identity] = None,
        credentials: Optional[CredentialStore] = None,
        info: Optional[Mapping[str, Any]] = None,
        nonce: int = 0,
        delivery: Optional[ResponseDelivery] = None,
        network: Optional[NetworkConfig] = None,
        verifier: Optional[TokenVerifier] = None,
        provider: Optional[ChainProvider] = None,
        storage: Optional[ContentStorage] = None,
        builder: Optional[TransactionBuilder] = None,
    ):
        self.credentials = credentials if credentials is not None else CredentialStore()
        self.info: Dict[str, Any] = dict(info or {})
        self.nonce = NonceCounter(nonce)
        self.delivery = delivery or ReturnDelivery()
        self.network = network
        self.verifier = verifier
        self.provider = provider
        self.storage = storage
        self.builder = builder or TransactionBuilder(
            chain_id=network.chain_id if network else None
        )
        self.install_identity(identity or generate_identity())

    def install_identity(
        self,
        identity: Identity,
        transaction_signer: Optional[TransactionSigner] = None,
        nonces: Optional[NonceCounter] = None,
    ) -> None:
        """
        Make ``identity`` the session identity.

        An identity with an on-chain id signs transactions through the identity
        proxy when the network names an identity manager; otherwise the device
        key signs directly. ``nonces`` replaces the transaction nonce counter
        when the new identity signs from a different account.
        """
        device_signer = DeviceKeySigner(identity.device)

        if transaction_signer is None:
            manager = self.network.identity_manager if self.network else None
            if identity.on_chain_id and manager:
                transaction_signer = IdentityProxySigner(
                    device_signer, identity.on_chain_id, manager
                )
            else:
                transaction_signer = device_signer

        self.identity = identity
        self.signer = Signer(identity.device)
        self.transaction_signer = transaction_signer
        if nonces is not None:
            self.nonce = nonces

    def regenerate_identity(self) -> Identity:
        """Replace the session identity with freshly generated keys and a fresh nonce."""
        self.install_identity(generate_identity(), nonces=NonceCounter())
        logger.info(f"Regenerated identity: {self.identity.device.address}")
        return self.identity

    @property
    def address(self) -> str:
        return self.identity.address

    @property
    def verifies(self) -> bool:
        """Whether inbound tokens are verified against the registry."""
        return self.network is not None and self.verifier is not None

    def add_profile_key(self, key: str, value: Any) -> None:
        self.info[key] = value

    def snapshot(self) -> Dict[str, Any]:
        """Full externally visible state, JSON-safe."""
        return {
            "identity": self.identity.to_dict(),
            "credentials": self.credentials.to_dict(),
            "info": dict(self.info),
            "nonce": self.nonce.current,
        }

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any], **collaborators: Any) -> "Session":
        """Rebuild a session from ``snapshot()`` output."""
        return cls(
            identity=Identity.from_dict(data["identity"]),
            credentials=CredentialStore(data.get("credentials")),
            info=data.get("info"),
            nonce=data.get("nonce", 0),
            **collaborators,
        )
