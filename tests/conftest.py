"""
Shared pytest fixtures for mock wallet tests.
"""

import time
from typing import Any, Dict, List, Optional

import pytest
from eth_account import Account
from eth_utils import keccak

from mockwallet import (
    KeyPair,
    Identity,
    Session,
    Signer,
    StaticRegistry,
    TokenVerifier,
    CredentialStore,
    config_network,
    generate_identity,
    generate_keypair,
)
from mockwallet.cache import ProfileCache
from mockwallet.chain import ChainProvider
from mockwallet.delivery import ResponseDelivery
from mockwallet.errors import NetworkUnavailableError
from mockwallet.registry import bytes32_to_ipfs_hash
from mockwallet.storage import ContentStorage

IDENTITY_MANAGER = "0x672ed9fe1f2aa5e8e6c5a1c4a15b0a2fd6e4e1b8"


class RecordingDelivery(ResponseDelivery):
    """Delivery that records every (response, url) it is handed."""

    def __init__(self):
        self.delivered: List[tuple] = []

    async def deliver(self, response: Any, url: Optional[str]) -> Any:
        self.delivered.append((response, url))
        return response


class FakeChainProvider(ChainProvider):
    """In-memory chain: records raw transactions and serves canned receipts."""

    def __init__(self):
        self.sent: List[str] = []
        self.history: Dict[str, int] = {}
        self.count_requests: List[str] = []
        self.calls: List[tuple] = []
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.call_result = "0x" + "00" * 32
        self.logs: List[Dict[str, Any]] = []

    async def send_raw_transaction(self, raw_transaction: str) -> str:
        self.sent.append(raw_transaction)
        tx_hash = "0x" + keccak(hexstr=raw_transaction).hex()
        self.receipts[tx_hash] = {"transactionHash": tx_hash, "status": "0x1", "logs": self.logs}
        return tx_hash

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return self.receipts.get(tx_hash)

    async def call(self, to: str, data: str) -> str:
        self.calls.append((to, data))
        return self.call_result

    async def get_transaction_count(self, address: str) -> int:
        """Transactions seen from ``address``: prior history plus those sent here."""
        self.count_requests.append(address)
        sent = sum(1 for raw in self.sent if Account.recover_transaction(raw) == address)
        return self.history.get(address, 0) + sent


class FakeStorage(ContentStorage):
    """In-memory content storage keyed by a content-derived IPFS hash."""

    def __init__(self, fail: bool = False):
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.fail = fail

    async def publish(self, document: Dict[str, Any]) -> str:
        if self.fail:
            raise NetworkUnavailableError("storage offline", stage="storage")
        content_hash = bytes32_to_ipfs_hash(keccak(text=str(sorted(document.items()))))
        self.documents[content_hash] = document
        return content_hash

    async def fetch(self, content_hash: str) -> Dict[str, Any]:
        if content_hash not in self.documents:
            raise NetworkUnavailableError(f"{content_hash} not found", stage="storage")
        return self.documents[content_hash]


@pytest.fixture
def keypair() -> KeyPair:
    """Generate a fresh keypair for testing."""
    return generate_keypair()


@pytest.fixture
def identity() -> Identity:
    """Generate a fresh device/recovery identity."""
    return generate_identity()


@pytest.fixture
def signer(keypair: KeyPair) -> Signer:
    """Create a Signer instance with test keys."""
    return Signer(keypair)


@pytest.fixture
def issuer() -> KeyPair:
    """Key pair of an attestation issuer."""
    return generate_keypair()


@pytest.fixture
def issuer_signer(issuer: KeyPair) -> Signer:
    return Signer(issuer)


@pytest.fixture
def registry(issuer: KeyPair) -> StaticRegistry:
    """Registry that knows the issuer's public key."""
    registry = StaticRegistry()
    registry.register_key(issuer.address, issuer.public_key, name="Test Issuer")
    return registry


@pytest.fixture
def make_credential(issuer_signer: Signer):
    """Factory for credential tokens signed by the issuer."""

    def make(claim: str, value: Any, subject: str = "0x3b2631d8e15b145fd2bf99fc5f98346aecdc394c",
             exp: Optional[int] = None, signer: Optional[Signer] = None) -> str:
        signer = signer or issuer_signer
        now = int(time.time())
        return signer.sign({
            "iss": signer.address,
            "sub": subject,
            "iat": now,
            "exp": exp if exp is not None else now + 3600,
            "claim": {claim: value},
        })

    return make


@pytest.fixture
def make_request_token(issuer_signer: Signer):
    """Factory for share request tokens from a relying party."""

    def make(requested: List[str], callback: Optional[str] = None,
             signer: Optional[Signer] = None) -> str:
        signer = signer or issuer_signer
        payload: Dict[str, Any] = {
            "iss": signer.address,
            "iat": int(time.time()),
            "type": "shareReq",
            "requested": requested,
        }
        if callback:
            payload["callback"] = callback
        return signer.sign(payload)

    return make


@pytest.fixture
def delivery() -> RecordingDelivery:
    return RecordingDelivery()


@pytest.fixture
def session(identity: Identity, delivery: RecordingDelivery) -> Session:
    """Offline session: nothing is verified or submitted."""
    return Session(
        identity=identity,
        credentials=CredentialStore(),
        info={"name": "John Ether"},
        delivery=delivery,
    )


@pytest.fixture
def verifying_session(identity: Identity, delivery: RecordingDelivery,
                      registry: StaticRegistry) -> Session:
    """Session with a network configured, so inbound tokens are verified."""
    return Session(
        identity=identity,
        credentials=CredentialStore(),
        info={"name": "John Ether"},
        delivery=delivery,
        network=config_network("rinkeby"),
        verifier=TokenVerifier(registry, cache=ProfileCache()),
    )


@pytest.fixture
def chain() -> FakeChainProvider:
    return FakeChainProvider()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def identity_network():
    """Network config that names an identity manager."""
    return config_network({
        "name": "devnet",
        "id": "0x539",
        "registry": "0x2cc31912b2b0f3075a87b3640923d45a26cef3ee",
        "rpcUrl": "http://localhost:8545",
        "identityManager": IDENTITY_MANAGER,
    })

