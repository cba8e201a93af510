"""
On-chain identity creation.

initialize_identity runs the creation protocol step by step:

    keys -> create -> receipt -> event -> publish -> register

Every step waits on the previous one. The new device key signs from its own
account, so it gets its own nonce counter seeded from the chain. Nothing is
installed on the session until the last step succeeds, so a failure leaves
the session's identity, signer and nonce exactly as they were.
"""

import logging
from typing import Any, Dict, List, Optional

from eth_utils import keccak, to_checksum_address

from mockwallet.abi import encode_function_call
from mockwallet.errors import ConfigurationError, IdentityInitializationError, MockWalletError
from mockwallet.handlers import send_transaction
from mockwallet.keys import Identity, generate_identity
from mockwallet.models import TransactionRequest
from mockwallet.nonce import NonceCounter
from mockwallet.registry import REGISTRY_SET, ProfileDocument, ipfs_hash_to_bytes32, registration_id
from mockwallet.session import Session
from mockwallet.transactions import DeviceKeySigner, IdentityProxySigner

logger = logging.getLogger(__name__)

CREATE_IDENTITY = "createIdentity(address,address)"
IDENTITY_CREATED_TOPIC = "0x" + keccak(text="IdentityCreated(address,address,address,address)").hex()


def identity_from_receipt(receipt: Dict[str, Any]) -> Optional[str]:
    """Extract the new identity address from an IdentityCreated event log."""
    logs: List[Dict[str, Any]] = receipt.get("logs") or []
    for log in logs:
        topics = log.get("topics") or []
        if len(topics) >= 2 and topics[0].lower() == IDENTITY_CREATED_TOPIC:
            return to_checksum_address("0x" + topics[1][-40:])
    return None


async def initialize_identity(
    session: Session, poll_interval: float = 1.0, attempts: int = 60
) -> Identity:
    """
    Create an on-chain identity and install it on the session.

    Args:
        session: The wallet session; needs a network with an identity
            manager, a chain provider and content storage.
        poll_interval: Seconds between receipt polls.
        attempts: Receipt polls before giving up.

    Returns:
        The new Identity, carrying its on-chain id.

    Raises:
        ConfigurationError: If a required collaborator is missing.
        IdentityInitializationError: If any step fails; ``stage`` names it.
    """
    network = session.network
    if network is None or not network.identity_manager:
        raise ConfigurationError("Identity creation needs a network with an identity manager")
    if session.provider is None:
        raise ConfigurationError("Identity creation needs a chain provider")
    if session.storage is None:
        raise ConfigurationError("Identity creation needs content storage")

    stage = "keys"
    try:
        staged = generate_identity()
        device_signer = DeviceKeySigner(staged.device)
        nonces = NonceCounter(
            await session.provider.get_transaction_count(staged.device.address)
        )

        stage = "create"
        create = TransactionRequest(
            to=network.identity_manager,
            bytecode=encode_function_call(
                CREATE_IDENTITY, args=[staged.device.address, staged.recovery.address]
            ),
        )
        create_hash = await send_transaction(
            session, create, signer=device_signer, nonces=nonces
        )

        stage = "receipt"
        receipt = await session.provider.wait_for_receipt(
            create_hash, poll_interval=poll_interval, attempts=attempts
        )

        stage = "event"
        on_chain_id = identity_from_receipt(receipt)
        if on_chain_id is None:
            raise MockWalletError(f"No IdentityCreated event in receipt of {create_hash}")
        staged = staged.with_on_chain_id(on_chain_id)
        proxy_signer = IdentityProxySigner(device_signer, on_chain_id, network.identity_manager)
        logger.info(f"Created identity {on_chain_id}")

        stage = "publish"
        profile = ProfileDocument(
            address=on_chain_id,
            public_key=staged.device.public_key,
            name=session.info.get("name"),
            raw=dict(session.info),
        )
        ipfs_hash = await session.storage.publish(profile.to_json())

        stage = "register"
        register = TransactionRequest(
            to=network.registry,
            bytecode=encode_function_call(
                REGISTRY_SET,
                args=[registration_id(), on_chain_id, ipfs_hash_to_bytes32(ipfs_hash)],
            ),
        )
        register_hash = await send_transaction(
            session, register, signer=proxy_signer, nonces=nonces
        )
        await session.provider.wait_for_receipt(
            register_hash, poll_interval=poll_interval, attempts=attempts
        )

    except (MockWalletError, ValueError) as e:
        logger.warning(f"Identity initialization failed at '{stage}': {e}")
        raise IdentityInitializationError(stage, e) from e

    session.install_identity(staged, proxy_signer, nonces=nonces)
    logger.info(f"Registered profile {ipfs_hash} for {on_chain_id}")
    return staged
