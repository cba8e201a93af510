"""
Request handlers.

One coroutine per request type. Handlers own no state: everything they read
or mutate is on the Session they are given.
"""

import asyncio
import logging
import time
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from mockwallet.credentials import CredentialRecord
from mockwallet.errors import MockWalletError
from mockwallet.models import (
    AttestationRequest,
    AttestationResult,
    IdentityRequest,
    ShareRequest,
    TransactionRequest,
)
from mockwallet.nonce import NonceCounter
from mockwallet.session import Session
from mockwallet.transactions import (
    SignedTransaction,
    TransactionSigner,
    build_call_data,
    checksum,
)

logger = logging.getLogger(__name__)


def _now() -> int:
    return int(time.time())


async def handle_identity(session: Session, request: IdentityRequest) -> str:
    """Sign and deliver the wallet's identity token."""
    address = session.address
    token = session.signer.sign({"iss": address, "iat": _now(), "address": address})
    return await session.delivery.deliver(token, request.callback_url)


def build_share_payload(session: Session, request: ShareRequest) -> Dict[str, Any]:
    """
    Assemble the disclosure payload for a share request.

    ``verified`` holds stored tokens for requested claims, grouped in the
    requested order; ``info`` entries are the requested profile attributes.
    """
    requested = list(request.requested)
    verified = session.credentials.tokens_for(requested)
    info = {key: session.info[key] for key in requested if key in session.info}

    return {
        **info,
        "iss": session.address,
        "iat": _now(),
        "verified": verified,
        "type": "shareReq",
        "req": request.request_token,
    }


async def handle_share(session: Session, request: ShareRequest) -> str:
    """
    Sign a disclosure response; with a network configured the inbound request
    token is verified concurrently and the response is only delivered once
    verification succeeds.
    """

    async def respond() -> str:
        return session.signer.sign(build_share_payload(session, request))

    if session.verifies:
        response, _ = await asyncio.gather(
            respond(), session.verifier.verify(request.request_token)
        )
    else:
        response = await respond()

    return await session.delivery.deliver(response, request.callback_url)


async def sign_transaction(
    session: Session,
    request: TransactionRequest,
    signer: Optional[TransactionSigner] = None,
    nonces: Optional[NonceCounter] = None,
) -> SignedTransaction:
    """
    Encode, reserve a nonce for, build and sign a transaction.

    ``nonces`` overrides the session counter, for keys the session does not
    hold yet.
    """
    signer = signer or session.transaction_signer
    checksum(request.to)
    data = build_call_data(request)

    counter = nonces if nonces is not None else session.nonce
    nonce = await counter.reserve()
    tx = session.builder.build(request, data, nonce, signer.address)
    return signer.sign_transaction(tx)


async def send_transaction(
    session: Session,
    request: TransactionRequest,
    signer: Optional[TransactionSigner] = None,
    nonces: Optional[NonceCounter] = None,
) -> str:
    """
    Sign a transaction and, when a chain provider is configured, submit it.

    Returns:
        The hash reported by the network, or the locally computed hash.
    """
    signed = await sign_transaction(session, request, signer, nonces)

    if session.provider is not None:
        tx_hash = await session.provider.send_raw_transaction(signed.raw_transaction)
        logger.info(f"Submitted transaction {tx_hash} (nonce {signed.tx['nonce']})")
        return tx_hash

    logger.debug(f"Signed transaction {signed.hash} (nonce {signed.tx['nonce']})")
    return signed.hash


async def handle_transaction(session: Session, request: TransactionRequest) -> str:
    tx_hash = await send_transaction(session, request)
    return await session.delivery.deliver(tx_hash, request.callback_url)


async def handle_attestation(
    session: Session, request: AttestationRequest
) -> List[AttestationResult]:
    """
    Ingest attestation tokens into the credential store.

    Each token succeeds or fails on its own. Accepted records are committed
    in token order in a single write once all verifications have settled.
    """
    results: List[Optional[AttestationResult]] = [None] * len(request.tokens)
    records: Dict[int, CredentialRecord] = {}

    for index, token in enumerate(request.tokens):
        try:
            record = CredentialRecord.from_token(token)
            claim = record.claim_name
        except MockWalletError as e:
            results[index] = AttestationResult(index=index, token=token, error=str(e))
            continue
        logger.debug(f"Attestation {index} carries claim '{claim}'")
        records[index] = record

    if session.verifies and records:
        indexes = list(records)
        checks = await session.verifier.verify_batch([records[i].token for i in indexes])
        for index, check in zip(indexes, checks):
            if not check.is_valid:
                record = records.pop(index)
                results[index] = AttestationResult(
                    index=index, token=record.token, claim=record.claim_name, error=check.error
                )

    accepted = sorted(records)
    names = await session.credentials.add_all([records[i] for i in accepted])
    for index, name in zip(accepted, names):
        results[index] = AttestationResult(
            index=index, token=records[index].token, claim=name, stored=True
        )

    for result in results:
        if not result.stored:
            logger.warning(f"Attestation {result.index} rejected: {result.error}")

    if request.callback_url:
        await session.delivery.deliver([asdict(r) for r in results], request.callback_url)
    return results
