"""
Mock Wallet Transaction Builder.

Assembles unsigned transactions from transaction requests and signs them
through a pluggable TransactionSigner: the raw device key before an on-chain
identity exists, and the identity proxy (IdentityManager.forwardTo) after.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import unquote

from eth_account import Account
from eth_utils import decode_hex, is_hex, is_hex_address, to_checksum_address

from mockwallet.abi import encode_function_call
from mockwallet.config import DEFAULT_GAS, DEFAULT_GAS_PRICE
from mockwallet.errors import EncodingError
from mockwallet.keys import KeyPair
from mockwallet.models import TransactionRequest

logger = logging.getLogger(__name__)

EMPTY_DATA = "0x"
FORWARD_TO = "forwardTo(address,address,uint256,bytes)"


@dataclass(frozen=True)
class SignedTransaction:
    """A signed, serialized transaction and its keccak hash."""

    raw_transaction: str
    hash: str
    tx: Dict[str, Any] = field(default_factory=dict)


def checksum(address: str) -> str:
    """Checksum a 20-byte hex address, raising EncodingError otherwise."""
    if not isinstance(address, str) or not is_hex_address(address):
        raise EncodingError(f"Invalid address: {address!r}")
    return to_checksum_address(address.lower())


def build_call_data(request: TransactionRequest) -> str:
    """
    Resolve a request's call data.

    Raw ``bytecode`` wins over ``function``; with neither the data is empty.
    Function arguments are bound from the request's (URL-decoded) query
    parameters.
    """
    if request.bytecode:
        if not is_hex(request.bytecode) or not request.bytecode.startswith(("0x", "0X")):
            raise EncodingError(f"bytecode must be 0x-prefixed hex: {request.bytecode!r}")
        return request.bytecode.lower()

    if request.function:
        params = {key: unquote(value) for key, value in request.params.items()}
        return encode_function_call(request.function, params=params)

    return EMPTY_DATA


class TransactionBuilder:
    """Builds unsigned transaction dicts with the session's defaults."""

    def __init__(
        self,
        default_gas: int = DEFAULT_GAS,
        default_gas_price: int = DEFAULT_GAS_PRICE,
        chain_id: Optional[int] = None,
    ):
        self.default_gas = default_gas
        self.default_gas_price = default_gas_price
        self.chain_id = chain_id

    def build(self, request: TransactionRequest, data: str, nonce: int, sender: str) -> Dict[str, Any]:
        """
        Assemble the unsigned transaction.

        Args:
            request: The classified transaction request.
            data: Call data from build_call_data.
            nonce: A nonce already reserved for this transaction.
            sender: The device address.
        """
        tx = {
            "to": checksum(request.to),
            "value": request.value or 0,
            "data": data,
            "gas": request.gas if request.gas is not None else self.default_gas,
            "gasPrice": request.gas_price if request.gas_price is not None else self.default_gas_price,
            "nonce": nonce,
            "from": sender,
        }
        if self.chain_id is not None:
            tx["chainId"] = self.chain_id
        return tx


class TransactionSigner(ABC):
    """Abstract interface for transaction signing strategies."""

    @property
    @abstractmethod
    def address(self) -> str:
        """The address transactions are sent from."""
        pass

    @abstractmethod
    def sign_transaction(self, tx: Dict[str, Any]) -> SignedTransaction:
        """Sign and serialize a transaction."""
        pass


class DeviceKeySigner(TransactionSigner):
    """Signs transactions directly with the device private key."""

    def __init__(self, keypair: KeyPair):
        self._keypair = keypair

    @property
    def address(self) -> str:
        return self._keypair.address

    def sign_transaction(self, tx: Dict[str, Any]) -> SignedTransaction:
        try:
            signed = Account.sign_transaction(tx, bytes.fromhex(self._keypair.private_key))
        except (TypeError, ValueError) as e:
            raise EncodingError(f"Cannot sign transaction: {e}")

        return SignedTransaction(
            raw_transaction="0x" + bytes(signed.raw_transaction).hex(),
            hash="0x" + bytes(signed.hash).hex(),
            tx=dict(tx),
        )


class IdentityProxySigner(TransactionSigner):
    """
    Routes transactions through the identity contract.

    The original destination, value and data are wrapped in a call to
    ``IdentityManager.forwardTo(identity, destination, value, data)``, signed
    by the device key.
    """

    def __init__(self, device: DeviceKeySigner, identity: str, identity_manager: str):
        self._device = device
        self.identity = checksum(identity)
        self.identity_manager = checksum(identity_manager)

    @property
    def address(self) -> str:
        return self._device.address

    def wrap(self, tx: Dict[str, Any]) -> Dict[str, Any]:
        """Rewrite a transaction as a forwardTo call on the identity manager."""
        data = encode_function_call(
            FORWARD_TO,
            args=[self.identity, tx["to"], tx.get("value", 0), decode_hex(tx.get("data") or EMPTY_DATA)],
        )
        return {**tx, "to": self.identity_manager, "value": 0, "data": data}

    def sign_transaction(self, tx: Dict[str, Any]) -> SignedTransaction:
        return self._device.sign_transaction(self.wrap(tx))
