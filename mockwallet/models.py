"""
Request and result types.

A classified request is exactly one of IdentityRequest, ShareRequest,
TransactionRequest or AttestationRequest. New request kinds are added as a
new dataclass plus a handler registered with the client.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union


@dataclass(frozen=True)
class IdentityRequest:
    """Request for the wallet's signed identity."""

    callback_url: Optional[str] = None
    uri: str = ""
    params: Dict[str, str] = field(default_factory=dict)
    actions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ShareRequest:
    """
    Request for disclosure of claims.

    ``requested`` comes from the decoded, not yet verified, request token.
    """

    request_token: str
    requested: Tuple[str, ...]
    callback_url: Optional[str] = None
    uri: str = ""
    params: Dict[str, str] = field(default_factory=dict)
    actions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TransactionRequest:
    """Request to sign (and possibly submit) a transaction."""

    to: str
    value: int = 0
    bytecode: Optional[str] = None
    function: Optional[str] = None
    gas: Optional[int] = None
    gas_price: Optional[int] = None
    callback_url: Optional[str] = None
    uri: str = ""
    params: Dict[str, str] = field(default_factory=dict)
    actions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AttestationRequest:
    """Request to ingest one or more credential tokens."""

    tokens: Tuple[str, ...]
    callback_url: Optional[str] = None
    uri: str = ""
    params: Dict[str, str] = field(default_factory=dict)
    actions: Tuple[str, ...] = ()


Request = Union[IdentityRequest, ShareRequest, TransactionRequest, AttestationRequest]


@dataclass(frozen=True)
class AttestationResult:
    """Outcome of ingesting one attestation token."""

    index: int
    token: str
    claim: Optional[str] = None
    stored: bool = False
    error: Optional[str] = None
