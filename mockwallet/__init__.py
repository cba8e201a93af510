"""
Mock Wallet - a scriptable identity wallet for relying-party integration tests.

This package stands in for a mobile decentralized-identity wallet: it consumes
request URIs, signs identity and disclosure tokens, signs (and optionally
submits) transactions, and ingests attestations, without a device in the loop.
"""

__version__ = "0.4.0"

# Entry point
from .client import MockWalletClient
from .session import Session

# Requests
from .uri import classify, get_url_params
from .models import (
    IdentityRequest,
    ShareRequest,
    TransactionRequest,
    AttestationRequest,
    AttestationResult,
)

# Tokens
from .signer import Signer, decode_token
from .verifier import TokenVerifier, VerificationResult

# Keys and state
from .keys import KeyPair, Identity, generate_keypair, generate_identity
from .credentials import CredentialRecord, CredentialStore

# Transactions
from .abi import encode_function_call, decode_call_data, parse_function_signature
from .transactions import TransactionBuilder, DeviceKeySigner, IdentityProxySigner

# Collaborators
from .config import NetworkConfig, config_network
from .registry import ProfileDocument, StaticRegistry, ChainRegistryResolver
from .delivery import ReturnDelivery, HttpCallbackDelivery
from .chain import JsonRpcProvider
from .storage import IpfsStorage

# Errors
from .errors import (
    MockWalletError,
    MalformedRequestError,
    VerificationError,
    RegistryError,
    NetworkUnavailableError,
    EncodingError,
    ConfigurationError,
    IdentityInitializationError,
)


__all__ = [
    "__version__",
    # Entry point
    "MockWalletClient",
    "Session",
    # Requests
    "classify",
    "get_url_params",
    "IdentityRequest",
    "ShareRequest",
    "TransactionRequest",
    "AttestationRequest",
    "AttestationResult",
    # Tokens
    "Signer",
    "decode_token",
    "TokenVerifier",
    "VerificationResult",
    # Keys and state
    "KeyPair",
    "Identity",
    "generate_keypair",
    "generate_identity",
    "CredentialRecord",
    "CredentialStore",
    # Transactions
    "encode_function_call",
    "decode_call_data",
    "parse_function_signature",
    "TransactionBuilder",
    "DeviceKeySigner",
    "IdentityProxySigner",
    # Collaborators
    "NetworkConfig",
    "config_network",
    "ProfileDocument",
    "StaticRegistry",
    "ChainRegistryResolver",
    "ReturnDelivery",
    "HttpCallbackDelivery",
    "JsonRpcProvider",
    "IpfsStorage",
    # Errors
    "MockWalletError",
    "MalformedRequestError",
    "VerificationError",
    "RegistryError",
    "NetworkUnavailableError",
    "EncodingError",
    "ConfigurationError",
    "IdentityInitializationError",
]
