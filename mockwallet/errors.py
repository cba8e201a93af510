"""
Mock Wallet Exceptions.

Every failure surfaced by the wallet derives from MockWalletError, so callers
can catch one type and still tell which stage failed via ``to_dict()``.
"""

from typing import Any, Dict, Optional


class MockWalletError(Exception):
    """Base exception for mock wallet errors."""

    stage = "wallet"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage

    def to_dict(self) -> Dict[str, Any]:
        """Structured form of the error for relying-party test harnesses."""
        return {"error": type(self).__name__, "stage": self.stage, "message": str(self)}


class MalformedRequestError(MockWalletError):
    """Raised when a request URI matches none of the recognized shapes."""

    stage = "classify"


class VerificationError(MockWalletError):
    """Raised when a token's issuer, expiry or signature cannot be verified."""

    stage = "verify"


class RegistryError(VerificationError):
    """Raised when the registry cannot produce a profile for an address."""

    stage = "resolve"


class NetworkUnavailableError(MockWalletError):
    """Raised when a registry, chain, storage or callback endpoint fails."""

    stage = "network"


class EncodingError(MockWalletError):
    """Raised for malformed function signatures or ABI argument mismatches."""

    stage = "encode"


class ConfigurationError(MockWalletError):
    """Raised for malformed network config or a missing collaborator."""

    stage = "config"


class IdentityInitializationError(MockWalletError):
    """Raised when one step of on-chain identity creation fails."""

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(f"Identity initialization failed at '{stage}': {cause}", stage=stage)
        self.cause = cause
