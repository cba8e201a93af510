"""
Mock Wallet Token Verifier - async ES256K JWT verification.

Issuer keys are resolved through a RegistryResolver and cached; a token is
valid only when its issuer resolves, it has not expired and its signature
verifies against the issuer's published key.
"""

import math
import time
import logging
import asyncio
from typing import Any, Dict, List, Optional
from dataclasses import dataclass

from cryptography.hazmat.primitives.asymmetric import ec
from eth_utils import decode_hex
from jwcrypto import jwk, jws
from jwcrypto.common import JWException

from mockwallet.cache import ProfileCache
from mockwallet.errors import MalformedRequestError, MockWalletError, VerificationError
from mockwallet.registry import ProfileDocument, RegistryResolver
from mockwallet.signer import JWT_ALGORITHM, decode_token

logger = logging.getLogger(__name__)

# NumericDate values above this are millisecond timestamps (year 5138 in seconds)
MILLISECOND_THRESHOLD = 10**11


@dataclass
class VerificationResult:
    """Result of verifying one token in a batch."""

    token_index: int
    is_valid: bool
    claims: Optional[Dict[str, Any]]
    error: Optional[str] = None


def public_key_to_jwk(public_key: str) -> jwk.JWK:
    """Build a verification key from a hex SEC1 secp256k1 point."""
    try:
        point = decode_hex(public_key)
        key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), point)
    except (ValueError, TypeError) as e:
        raise VerificationError(f"Invalid issuer public key: {e}")
    return jwk.JWK.from_pyca(key)


def timestamp_seconds(name: str, value: Any) -> float:
    """
    Read a JWT NumericDate claim as seconds since the epoch.

    Legacy credentials carry millisecond timestamps; those are scaled down.

    Raises:
        VerificationError: If the value is not a finite number.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise VerificationError(f"Token {name} must be a number, got {value!r}")
    if value > MILLISECOND_THRESHOLD:
        return value / 1000
    return value


class TokenVerifier:
    """
    Verifies ES256K JWTs against issuer profiles from the registry.

    Example:
        >>> verifier = TokenVerifier(registry)
        >>> claims = await verifier.verify(token)
    """

    def __init__(
        self,
        registry: RegistryResolver,
        cache: Optional[ProfileCache] = None,
        clock_skew_seconds: int = 30,
    ):
        """
        Initialize the verifier.

        Args:
            registry: Resolver used to look up issuer profiles.
            cache: Cache for resolved profiles.
            clock_skew_seconds: Allowed clock drift for expiry validation.
        """
        self._registry = registry
        self._cache = cache if cache is not None else ProfileCache()
        self._clock_skew = clock_skew_seconds

        self._stats = {
            "verifications": 0,
            "successes": 0,
            "failures": 0,
            "cache_hits": 0,
            "resolutions": 0,
        }

    async def verify(self, token: str) -> Dict[str, Any]:
        """
        Verify a token.

        Returns:
            The token's decoded claims.

        Raises:
            VerificationError: If the issuer cannot be resolved, the token has
                expired or the signature does not match the issuer's key.
        """
        self._stats["verifications"] += 1
        try:
            claims = await self._verify(token)
        except VerificationError as e:
            logger.warning(f"Token verification failed: {e}")
            self._stats["failures"] += 1
            raise

        self._stats["successes"] += 1
        return claims

    async def _verify(self, token: str) -> Dict[str, Any]:
        try:
            claims = decode_token(token)
        except MalformedRequestError as e:
            raise VerificationError(str(e)) from e

        issuer = claims.get("iss")
        if not issuer:
            raise VerificationError("Token has no issuer (iss)")

        profile = await self._get_profile(issuer)
        if not profile.public_key:
            raise VerificationError(f"Profile for {issuer} has no public key")

        key = public_key_to_jwk(profile.public_key)

        try:
            jws_token = jws.JWS()
            jws_token.allowed_algs = [JWT_ALGORITHM]
            jws_token.deserialize(token)
            jws_token.verify(key)
        except JWException as e:
            raise VerificationError(f"Signature does not match issuer {issuer}: {e}")

        exp = claims.get("exp")
        now = time.time()
        if exp is not None and now > timestamp_seconds("exp", exp) + self._clock_skew:
            logger.debug(f"Token expired: exp={exp}, now={now}")
            raise VerificationError(f"Token expired at {exp}")

        return claims

    async def verify_batch(self, tokens: List[str]) -> List[VerificationResult]:
        """
        Verify multiple tokens concurrently; one failure does not affect the others.

        Returns:
            One VerificationResult per token, in input order.
        """

        async def verify_one(index: int, token: str) -> VerificationResult:
            try:
                claims = await self.verify(token)
                return VerificationResult(token_index=index, is_valid=True, claims=claims)
            except MockWalletError as e:
                return VerificationResult(
                    token_index=index, is_valid=False, claims=None, error=str(e)
                )

        results = await asyncio.gather(*(verify_one(i, t) for i, t in enumerate(tokens)))
        return list(results)

    async def _get_profile(self, issuer: str) -> ProfileDocument:
        """Get a profile from cache or the registry."""
        cached = self._cache.get(issuer)
        if cached is not None:
            self._stats["cache_hits"] += 1
            return cached

        self._stats["resolutions"] += 1
        profile = await self._registry.resolve(issuer)
        self._cache.put(issuer, profile)
        return profile

    @property
    def stats(self) -> Dict[str, int]:
        """Return verification statistics."""
        return self._stats.copy()
