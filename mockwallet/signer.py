"""
Mock Wallet Signer - Signs JWT payloads with the device key (ES256K, JWS compact).

This module provides the token half of the wallet: every response the wallet
hands back to a relying party (identity, share response) is a compact JWS
signed with secp256k1 over SHA-256, with the signature encoded as raw R||S.
"""

import base64
import json
import logging
from typing import Any, Dict, Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature
from jwcrypto import jws
from jwcrypto.common import json_encode

from mockwallet.errors import MalformedRequestError
from mockwallet.keys import KeyPair, keypair_from_private_key

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "ES256K"
JWT_HEADER = {"typ": "JWT", "alg": JWT_ALGORITHM}


def canonical_json(data: Any) -> str:
    """JSON with sorted keys and compact separators, as used in signing input."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def _b64url_decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _split_token(token: str) -> list:
    if not isinstance(token, str):
        raise MalformedRequestError("Token must be a string", stage="decode")
    parts = token.split(".")
    if len(parts) != 3:
        raise MalformedRequestError("Invalid token format", stage="decode")
    return parts


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode a compact JWT's payload without checking its signature.

    Raises:
        MalformedRequestError: If the token is not a three-part JWS with a JSON object payload.
    """
    parts = _split_token(token)
    try:
        payload = json.loads(_b64url_decode(parts[1]).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedRequestError(f"Invalid token payload: {e}", stage="decode")

    if not isinstance(payload, dict):
        raise MalformedRequestError("Token payload must be a JSON object", stage="decode")
    return payload


def decode_header(token: str) -> Dict[str, Any]:
    """Decode a compact JWT's protected header."""
    parts = _split_token(token)
    try:
        return json.loads(_b64url_decode(parts[0]).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedRequestError(f"Invalid token header: {e}", stage="decode")


class Signer:
    """
    Signs payloads into ES256K JWTs using the wallet's device key.

    The payload is signed exactly as given; the signer adds no claims, so
    ``decode_token(signer.sign(p)) == p``.

    Example:
        >>> signer = Signer(generate_keypair())
        >>> token = signer.sign({'iss': signer.address, 'iat': 1485321133})
    """

    def __init__(self, keypair: Union[KeyPair, str]):
        """
        Initialize the Signer.

        Args:
            keypair: A KeyPair, or a hex private key to build one from.
        """
        if not keypair:
            raise ValueError("Signer requires a key pair or private key")

        if isinstance(keypair, str):
            keypair = keypair_from_private_key(keypair)

        self.keypair = keypair
        self._key = keypair.to_jwk(private=True)

    @property
    def address(self) -> str:
        return self.keypair.address

    def sign(self, payload: Dict[str, Any]) -> str:
        """
        Sign a payload and return the compact JWS.

        Args:
            payload: JSON-serializable claims.

        Returns:
            ``b64url(header).b64url(payload).b64url(R||S)``
        """
        token = jws.JWS(canonical_json(payload))
        token.allowed_algs = [JWT_ALGORITHM]
        token.add_signature(self._key, None, json_encode(JWT_HEADER), None)
        return token.serialize(compact=True)

    def sign_digest(self, data: Union[str, bytes]) -> str:
        """
        Sign the SHA-256 digest of arbitrary data.

        Returns:
            Hex encoded R||S, 64 bytes.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")

        private_key = self._key.get_op_key("sign")
        der = private_key.sign(data, ec.ECDSA(hashes.SHA256()))
        r, s = decode_dss_signature(der)
        return r.to_bytes(32, "big").hex() + s.to_bytes(32, "big").hex()

    def get_public_key_jwk(self) -> str:
        """Returns the public key in JWK format for verification."""
        return self._key.export_public()
