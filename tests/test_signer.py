"""
Unit tests for the Signer class and token decoding.
"""

import base64
import json

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import encode_dss_signature
from jwcrypto import jws

from mockwallet import Signer, decode_token
from mockwallet.errors import MalformedRequestError
from mockwallet.signer import JWT_HEADER, decode_header


def _b64url_decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


class TestSignerBasic:
    """Basic signing tests."""

    def test_sign_returns_compact_jws(self, signer):
        """sign() returns header.payload.signature."""
        token = signer.sign({"iss": signer.address, "iat": 1485321133})
        assert token.count(".") == 2

    def test_payload_round_trips(self, signer):
        """The signer adds no claims of its own."""
        payload = {"iss": signer.address, "iat": 1485321133, "address": signer.address}
        assert decode_token(signer.sign(payload)) == payload

    @pytest.mark.parametrize("payload", [
        {},
        {"claim": {"address": {"street": "1 Main St", "geo": {"lat": 52.52, "lng": 13.405}}}},
        {"requested": ["name", "phone", "email"], "matrix": [[1, 2], [], [3.5, -4]]},
        {"name": "Jöhn Ëther", "city": "東京", "emoji": "\U0001f511", "quote": "\"\\\n\t"},
        {"ratio": 0.1, "tiny": 1e-300, "big": 10**30, "neg": -7},
        {"verified": True, "revoked": False, "exp": None},
        {"mixed": [None, True, 0, "", {"k": [False]}]},
    ])
    def test_json_payloads_round_trip(self, signer, payload):
        assert decode_token(signer.sign(payload)) == payload

    def test_header(self, signer):
        token = signer.sign({"iss": signer.address})
        assert decode_header(token) == JWT_HEADER

    def test_payload_keys_are_sorted(self, signer):
        token = signer.sign({"b": 1, "a": 2})
        raw = _b64url_decode(token.split(".")[1]).decode("utf-8")
        assert raw == '{"a":2,"b":1}'

    def test_signature_is_raw_r_s(self, signer):
        """The signature segment is R||S, not DER and without a recovery byte."""
        token = signer.sign({"iss": signer.address})
        assert len(_b64url_decode(token.split(".")[2])) == 64

    def test_signature_verifies_with_public_key(self, signer, keypair):
        token = signer.sign({"iss": signer.address})

        verifier = jws.JWS()
        verifier.allowed_algs = ["ES256K"]
        verifier.deserialize(token)
        verifier.verify(keypair.to_jwk(private=False))

        assert json.loads(verifier.payload) == {"iss": signer.address}

    def test_accepts_private_key_hex(self, keypair):
        signer = Signer(keypair.private_key)
        assert signer.address == keypair.address

    def test_requires_key(self):
        with pytest.raises(ValueError):
            Signer("")

    def test_public_key_jwk(self, signer):
        exported = json.loads(signer.get_public_key_jwk())
        assert exported["crv"] == "secp256k1"
        assert "d" not in exported


class TestSignDigest:
    """Raw digest signatures."""

    def test_sign_digest_is_64_bytes_hex(self, signer):
        signature = signer.sign_digest("hello")
        assert len(signature) == 128
        bytes.fromhex(signature)

    def test_sign_digest_verifies(self, signer, keypair):
        signature = signer.sign_digest("hello")
        r = int(signature[:64], 16)
        s = int(signature[64:], 16)

        public_key = ec.EllipticCurvePublicKey.from_encoded_point(
            ec.SECP256K1(), bytes.fromhex(keypair.public_key[2:])
        )
        public_key.verify(encode_dss_signature(r, s), b"hello", ec.ECDSA(hashes.SHA256()))


class TestDecodeToken:
    """Decoding without signature checks."""

    @pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d"])
    def test_wrong_shape(self, token):
        with pytest.raises(MalformedRequestError):
            decode_token(token)

    def test_payload_not_json(self):
        with pytest.raises(MalformedRequestError):
            decode_token("eyJhbGciOiJFUzI1NksifQ.bm90IGpzb24.c2ln")

    def test_payload_not_object(self):
        payload = base64.urlsafe_b64encode(b"[1,2]").decode().rstrip("=")
        with pytest.raises(MalformedRequestError) as exc_info:
            decode_token(f"eyJhbGciOiJFUzI1NksifQ.{payload}.c2ln")
        assert exc_info.value.stage == "decode"

    def test_non_string(self):
        with pytest.raises(MalformedRequestError):
            decode_token(None)
