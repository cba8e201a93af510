"""
Unit tests for request URI parsing and classification.
"""

import pytest

from mockwallet.errors import MalformedRequestError
from mockwallet.models import (
    AttestationRequest,
    IdentityRequest,
    ShareRequest,
    TransactionRequest,
)
from mockwallet.uri import classify, get_url_params

REGISTRY = "0x2cc31912b2b0f3075a87b3640923d45a26cef3ee"


class TestGetUrlParams:
    """Query parameter extraction."""

    def test_flat_mapping(self):
        """Pairs separated by ? and & become a flat mapping."""
        params = get_url_params("me.uport:me?a=1&b=two")
        assert params == {"a": "1", "b": "two"}

    def test_duplicate_keeps_last(self):
        """A repeated key keeps its last value."""
        assert get_url_params("me?a=1&a=2") == {"a": "2"}

    def test_no_pairs(self):
        """A URI without '=' yields an empty mapping."""
        assert get_url_params("me.uport:me") == {}

    def test_values_stay_raw(self):
        """Values are not URL-decoded."""
        params = get_url_params("me?callback_url=https%3A%2F%2Frp.example%2Fcb")
        assert params["callback_url"] == "https%3A%2F%2Frp.example%2Fcb"


class TestClassifyIdentity:
    """Self-marker URIs without a request token."""

    @pytest.mark.parametrize("uri", ["me", "me.uport:me", "https://id.uport.me/me"])
    def test_identity(self, uri):
        assert isinstance(classify(uri), IdentityRequest)

    def test_callback_is_decoded(self):
        """The callback URL is URL-decoded for delivery."""
        request = classify("me.uport:me?callback_url=https%3A%2F%2Frp.example%2Fcb")
        assert request.callback_url == "https://rp.example/cb"

    def test_actions(self):
        request = classify("me.uport:me?actions=accept%2Ccancel")
        assert request.actions == ("accept", "cancel")


class TestClassifyShare:
    """Self-marker URIs carrying a request token."""

    def test_share_wins_over_identity(self, make_request_token):
        """A URI with both the self marker and requestToken is a share request."""
        token = make_request_token(["phone", "email"])
        request = classify(f"me?requestToken={token}")

        assert isinstance(request, ShareRequest)
        assert request.request_token == token
        assert request.requested == ("phone", "email")

    def test_callback_from_token(self, make_request_token):
        token = make_request_token(["phone"], callback="https://rp.example/cb")
        request = classify(f"me.uport:me?requestToken={token}")
        assert request.callback_url == "https://rp.example/cb"

    def test_callback_from_query(self, make_request_token):
        token = make_request_token(["phone"])
        request = classify(f"me?requestToken={token}&callback_url=https%3A%2F%2Frp.example%2Fq")
        assert request.callback_url == "https://rp.example/q"

    def test_requested_must_be_names(self, issuer_signer):
        token = issuer_signer.sign({"iss": issuer_signer.address, "requested": "phone"})
        with pytest.raises(MalformedRequestError):
            classify(f"me?requestToken={token}")

    def test_undecodable_token(self):
        with pytest.raises(MalformedRequestError) as exc_info:
            classify("me?requestToken=not-a-token")
        assert exc_info.value.stage == "decode"


class TestClassifyTransaction:
    """Hex address path followed by a query."""

    def test_transaction(self):
        request = classify(f"me.uport:{REGISTRY}?value=10&gas=21000")

        assert isinstance(request, TransactionRequest)
        assert request.to == REGISTRY
        assert request.value == 10
        assert request.gas == 21000
        assert request.gas_price is None

    def test_hex_values(self):
        request = classify(f"{REGISTRY}?value=0xff&gasPrice=0x3b9aca00")
        assert request.value == 255
        assert request.gas_price == 1_000_000_000

    def test_function_is_decoded(self):
        request = classify(
            f"me.uport:{REGISTRY}?function=transfer(address%20to%2Cuint256%20amount)&to=0x01&amount=5"
        )
        assert request.function == "transfer(address to,uint256 amount)"
        assert request.params["amount"] == "5"

    def test_bad_integer(self):
        with pytest.raises(MalformedRequestError):
            classify(f"me.uport:{REGISTRY}?value=ten")

    def test_address_without_query(self):
        """An address path with no query is not a transaction request."""
        with pytest.raises(MalformedRequestError):
            classify(f"me.uport:{REGISTRY}")


class TestClassifyAttestation:
    """The 'add' action."""

    def test_single(self):
        request = classify("me.uport:add?attestations=T1")
        assert isinstance(request, AttestationRequest)
        assert request.tokens == ("T1",)

    def test_comma_separated(self):
        request = classify("me.uport:add?attestations=T1%2CT2&callback_url=https%3A%2F%2Frp%2Fcb")
        assert request.tokens == ("T1", "T2")
        assert request.callback_url == "https://rp/cb"

    def test_no_attestations(self):
        with pytest.raises(MalformedRequestError):
            classify("me.uport:add?callback_url=x")


class TestClassifyMalformed:
    """URIs that match nothing."""

    @pytest.mark.parametrize("uri", ["", "https://example.com/foo", "me.uport:you?x=1", "add"])
    def test_unrecognized(self, uri):
        with pytest.raises(MalformedRequestError):
            classify(uri)

    def test_error_is_structured(self):
        with pytest.raises(MalformedRequestError) as exc_info:
            classify("https://example.com/foo")

        error = exc_info.value.to_dict()
        assert error["error"] == "MalformedRequestError"
        assert error["stage"] == "classify"
