"""
Request URI parsing and classification.

Classification is an ordered first-match list; a share URI also looks like an
identity URI, so the share rule must be checked first:

    1. self marker + requestToken parameter  -> ShareRequest
    2. self marker                           -> IdentityRequest
    3. 0x<hex> path segment + query          -> TransactionRequest
    4. 'add' path segment + query            -> AttestationRequest
    5. anything else                         -> MalformedRequestError
"""

import logging
import re
from typing import Dict, Optional, Tuple
from urllib.parse import unquote

from mockwallet.errors import MalformedRequestError
from mockwallet.models import (
    AttestationRequest,
    IdentityRequest,
    Request,
    ShareRequest,
    TransactionRequest,
)
from mockwallet.signer import decode_token

logger = logging.getLogger(__name__)

PARAM_RE = re.compile(r"[^&?]*?=[^&?]*")
SELF_RE = re.compile(r"(?:^|[:/])me$")
ADDRESS_RE = re.compile(r"(?:^|[:/])(0[xX][0-9a-fA-F]+)$")
ADD_RE = re.compile(r"(?:^|[:/])add$")

CALLBACK_PARAMS = ("callback_url", "callback")


def get_url_params(uri: str) -> Dict[str, str]:
    """
    Collect ``key=value`` pairs separated by ``&`` or ``?``.

    Values are kept raw; a duplicate key keeps its last value. A URI with no
    ``=`` anywhere yields an empty mapping.
    """
    params: Dict[str, str] = {}
    for pair in PARAM_RE.findall(uri):
        key, value = pair.split("=", 1)
        params[key] = value
    return params


def _path(uri: str) -> str:
    return uri.split("?", 1)[0]


def _has_query(uri: str) -> bool:
    return "?" in uri


def _callback(params: Dict[str, str]) -> Optional[str]:
    for key in CALLBACK_PARAMS:
        if params.get(key):
            return unquote(params[key])
    return None


def _actions(params: Dict[str, str]) -> Tuple[str, ...]:
    raw = unquote(params.get("actions", ""))
    return tuple(a.strip() for a in raw.split(",") if a.strip())


def _parse_int(params: Dict[str, str], key: str) -> Optional[int]:
    if key not in params or params[key] == "":
        return None
    raw = unquote(params[key]).strip()
    try:
        return int(raw, 16) if raw.lower().startswith("0x") else int(raw, 10)
    except ValueError:
        raise MalformedRequestError(f"Parameter '{key}' is not an integer: {raw!r}")


def _share_request(uri: str, params: Dict[str, str]) -> ShareRequest:
    request_token = params["requestToken"]
    payload = decode_token(request_token)

    requested = payload.get("requested", [])
    if not isinstance(requested, list) or not all(isinstance(r, str) for r in requested):
        raise MalformedRequestError("Request token 'requested' must be a list of claim names")

    callback = payload.get("callback") or payload.get("callbackUrl") or _callback(params)
    return ShareRequest(
        request_token=request_token,
        requested=tuple(dict.fromkeys(requested)),
        callback_url=callback,
        uri=uri,
        params=params,
        actions=_actions(params),
    )


def _transaction_request(uri: str, to: str, params: Dict[str, str]) -> TransactionRequest:
    bytecode = unquote(params["bytecode"]) if params.get("bytecode") else None
    function = unquote(params["function"]) if params.get("function") else None

    return TransactionRequest(
        to=to,
        value=_parse_int(params, "value") or 0,
        bytecode=bytecode,
        function=function,
        gas=_parse_int(params, "gas"),
        gas_price=_parse_int(params, "gasPrice"),
        callback_url=_callback(params),
        uri=uri,
        params=params,
        actions=_actions(params),
    )


def _attestation_request(uri: str, params: Dict[str, str]) -> AttestationRequest:
    raw = unquote(params.get("attestations", ""))
    tokens = tuple(t.strip() for t in raw.split(",") if t.strip())
    if not tokens:
        raise MalformedRequestError("Attestation request carries no attestations")

    return AttestationRequest(
        tokens=tokens,
        callback_url=_callback(params),
        uri=uri,
        params=params,
        actions=_actions(params),
    )


def classify(uri: str) -> Request:
    """
    Parse a request URI into exactly one request type.

    Raises:
        MalformedRequestError: If the URI matches no recognized shape or a
            required parameter is unusable.
    """
    if not isinstance(uri, str) or not uri:
        raise MalformedRequestError("Invalid URI Passed")

    params = get_url_params(uri)
    path = _path(uri)

    if SELF_RE.search(path) and params.get("requestToken"):
        request = _share_request(uri, params)
    elif SELF_RE.search(path):
        request = IdentityRequest(
            callback_url=_callback(params), uri=uri, params=params, actions=_actions(params)
        )
    elif _has_query(uri) and ADDRESS_RE.search(path):
        to = ADDRESS_RE.search(path).group(1)
        request = _transaction_request(uri, to, params)
    elif _has_query(uri) and ADD_RE.search(path):
        request = _attestation_request(uri, params)
    else:
        raise MalformedRequestError(f"Invalid URI Passed: {uri}")

    logger.debug(f"Classified {uri[:64]} as {type(request).__name__}")
    return request
