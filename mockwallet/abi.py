"""
Contract call-data encoding for transaction requests.

A transaction request may carry a function signature such as
``transfer(address to,uint256 amount)``. Each parameter's second token is
either the name of a query parameter holding the value, or the literal value
itself (``transfer(address 0x5b0a...,uint256 10)``). The call data is the
4-byte keccak selector of the canonical signature followed by the standard
ABI encoding of the arguments.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

import eth_abi
from eth_abi.exceptions import DecodingError as AbiDecodingError
from eth_abi.exceptions import EncodingError as AbiEncodingError
from eth_utils import (
    decode_hex,
    function_signature_to_4byte_selector,
    is_address,
    to_checksum_address,
)

from mockwallet.errors import EncodingError

SIGNATURE_RE = re.compile(r"^\s*([A-Za-z_$][\w$]*)\s*\((.*)\)\s*$", re.DOTALL)
INT_TYPE_RE = re.compile(r"^(u?int)(\d*)$")
ARRAY_SUFFIX_RE = re.compile(r"(\[\d*\])+$")


@dataclass(frozen=True)
class FunctionSignature:
    """A parsed ``name(type arg, ...)`` signature."""

    name: str
    types: Tuple[str, ...]
    args: Tuple[str, ...]

    @property
    def canonical(self) -> str:
        return f"{self.name}({','.join(self.types)})"

    @property
    def selector(self) -> bytes:
        return function_signature_to_4byte_selector(self.canonical)


def canonical_type(abi_type: str) -> str:
    """Expand the ``uint``/``int``/``byte`` aliases, keeping array suffixes."""
    suffix_match = ARRAY_SUFFIX_RE.search(abi_type)
    suffix = suffix_match.group(0) if suffix_match else ""
    base = abi_type[: len(abi_type) - len(suffix)]

    int_match = INT_TYPE_RE.match(base)
    if int_match and not int_match.group(2):
        base = f"{int_match.group(1)}256"
    elif base == "byte":
        base = "bytes1"

    return base + suffix


def parse_function_signature(signature: str) -> FunctionSignature:
    """
    Parse ``name(type1 arg1,type2 arg2,...)``.

    Raises:
        EncodingError: If the signature is malformed or names an unknown type.
    """
    match = SIGNATURE_RE.match(signature or "")
    if not match:
        raise EncodingError(f"Malformed function signature: {signature!r}")

    name, params = match.group(1), match.group(2).strip()
    types, args = [], []

    if params:
        for param in params.split(","):
            parts = param.split()
            if not parts:
                raise EncodingError(f"Empty parameter in function signature: {signature!r}")
            abi_type = canonical_type(parts[0])
            if not eth_abi.is_encodable_type(abi_type):
                raise EncodingError(f"Unknown ABI type '{parts[0]}' in {signature!r}")
            types.append(abi_type)
            args.append(parts[-1] if len(parts) > 1 else "")

    return FunctionSignature(name=name, types=tuple(types), args=tuple(args))


def _coerce_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not an integer")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    return int(text, 16) if text.lower().startswith("0x") else int(text, 10)


def _coerce_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    text = str(value)
    if not text.startswith(("0x", "0X")):
        raise ValueError(f"expected 0x-prefixed hex, got {text!r}")
    return decode_hex(text)


def coerce_argument(abi_type: str, value: Any) -> Any:
    """
    Convert a raw (usually string) argument to the Python value eth_abi expects.

    Raises:
        EncodingError: If the value cannot represent the type.
    """
    try:
        if abi_type.endswith("]"):
            inner = abi_type[: abi_type.rindex("[")]
            items = json.loads(value) if isinstance(value, str) else value
            if not isinstance(items, (list, tuple)):
                raise ValueError("array arguments must be JSON lists")
            return [coerce_argument(inner, item) for item in items]

        if INT_TYPE_RE.match(abi_type):
            return _coerce_int(value)

        if abi_type == "address":
            if not is_address(value):
                raise ValueError(f"not an address: {value!r}")
            return to_checksum_address(value)

        if abi_type == "bool":
            if isinstance(value, bool):
                return value
            text = str(value).lower()
            if text in ("true", "1"):
                return True
            if text in ("false", "0"):
                return False
            raise ValueError(f"not a boolean: {value!r}")

        if abi_type == "string":
            return str(value)

        if abi_type == "bytes":
            return _coerce_bytes(value)

        if abi_type.startswith("bytes"):
            size = int(abi_type[5:])
            data = _coerce_bytes(value)
            if len(data) > size:
                raise ValueError(f"{len(data)} bytes do not fit {abi_type}")
            return data.ljust(size, b"\x00")

    except (ValueError, TypeError) as e:
        raise EncodingError(f"Cannot encode {value!r} as {abi_type}: {e}")

    raise EncodingError(f"Unsupported ABI type: {abi_type}")


def bind_arguments(
    signature: FunctionSignature,
    params: Optional[Mapping[str, str]] = None,
    args: Optional[Sequence[Any]] = None,
) -> list:
    """
    Resolve each signature argument to a value.

    Explicit ``args`` win; otherwise an argument token naming a query
    parameter is bound to that parameter's value, and any other token is
    taken literally.
    """
    params = params or {}

    if args is not None:
        if len(args) != len(signature.types):
            raise EncodingError(
                f"{signature.canonical} takes {len(signature.types)} arguments, got {len(args)}"
            )
        raw = list(args)
    else:
        raw = []
        for abi_type, token in zip(signature.types, signature.args):
            if not token:
                raise EncodingError(f"Missing {abi_type} argument in {signature.canonical}")
            raw.append(params.get(token, token))

    return [coerce_argument(t, v) for t, v in zip(signature.types, raw)]


def encode_function_call(
    signature: Union[str, FunctionSignature],
    params: Optional[Mapping[str, str]] = None,
    args: Optional[Sequence[Any]] = None,
) -> str:
    """
    Build 0x-prefixed call data: selector followed by ABI-encoded arguments.

    Example:
        >>> encode_function_call('transfer(address to,uint256 amount)',
        ...                      params={'to': '0x5b0a...', 'amount': '10'})
        '0xa9059cbb000000...'
    """
    if isinstance(signature, str):
        signature = parse_function_signature(signature)

    values = bind_arguments(signature, params=params, args=args)

    try:
        encoded = eth_abi.encode(list(signature.types), values)
    except (AbiEncodingError, TypeError, ValueError) as e:
        raise EncodingError(f"Cannot encode arguments for {signature.canonical}: {e}")

    return "0x" + (signature.selector + encoded).hex()


def decode_call_data(signature: Union[str, FunctionSignature], data: str) -> Tuple[Any, ...]:
    """
    Decode call data produced for ``signature`` back into argument values.

    Raises:
        EncodingError: If the selector does not match or the payload is malformed.
    """
    if isinstance(signature, str):
        signature = parse_function_signature(signature)

    try:
        raw = decode_hex(data)
    except ValueError as e:
        raise EncodingError(f"Invalid call data: {e}")

    if raw[:4] != signature.selector:
        raise EncodingError(f"Call data selector does not match {signature.canonical}")

    try:
        return tuple(eth_abi.decode(list(signature.types), raw[4:]))
    except (AbiDecodingError, ValueError) as e:
        raise EncodingError(f"Cannot decode call data for {signature.canonical}: {e}")
