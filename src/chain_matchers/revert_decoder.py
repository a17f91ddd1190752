"""Revert cause classification.

Turns the raw error of a failed settlement into exactly one ``RevertCause``.
Decoding is pure and never raises on malformed payloads: it degrades to the
least specific variant that still describes the data.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable, Optional

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError

from .abi import ContractAbi
from .config import ERROR_STRING_SELECTOR, PANIC_SELECTOR, SELECTOR_SIZE
from .types import CustomError, NoRevertData, Panic, Reason, RevertCause, Unrelated

_NO_PAYLOAD = object()


def _payload_of(candidate: BaseException) -> Any:
    data = getattr(candidate, "data", _NO_PAYLOAD)
    if isinstance(data, Mapping):
        data = data.get("data", _NO_PAYLOAD)
    if data is None:
        return _NO_PAYLOAD
    return data


def extract_revert_data(error: BaseException) -> Any:
    """Return the revert payload carried by ``error`` or its cause chain.

    The payload is returned as found (bytes or text); ``None`` means the
    failure never reached contract execution.
    """
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        data = _payload_of(current)
        if data is not _NO_PAYLOAD:
            return data
        current = current.__cause__ or current.__context__
    return None


def _as_bytes(data: Any) -> Optional[bytes]:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        text = data[2:] if data[:2].lower() == "0x" else data
        try:
            return bytes.fromhex(text)
        except ValueError:
            return None
    return None


def decode_revert_data(data: bytes, abis: Iterable[ContractAbi] = ()) -> RevertCause:
    if not data:
        return NoRevertData()
    if len(data) < SELECTOR_SIZE:
        return CustomError(selector=data)

    selector, body = data[:SELECTOR_SIZE], data[SELECTOR_SIZE:]
    if selector == ERROR_STRING_SELECTOR:
        try:
            (text,) = abi_decode(["string"], body)
        except (DecodingError, UnicodeDecodeError, ValueError):
            return CustomError(selector=selector)
        return Reason(text)
    if selector == PANIC_SELECTOR:
        try:
            (code,) = abi_decode(["uint256"], body)
        except (DecodingError, ValueError):
            return CustomError(selector=selector)
        return Panic(code)

    for abi in abis:
        spec = abi.error_by_selector(selector)
        if spec is None:
            continue
        try:
            args = spec.decode_args(body)
        except (DecodingError, UnicodeDecodeError, ValueError):
            args = ()
        return CustomError(selector=selector, name=spec.name, args=args)
    return CustomError(selector=selector)


def decode(error: BaseException, abis: Iterable[ContractAbi] = ()) -> RevertCause:
    payload = extract_revert_data(error)
    if payload is None:
        return Unrelated(error)
    data = _as_bytes(payload)
    if data is None:
        return NoRevertData()
    return decode_revert_data(data, abis)


def describe_cause(cause: RevertCause) -> str:
    """Message fragment for a cause, e.g. ``with reason 'x'``."""
    if isinstance(cause, Reason):
        return f"with reason '{cause.text}'"
    if isinstance(cause, Panic):
        return f"with panic code {cause.hex_code} ({cause.description})"
    if isinstance(cause, CustomError):
        if cause.recognized:
            return f"with custom error '{cause.name}'"
        return "with a custom error"
    return "without a reason"
