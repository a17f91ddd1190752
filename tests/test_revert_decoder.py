"""Tests for revert cause classification."""

from __future__ import annotations

import pytest
from eth_abi import encode

from chain_matchers.config import ERROR_STRING_SELECTOR, PANIC_SELECTOR
from chain_matchers.devnet.contracts import Matchers
from chain_matchers.errors import ErrorCode, RpcError, TransactionRevertedError
from chain_matchers.revert_decoder import decode, decode_revert_data, describe_cause, extract_revert_data
from chain_matchers.types import CustomError, NoRevertData, Panic, Reason, RevertKind, Unrelated

MATCHERS_ABI = Matchers.contract_abi()


def _reason(text: str) -> bytes:
    return ERROR_STRING_SELECTOR + encode(["string"], [text])


def _rpc_error(data) -> RpcError:
    return RpcError(ErrorCode.RPC_ERROR, "execution reverted", rpc_code=3, data=data)


# --- Raw payloads ---


def test_error_string() -> None:
    assert decode_revert_data(_reason("some reason")) == Reason("some reason")


def test_panic() -> None:
    cause = decode_revert_data(PANIC_SELECTOR + encode(["uint256"], [0x12]))
    assert cause == Panic(0x12)
    assert cause.hex_code == "0x12"
    assert cause.description == "Division or modulo division by zero"


def test_empty_payload() -> None:
    assert decode_revert_data(b"") == NoRevertData()


def test_custom_error_with_abi() -> None:
    data = MATCHERS_ABI.error("CustomErrorWithUintAndString").encode(5, "foo")
    cause = decode_revert_data(data, [MATCHERS_ABI])

    assert cause.kind is RevertKind.CUSTOM_ERROR
    assert cause.name == "CustomErrorWithUintAndString"
    assert cause.args == (5, "foo")
    assert cause.recognized


def test_custom_error_without_abi() -> None:
    data = MATCHERS_ABI.error("SomeCustomError").encode()
    cause = decode_revert_data(data)

    assert cause == CustomError(selector=data[:4])
    assert not cause.recognized


def test_custom_error_with_malformed_arguments() -> None:
    selector = MATCHERS_ABI.error("CustomErrorWithUint").selector
    cause = decode_revert_data(selector + b"\x01", [MATCHERS_ABI])

    assert cause == CustomError(selector=selector, name="CustomErrorWithUint", args=())


def test_short_and_malformed_payloads() -> None:
    assert decode_revert_data(b"\x01\x02") == CustomError(selector=b"\x01\x02")
    assert decode_revert_data(ERROR_STRING_SELECTOR + b"\x00" * 8) == CustomError(selector=ERROR_STRING_SELECTOR)
    assert decode_revert_data(PANIC_SELECTOR) == CustomError(selector=PANIC_SELECTOR)


# --- Error chains ---


def test_error_without_payload_is_unrelated() -> None:
    error = RuntimeError("connection refused")
    cause = decode(error)

    assert isinstance(cause, Unrelated)
    assert cause.error is error
    assert extract_revert_data(error) is None
    assert isinstance(decode(_rpc_error(None)), Unrelated)


def test_payload_forms() -> None:
    payload = _reason("some reason")

    assert decode(_rpc_error(payload)) == Reason("some reason")
    assert decode(_rpc_error("0x" + payload.hex())) == Reason("some reason")
    assert decode(_rpc_error({"data": "0x" + payload.hex()})) == Reason("some reason")
    assert decode(_rpc_error("not hex")) == NoRevertData()
    assert decode(TransactionRevertedError(ErrorCode.TRANSACTION_REVERTED, "reverted")) == NoRevertData()


def test_payload_found_in_cause_chain() -> None:
    payload = PANIC_SELECTOR + encode(["uint256"], [1])
    try:
        try:
            raise _rpc_error(payload)
        except RpcError as exc:
            raise RuntimeError("call failed") from exc
    except RuntimeError as exc:
        error = exc

    assert extract_revert_data(error) == payload
    assert decode(error) == Panic(1)


# --- Descriptions ---


@pytest.mark.parametrize(
    "cause, expected",
    [
        (Reason("some reason"), "with reason 'some reason'"),
        (Panic(0x01), "with panic code 0x01 (Assertion error)"),
        (Panic(0x99), "with panic code 0x99 (Unknown panic code)"),
        (CustomError(selector=b"\x00" * 4, name="SomeCustomError"), "with custom error 'SomeCustomError'"),
        (CustomError(selector=b"\x00" * 4), "with a custom error"),
        (NoRevertData(), "without a reason"),
    ],
)
def test_describe_cause(cause, expected: str) -> None:
    assert describe_cause(cause) == expected
