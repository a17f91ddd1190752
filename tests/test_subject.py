"""Tests for subject normalization and at-most-once execution."""

from __future__ import annotations

import asyncio

import pytest

from chain_matchers.errors import (
    ErrorCategory,
    ErrorCode,
    InvalidArgumentError,
    InvalidTransactionHashError,
    NonErrorRejectionError,
    TransactionRevertedError,
)
from chain_matchers.subject import ExecutionMemo, Subject, SubjectKind, is_tx_hash, settlement_from_receipt
from chain_matchers.types import Failure, Receipt, Success

TX_HASH = "0x" + "ab" * 32


class FakeProvider:
    """Returns a fixed receipt and counts receipt lookups."""

    def __init__(self, status: int = 1, revert_data: bytes = b""):
        self.status = status
        self.revert_data = revert_data
        self.lookups = 0

    async def wait_for_receipt(self, tx_hash: str) -> Receipt:
        self.lookups += 1
        return Receipt(
            transaction_hash=tx_hash,
            block_number=1,
            status=self.status,
            revert_data=self.revert_data if self.status == 0 else None,
        )


# --- Hashes ---


def test_is_tx_hash() -> None:
    assert is_tx_hash(TX_HASH)
    assert is_tx_hash(TX_HASH.upper().replace("0X", "0x"))
    assert not is_tx_hash(TX_HASH[2:])
    assert not is_tx_hash(TX_HASH + "00")
    assert not is_tx_hash("0x" + "zz" * 32)
    assert not is_tx_hash(b"\xab" * 32)


def test_settlement_from_receipt() -> None:
    ok = Receipt(transaction_hash=TX_HASH, block_number=3, status=1)
    assert settlement_from_receipt(ok) == Success(ok)

    failed = Receipt(transaction_hash=TX_HASH, block_number=3, status=0, revert_data=b"\x01\x02")
    settlement = settlement_from_receipt(failed)
    assert isinstance(settlement, Failure)
    assert isinstance(settlement.error, TransactionRevertedError)
    assert settlement.error.data == b"\x01\x02"
    assert settlement.error.receipt is failed
    assert settlement.error.code.category is ErrorCategory.ENVIRONMENT
    assert str(settlement.error) == f"Transaction {TX_HASH} reverted"


# --- Normalization ---


@pytest.mark.asyncio
async def test_subject_kinds() -> None:
    provider = FakeProvider()
    receipt = Receipt(transaction_hash=TX_HASH, block_number=1, status=1)

    assert Subject.of(TX_HASH, provider).kind is SubjectKind.HASH
    assert Subject.of(receipt, provider).kind is SubjectKind.RECEIPT
    assert Subject.of(lambda: TX_HASH, provider).kind is SubjectKind.CALLABLE

    future = asyncio.get_running_loop().create_future()
    subject = Subject.of(future, provider)
    assert subject.kind is SubjectKind.AWAITABLE
    assert not subject.started
    future.set_result(TX_HASH)
    assert subject.started


def test_subject_is_reused() -> None:
    subject = Subject.of(TX_HASH, FakeProvider())
    assert Subject.of(subject, FakeProvider()) is subject


def test_invalid_subjects() -> None:
    with pytest.raises(InvalidTransactionHashError) as info:
        Subject.of("0x1234", FakeProvider())
    assert info.value.code == ErrorCode.INVALID_TX_HASH
    assert info.value.code.category is ErrorCategory.USAGE

    with pytest.raises(InvalidArgumentError, match="Unsupported assertion subject of type 'bytes'") as info:
        Subject.of(b"\x00", FakeProvider())
    assert info.value.code == ErrorCode.UNSUPPORTED_SUBJECT


def test_deferred_and_started() -> None:
    async def send() -> str:
        return TX_HASH

    coro = send()
    subject = Subject.of(coro, FakeProvider())
    assert subject.is_deferred
    assert not subject.started
    coro.close()

    assert not Subject.of(TX_HASH, FakeProvider()).is_deferred
    assert Subject.of(lambda: TX_HASH, FakeProvider()).is_deferred


# --- Settlement ---


@pytest.mark.asyncio
async def test_hash_settles_through_provider() -> None:
    provider = FakeProvider()
    subject = Subject.of(TX_HASH, provider)

    first = await subject.settle()
    second = await subject.settle()

    assert isinstance(first, Success)
    assert first is second
    assert provider.lookups == 1
    assert subject.settled


@pytest.mark.asyncio
async def test_reverted_receipt_settles_as_failure() -> None:
    subject = Subject.of(TX_HASH, FakeProvider(status=0, revert_data=b"\xde\xad\xbe\xef"))
    settlement = await subject.settle()

    assert isinstance(settlement, Failure)
    assert settlement.error.data == b"\xde\xad\xbe\xef"


@pytest.mark.asyncio
async def test_callable_runs_once() -> None:
    calls = 0

    async def send() -> str:
        nonlocal calls
        calls += 1
        return TX_HASH

    subject = Subject.of(lambda: send(), FakeProvider())
    await asyncio.gather(subject.settle(), subject.settle(), subject.settle())
    await subject.settle()

    assert calls == 1


@pytest.mark.asyncio
async def test_raised_and_returned_errors_are_failures() -> None:
    async def raises() -> str:
        raise ValueError("boom")

    async def returns() -> Exception:
        return ValueError("boom")

    raised = await Subject.of(raises(), FakeProvider()).settle()
    returned = await Subject.of(returns(), FakeProvider()).settle()

    assert isinstance(raised, Failure) and isinstance(raised.error, ValueError)
    assert isinstance(returned, Failure) and isinstance(returned.error, ValueError)


@pytest.mark.asyncio
async def test_non_error_rejection() -> None:
    async def rpc_error_object() -> dict:
        return {"code": -32000, "message": "boom", "data": "0x"}

    with pytest.raises(NonErrorRejectionError, match="^Expected an Error object$"):
        await Subject.of(rpc_error_object(), FakeProvider()).settle()


@pytest.mark.asyncio
async def test_resolved_invalid_hash() -> None:
    with pytest.raises(InvalidTransactionHashError):
        await Subject.of(lambda: "0x1234", FakeProvider()).settle()


# --- ExecutionMemo ---


@pytest.mark.asyncio
async def test_memo_shares_one_execution() -> None:
    calls = 0
    receipt = Receipt(transaction_hash=TX_HASH, block_number=1, status=1)

    async def action() -> Success:
        nonlocal calls
        calls += 1
        await asyncio.sleep(0)
        return Success(receipt)

    memo = ExecutionMemo(action)
    assert not memo.started

    results = await asyncio.gather(*(memo.get() for _ in range(5)))

    assert calls == 1
    assert all(result is results[0] for result in results)
    assert memo.done


@pytest.mark.asyncio
async def test_cancelled_awaiter_leaves_execution_running() -> None:
    gate = asyncio.Event()
    receipt = Receipt(transaction_hash=TX_HASH, block_number=1, status=1)

    async def action() -> Success:
        await gate.wait()
        return Success(receipt)

    memo = ExecutionMemo(action)
    first = asyncio.ensure_future(memo.get())
    await asyncio.sleep(0)
    first.cancel()
    with pytest.raises(asyncio.CancelledError):
        await first

    gate.set()
    assert await memo.get() == Success(receipt)
