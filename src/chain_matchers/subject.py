"""Assertion subjects and their at-most-once execution."""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from .config import TX_HASH_HEX_LENGTH
from .errors import ErrorCode, InvalidArgumentError, TransactionRevertedError
from .errors import invalid_tx_hash, non_error_rejection
from .provider import Provider
from .types import Failure, Receipt, Settlement, Success

logger = logging.getLogger(__name__)

_TX_HASH_RE = re.compile(rf"^0x[0-9a-fA-F]{{{TX_HASH_HEX_LENGTH}}}$")


def is_tx_hash(value: object) -> bool:
    return isinstance(value, str) and _TX_HASH_RE.match(value) is not None


def settlement_from_receipt(receipt: Receipt) -> Settlement:
    """A receipt with status 0 is a failure carrying the node's revert data."""
    if receipt.status == 0:
        return Failure(TransactionRevertedError(
            ErrorCode.TRANSACTION_REVERTED,
            f"Transaction {receipt.transaction_hash} reverted",
            data=receipt.revert_data or b"",
            receipt=receipt,
        ))
    return Success(receipt)


class SubjectKind(Enum):
    HASH = "hash"
    RECEIPT = "receipt"
    AWAITABLE = "awaitable"
    CALLABLE = "callable"


class ExecutionMemo:
    """Runs an async action at most once and shares its result.

    The first ``get()`` starts one task; later and concurrent callers attach to
    it through ``asyncio.shield`` so cancelling one awaiter leaves the shared
    execution running.
    """

    def __init__(self, action: Callable[[], Awaitable[Settlement]]):
        self._action = action
        self._task: Optional[asyncio.Future] = None

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    async def get(self) -> Settlement:
        if self._task is None:
            self._task = asyncio.ensure_future(self._action())
        return await asyncio.shield(self._task)


class Subject:
    """One transaction attempt, normalized from any supported shape."""

    def __init__(self, kind: SubjectKind, value: Any, provider: Provider):
        self.kind = kind
        self.value = value
        self.provider = provider
        self._memo = ExecutionMemo(self._execute)

    @classmethod
    def of(cls, value: Any, provider: Provider) -> "Subject":
        if isinstance(value, Subject):
            return value
        if isinstance(value, str):
            if not is_tx_hash(value):
                raise invalid_tx_hash(value)
            return cls(SubjectKind.HASH, value, provider)
        if isinstance(value, Receipt):
            return cls(SubjectKind.RECEIPT, value, provider)
        if inspect.isawaitable(value):
            return cls(SubjectKind.AWAITABLE, value, provider)
        if callable(value):
            return cls(SubjectKind.CALLABLE, value, provider)
        raise InvalidArgumentError(
            ErrorCode.UNSUPPORTED_SUBJECT,
            f"Unsupported assertion subject of type '{type(value).__name__}'",
        )

    @property
    def is_deferred(self) -> bool:
        """Whether the transaction has not been sent when the subject is wrapped."""
        return self.kind in (SubjectKind.AWAITABLE, SubjectKind.CALLABLE)

    @property
    def started(self) -> bool:
        if self._memo.started:
            return True
        if self.kind is SubjectKind.AWAITABLE:
            if inspect.iscoroutine(self.value):
                return inspect.getcoroutinestate(self.value) != inspect.CORO_CREATED
            if isinstance(self.value, asyncio.Future):
                return self.value.done()
        return False

    @property
    def settled(self) -> bool:
        return self._memo.done

    async def settle(self) -> Settlement:
        return await self._memo.get()

    async def _resolve(self) -> Any:
        value = self.value
        if self.kind is SubjectKind.CALLABLE:
            value = value()
        if inspect.isawaitable(value):
            value = await value
        return value

    async def _execute(self) -> Settlement:
        logger.debug("Executing %s subject", self.kind.value)
        try:
            value = await self._resolve()
        except Exception as exc:
            logger.debug("Subject raised %s", type(exc).__name__)
            return Failure(exc)

        if isinstance(value, BaseException):
            return Failure(value)
        if isinstance(value, Receipt):
            return settlement_from_receipt(value)
        if isinstance(value, str):
            if not is_tx_hash(value):
                raise invalid_tx_hash(value)
            receipt = await self.provider.wait_for_receipt(value)
            return settlement_from_receipt(receipt)
        # Mappings (bare JSON-RPC error objects) and anything else unrecognized.
        raise non_error_rejection()
