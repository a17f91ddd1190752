"""chain-matchers error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional


class ErrorCategory(IntEnum):
    USAGE = 0x01
    ENVIRONMENT = 0x02


class ErrorCode(IntEnum):
    # Usage: raised synchronously, before any network interaction
    INVALID_TX_HASH = 0x0100
    UNSUPPORTED_SUBJECT = 0x0101
    INVALID_ARGUMENT = 0x0102
    INVALID_CONTRACT = 0x0103
    NOT_A_TOKEN = 0x0104
    UNKNOWN_CUSTOM_ERROR = 0x0105
    LENGTH_MISMATCH = 0x0106
    ILLEGAL_CHAINING = 0x0107
    UNBRACKETED_SUBJECT = 0x0108
    CHAIN_ALREADY_EVALUATED = 0x0109

    # Environment: surfaced by the awaited assertion
    NON_ERROR_REJECTION = 0x0200
    MULTIPLE_TRANSACTIONS_IN_BLOCK = 0x0201
    TRANSACTION_REVERTED = 0x0202
    RECEIPT_TIMEOUT = 0x0203
    RPC_ERROR = 0x0204
    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory(self >> 8)


@dataclass(frozen=True)
class MatcherError(Exception):
    code: ErrorCode
    message: str

    def __str__(self) -> str:
        # Messages are matched literally by golden tests; the code stays in repr().
        return self.message


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(
    ("__traceback__", "__context__", "__cause__", "__suppress_context__", "__notes__")
)


def _thaw_exception_attrs(cls: type) -> type:
    frozen_setattr = cls.__setattr__

    def _setattr(self: Any, name: str, value: object) -> None:
        if name in _EXCEPTION_ATTRS:
            object.__setattr__(self, name, value)
        else:
            frozen_setattr(self, name, value)

    cls.__setattr__ = _setattr  # type: ignore[method-assign]
    return cls


_thaw_exception_attrs(MatcherError)


class MatcherUsageError(MatcherError):
    """Misuse of a matcher, detected before anything is executed."""


class InvalidTransactionHashError(MatcherUsageError, TypeError):
    pass


class InvalidArgumentError(MatcherUsageError, TypeError):
    pass


class IllegalChainingError(MatcherUsageError):
    pass


class UnbracketedSubjectError(MatcherUsageError):
    pass


class NotATokenError(MatcherUsageError):
    pass


class LengthMismatchError(MatcherUsageError):
    pass


class NonErrorRejectionError(MatcherError, AssertionError):
    """The subject failed with something that is not an exception."""


class MultipleTransactionsInBlockError(MatcherError):
    pass


class ReceiptTimeoutError(MatcherError):
    pass


@_thaw_exception_attrs
@dataclass(frozen=True, eq=False)
class TransactionRevertedError(MatcherError):
    """A mined transaction whose receipt reports failure."""

    data: bytes = b""
    receipt: Optional[Any] = None


@_thaw_exception_attrs
@dataclass(frozen=True, eq=False)
class RpcError(MatcherError):
    """A JSON-RPC error object returned by the node."""

    rpc_code: int = 0
    data: Optional[Any] = None


def invalid_tx_hash(value: object) -> InvalidTransactionHashError:
    return InvalidTransactionHashError(
        ErrorCode.INVALID_TX_HASH,
        f"Expected a valid transaction hash, but got '{value}'",
    )


def illegal_chaining(matcher: str, previous: str) -> IllegalChainingError:
    return IllegalChainingError(
        ErrorCode.ILLEGAL_CHAINING,
        f"The matcher '{matcher}' cannot be chained after '{previous}'.",
    )


def length_mismatch(accounts: int, expectations: int) -> LengthMismatchError:
    return LengthMismatchError(
        ErrorCode.LENGTH_MISMATCH,
        f"The number of accounts ({accounts}) is different than "
        f"the number of expected balance changes ({expectations})",
    )


def non_error_rejection() -> NonErrorRejectionError:
    return NonErrorRejectionError(ErrorCode.NON_ERROR_REJECTION, "Expected an Error object")


def multiple_transactions_in_block() -> MultipleTransactionsInBlockError:
    return MultipleTransactionsInBlockError(
        ErrorCode.MULTIPLE_TRANSACTIONS_IN_BLOCK,
        "Multiple transactions found in block",
    )
