"""Core types for chain-matchers.

Settlements, revert causes and balance samples are plain dataclasses; every
tagged union is closed and distinguished by a ``kind`` class attribute.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union

from .panic_codes import format_panic_code, panic_description


@dataclass(frozen=True)
class Receipt:
    transaction_hash: str
    block_number: int
    status: int
    revert_data: Optional[bytes] = None
    from_address: Optional[str] = None
    to_address: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1


# --- Settlement ---


@dataclass(frozen=True)
class Success:
    receipt: Receipt


@dataclass(frozen=True, eq=False)
class Failure:
    error: BaseException


Settlement = Union[Success, Failure]


# --- Revert causes ---


class RevertKind(Enum):
    NO_REVERT_DATA = "no_revert_data"
    REASON = "reason"
    PANIC = "panic"
    CUSTOM_ERROR = "custom_error"
    UNRELATED = "unrelated"


@dataclass(frozen=True)
class NoRevertData:
    kind: ClassVar[RevertKind] = RevertKind.NO_REVERT_DATA


@dataclass(frozen=True)
class Reason:
    text: str
    kind: ClassVar[RevertKind] = RevertKind.REASON


@dataclass(frozen=True)
class Panic:
    code: int
    kind: ClassVar[RevertKind] = RevertKind.PANIC

    @property
    def description(self) -> str:
        return panic_description(self.code)

    @property
    def hex_code(self) -> str:
        return format_panic_code(self.code)


@dataclass(frozen=True)
class CustomError:
    selector: bytes
    name: Optional[str] = None
    args: tuple = ()
    kind: ClassVar[RevertKind] = RevertKind.CUSTOM_ERROR

    @property
    def recognized(self) -> bool:
        return self.name is not None


@dataclass(frozen=True, eq=False)
class Unrelated:
    error: BaseException
    kind: ClassVar[RevertKind] = RevertKind.UNRELATED


RevertCause = Union[NoRevertData, Reason, Panic, CustomError, Unrelated]


# --- Balances ---


@dataclass(frozen=True)
class NativeBalance:
    def __str__(self) -> str:
        return "ether"


@dataclass(frozen=True)
class TokenBalance:
    contract: object

    def __str__(self) -> str:
        return f"token {getattr(self.contract, 'address', self.contract)}"


BalanceSource = Union[NativeBalance, TokenBalance]
NATIVE = NativeBalance()


@dataclass(frozen=True)
class AccountBalanceSample:
    account: str
    source: BalanceSource
    block: int
    balance: int


@dataclass(frozen=True)
class BalanceDelta:
    account: str
    before: int
    after: int

    @property
    def delta(self) -> int:
        return self.after - self.before


@dataclass
class MatchOutcome:
    matcher: str
    passed: bool
    message: str = ""
