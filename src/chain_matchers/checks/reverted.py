"""Revert-family checks: reverted, revertedWith, revertedWithCustomError,
revertedWithPanic and revertedWithoutReason."""

from __future__ import annotations

import re
from typing import Any, Optional, Pattern, Sequence, Tuple, Union

from eth_utils import is_hex_address

from ..abi import Contract, ContractAbi
from ..config import (
    REVERTED_MATCHER,
    REVERTED_WITH_CUSTOM_ERROR_MATCHER,
    REVERTED_WITH_MATCHER,
    REVERTED_WITH_PANIC_MATCHER,
    REVERTED_WITHOUT_REASON_MATCHER,
)
from ..errors import ErrorCode, InvalidArgumentError, MatcherUsageError
from ..panic_codes import format_panic_code, panic_description
from ..revert_decoder import decode, describe_cause
from ..types import (
    CustomError,
    Failure,
    MatchOutcome,
    NoRevertData,
    Panic,
    Reason,
    RevertCause,
    Settlement,
    Unrelated,
)
from .base import Check


class RevertCheck(Check):
    """Shared settlement handling for the revert family.

    Failures unrelated to contract execution (no revert payload anywhere in
    the error chain) are re-raised unchanged.
    """

    def abis(self) -> Sequence[ContractAbi]:
        return ()

    def cause_of(self, settlement: Settlement) -> Optional[RevertCause]:
        if not isinstance(settlement, Failure):
            return None
        cause = decode(settlement.error, self.abis())
        if isinstance(cause, Unrelated):
            raise settlement.error
        return cause

    async def after(self, settlement: Settlement) -> MatchOutcome:
        cause = self.cause_of(settlement)
        if cause is None:
            return self.not_reverted()
        return self.reverted(cause)

    def expectation(self) -> str:
        raise NotImplementedError

    def not_reverted(self) -> MatchOutcome:
        return self.outcome(
            False,
            f"Expected transaction to be reverted {self.expectation()}, but it didn't revert",
            "",
        )

    def mismatch(self, matched: bool, cause: RevertCause) -> MatchOutcome:
        return self.outcome(
            matched,
            f"Expected transaction to be reverted {self.expectation()}, "
            f"but it reverted {describe_cause(cause)}",
            f"Expected transaction NOT to be reverted {self.expectation()}, but it was",
        )

    def reverted(self, cause: RevertCause) -> MatchOutcome:
        raise NotImplementedError


class RevertedCheck(RevertCheck):
    matcher = REVERTED_MATCHER

    def not_reverted(self) -> MatchOutcome:
        return self.outcome(False, "Expected transaction to be reverted", "")

    def reverted(self, cause: RevertCause) -> MatchOutcome:
        negated_message = "Expected transaction NOT to be reverted"
        if isinstance(cause, (Reason, Panic)):
            negated_message += f", but it reverted {describe_cause(cause)}"
        return self.outcome(True, "", negated_message)


class RevertedWithCheck(RevertCheck):
    matcher = REVERTED_WITH_MATCHER

    def __init__(self, expected: Union[str, Pattern[str]], negated: bool = False):
        super().__init__(negated)
        if not isinstance(expected, (str, re.Pattern)):
            raise InvalidArgumentError(
                ErrorCode.INVALID_ARGUMENT,
                "Expected the revert reason to be a string or a regular expression",
            )
        self.expected = expected

    def expectation(self) -> str:
        shown = self.expected.pattern if isinstance(self.expected, re.Pattern) else self.expected
        return f"with reason '{shown}'"

    def matches(self, text: str) -> bool:
        if isinstance(self.expected, re.Pattern):
            return self.expected.search(text) is not None
        return text == self.expected

    def reverted(self, cause: RevertCause) -> MatchOutcome:
        matched = isinstance(cause, Reason) and self.matches(cause.text)
        return self.mismatch(matched, cause)


class RevertedWithoutReasonCheck(RevertCheck):
    matcher = REVERTED_WITHOUT_REASON_MATCHER

    def expectation(self) -> str:
        return "without a reason"

    def reverted(self, cause: RevertCause) -> MatchOutcome:
        return self.mismatch(isinstance(cause, NoRevertData), cause)


def _panic_code_arg(code: Any) -> Optional[int]:
    if code is None:
        return None
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    if isinstance(code, str):
        try:
            return int(code, 0)
        except ValueError:
            pass
    raise InvalidArgumentError(
        ErrorCode.INVALID_ARGUMENT,
        f"Expected the given panic code to be a number-like value, but got '{code}'",
    )


class RevertedWithPanicCheck(RevertCheck):
    matcher = REVERTED_WITH_PANIC_MATCHER

    def __init__(self, code: Any = None, negated: bool = False):
        super().__init__(negated)
        self.code = _panic_code_arg(code)

    def expectation(self) -> str:
        if self.code is None:
            return "with some panic code"
        return f"with panic code {format_panic_code(self.code)} ({panic_description(self.code)})"

    def reverted(self, cause: RevertCause) -> MatchOutcome:
        matched = isinstance(cause, Panic) and (self.code is None or cause.code == self.code)
        return self.mismatch(matched, cause)


# --- Custom errors ---


def any_value(value: Any) -> bool:
    """Argument predicate accepting anything."""
    return True


def any_uint(value: Any) -> bool:
    """Argument predicate accepting non-negative integers."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise AssertionError(f"anyUint expected its argument to be an integer, but it was '{value}'")
    if value < 0:
        raise AssertionError(f"anyUint expected its argument to be an unsigned integer, but it was {value}")
    return True


def ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _hex_bytes(text: str) -> Optional[bytes]:
    body = text[2:] if text[:2].lower() == "0x" else None
    if body is None:
        return None
    try:
        return bytes.fromhex(body)
    except ValueError:
        return None


def args_equal(actual: Any, expected: Any) -> bool:
    if isinstance(expected, bool) or isinstance(actual, bool):
        return type(expected) is type(actual) and expected == actual
    if isinstance(expected, (list, tuple)) and isinstance(actual, (list, tuple)):
        return len(expected) == len(actual) and all(
            args_equal(a, e) for a, e in zip(actual, expected)
        )
    if isinstance(actual, str) and isinstance(expected, str):
        if is_hex_address(actual) and is_hex_address(expected):
            return actual.lower() == expected.lower()
        return actual == expected
    if isinstance(actual, bytes) and isinstance(expected, str):
        return _hex_bytes(expected) == actual
    return actual == expected


class RevertedWithCustomErrorCheck(RevertCheck):
    matcher = REVERTED_WITH_CUSTOM_ERROR_MATCHER

    def __init__(self, contract: Any, name: str, negated: bool = False):
        super().__init__(negated)
        if not isinstance(contract, Contract):
            raise InvalidArgumentError(
                ErrorCode.INVALID_CONTRACT,
                "The first argument of .revertedWithCustomError must be the contract "
                "that defines the custom error",
            )
        if not isinstance(name, str):
            raise InvalidArgumentError(
                ErrorCode.INVALID_ARGUMENT,
                "Expected the custom error name to be a string",
            )
        if not contract.abi.has_error(name):
            raise MatcherUsageError(
                ErrorCode.UNKNOWN_CUSTOM_ERROR,
                f"The given contract doesn't have a custom error named '{name}'",
            )
        self.contract = contract
        self.name = name
        self.expected_args: Optional[Tuple[Any, ...]] = None

    def abis(self) -> Sequence[ContractAbi]:
        return (self.contract.abi,)

    def expectation(self) -> str:
        return f"with custom error '{self.name}'"

    def with_args(self, expected: Tuple[Any, ...]) -> None:
        if self.negated:
            raise MatcherUsageError(
                ErrorCode.ILLEGAL_CHAINING,
                "Do not combine .not_ with .with_args()",
            )
        self.expected_args = tuple(expected)

    def reverted(self, cause: RevertCause) -> MatchOutcome:
        if isinstance(cause, CustomError) and not cause.recognized:
            return self.outcome(
                False,
                f"Expected transaction to be reverted {self.expectation()}, "
                "but it reverted with a different custom error",
                "",
            )
        matched = isinstance(cause, CustomError) and cause.name == self.name
        if matched and self.expected_args is not None:
            return self.compare_args(cause.args)
        return self.mismatch(matched, cause)

    def compare_args(self, actual: Tuple[Any, ...]) -> MatchOutcome:
        prefix = f'Error in "{self.name}" custom error: '
        expected = self.expected_args or ()
        if len(actual) != len(expected):
            return self.outcome(
                False,
                prefix + f"Expected arguments array to have length {len(expected)}, "
                f"but it has {len(actual)}",
                "",
            )
        for index, (a, e) in enumerate(zip(actual, expected), start=1):
            where = f"Error in the {ordinal(index)} argument assertion: "
            if callable(e):
                try:
                    ok = bool(e(a))
                except AssertionError as exc:
                    return self.outcome(False, prefix + where + str(exc), "")
                if not ok:
                    return self.outcome(False, prefix + where + "The predicate did not return true", "")
            elif not args_equal(a, e):
                return self.outcome(
                    False,
                    prefix + where + f"expected {a!r} to equal {e!r}",
                    "",
                )
        return self.outcome(True, "", "")
