"""Balance change checks for ether and ERC20 tokens."""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence, Union

from ..abi import Contract
from ..balance import BalanceDeltaEngine, account_address, token_description
from ..config import (
    CHANGE_ETHER_BALANCE_MATCHER,
    CHANGE_ETHER_BALANCES_MATCHER,
    CHANGE_TOKEN_BALANCE_MATCHER,
    CHANGE_TOKEN_BALANCES_MATCHER,
)
from ..errors import ErrorCode, InvalidArgumentError
from ..types import NATIVE, BalanceSource, MatchOutcome, Settlement, TokenBalance
from .base import Check
from .reverted import ordinal

Expectation = Union[int, Callable[[int], bool]]


def expected_delta(value: Any) -> Expectation:
    """Normalize one expected balance change: an integer or a predicate."""
    if callable(value):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value, 10)
        except ValueError:
            pass
    raise InvalidArgumentError(
        ErrorCode.INVALID_ARGUMENT,
        f"Expected the balance change to be an integer or a predicate, but got '{value}'",
    )


def delta_matches(delta: int, expected: Expectation) -> bool:
    if callable(expected):
        return bool(expected(delta))
    return delta == expected


def first_mismatch(deltas: Sequence[int], expectations: Sequence[Expectation]) -> Optional[int]:
    for index, (delta, expected) in enumerate(zip(deltas, expectations)):
        if not delta_matches(delta, expected):
            return index
    return None


def _quoted(accounts: Sequence[str]) -> str:
    return ", ".join(f'"{a}"' for a in accounts)


class BalanceCheck(Check):
    """Samples ``accounts`` around the chain's single execution."""

    def __init__(
        self,
        engine: BalanceDeltaEngine,
        accounts: Sequence[Any],
        source: BalanceSource,
        negated: bool = False,
    ):
        super().__init__(negated)
        self.engine = engine
        self.accounts = [account_address(a) for a in accounts]
        self.source = source
        self.bracket = engine.bracket(self.accounts, source)

    async def before(self) -> None:
        await self.bracket.capture_before()

    async def deltas(self, settlement: Settlement) -> List[int]:
        receipt = await self.engine.receipt_of(settlement)
        measurement = await self.bracket.capture_after(receipt)
        return measurement.values


# --- Ether ---


class ChangeEtherBalanceCheck(BalanceCheck):
    matcher = CHANGE_ETHER_BALANCE_MATCHER

    def __init__(self, engine: BalanceDeltaEngine, account: Any, expected: Any, negated: bool = False):
        super().__init__(engine, [account], NATIVE, negated)
        self.expected = expected_delta(expected)

    async def after(self, settlement: Settlement) -> MatchOutcome:
        (delta,) = await self.deltas(settlement)
        address = self.accounts[0]
        if callable(self.expected):
            return self.outcome(
                delta_matches(delta, self.expected),
                f'Expected the ether balance of "{address}" to satisfy the predicate, '
                f"but it didn't (balance change: {delta} wei)",
                f'Expected the ether balance of "{address}" to NOT satisfy the predicate, '
                f"but it did (balance change: {delta} wei)",
            )
        return self.outcome(
            delta == self.expected,
            f'Expected the ether balance of "{address}" to change by {self.expected} wei, '
            f"but it changed by {delta} wei",
            f'Expected the ether balance of "{address}" NOT to change by {self.expected} wei, '
            "but it did",
        )


class ChangeEtherBalancesCheck(BalanceCheck):
    matcher = CHANGE_ETHER_BALANCES_MATCHER

    def __init__(
        self,
        engine: BalanceDeltaEngine,
        accounts: Sequence[Any],
        expected: Any,
        negated: bool = False,
    ):
        super().__init__(engine, accounts, NATIVE, negated)
        if callable(expected):
            self.expected: Any = expected
        else:
            self.expected = [expected_delta(e) for e in expected]

    async def after(self, settlement: Settlement) -> MatchOutcome:
        deltas = await self.deltas(settlement)
        if callable(self.expected):
            return self.outcome(
                bool(self.expected(deltas)),
                "Expected the balance changes of the accounts to satisfy the predicate, "
                "but they didn't",
                "Expected the balance changes of the accounts to NOT satisfy the predicate, "
                "but they did",
            )

        index = first_mismatch(deltas, self.expected)
        if index is None:
            if not self.accounts:
                return self.outcome(True, "", "Expected the ether balances NOT to change, but they did")
            index = 0
        delta, expected = deltas[index], self.expected[index]
        subject = f'the ether balance of "{self.accounts[index]}" (the {ordinal(index + 1)} address in the list)'
        if callable(expected):
            return self.outcome(
                delta_matches(delta, expected),
                f"Expected {subject} to satisfy the predicate, but it didn't (balance change: {delta} wei)",
                f"Expected {subject} to NOT satisfy the predicate, but it did (balance change: {delta} wei)",
            )
        return self.outcome(
            delta == expected,
            f"Expected {subject} to change by {expected} wei, but it changed by {delta} wei",
            f"Expected {subject} NOT to change by {expected} wei, but it did",
        )


# --- Tokens ---


class ChangeTokenBalanceCheck(BalanceCheck):
    matcher = CHANGE_TOKEN_BALANCE_MATCHER

    def __init__(
        self,
        engine: BalanceDeltaEngine,
        token: Contract,
        account: Any,
        expected: Any,
        negated: bool = False,
    ):
        super().__init__(engine, [account], TokenBalance(token), negated)
        self.token = token
        self.expected = expected_delta(expected)

    async def after(self, settlement: Settlement) -> MatchOutcome:
        (delta,) = await self.deltas(settlement)
        description = await token_description(self.engine.provider, self.token)
        subject = f'the balance of {description} tokens for "{self.accounts[0]}"'
        if callable(self.expected):
            return self.outcome(
                delta_matches(delta, self.expected),
                f"Expected {subject} to satisfy the predicate, "
                f"but it didn't (token balance change: {delta} wei)",
                f"Expected {subject} to NOT satisfy the predicate, "
                f"but it did (token balance change: {delta} wei)",
            )
        return self.outcome(
            delta == self.expected,
            f"Expected {subject} to change by {self.expected}, but it changed by {delta}",
            f"Expected {subject} NOT to change by {self.expected}, but it did",
        )


class ChangeTokenBalancesCheck(BalanceCheck):
    matcher = CHANGE_TOKEN_BALANCES_MATCHER

    def __init__(
        self,
        engine: BalanceDeltaEngine,
        token: Contract,
        accounts: Sequence[Any],
        expected: Any,
        negated: bool = False,
    ):
        super().__init__(engine, accounts, TokenBalance(token), negated)
        self.token = token
        if callable(expected):
            self.expected: Any = expected
        else:
            self.expected = [expected_delta(e) for e in expected]

    async def after(self, settlement: Settlement) -> MatchOutcome:
        deltas = await self.deltas(settlement)
        description = await token_description(self.engine.provider, self.token)
        if callable(self.expected):
            return self.outcome(
                bool(self.expected(deltas)),
                f"Expected the balance changes of {description} to satisfy the predicate, "
                "but they didn't",
                f"Expected the balance changes of {description} to NOT satisfy the predicate, "
                "but they did",
            )

        if any(callable(e) for e in self.expected):
            return self._entry_outcome(deltas, description)

        subject = f"the balances of {description} tokens for {_quoted(self.accounts)}"
        expected = ", ".join(str(e) for e in self.expected)
        actual = ", ".join(str(d) for d in deltas)
        return self.outcome(
            all(delta_matches(d, e) for d, e in zip(deltas, self.expected)),
            f"Expected {subject} to change by {expected}, respectively, "
            f"but they changed by {actual}",
            f"Expected {subject} NOT to change by {expected}, respectively, but they did",
        )

    def _entry_outcome(self, deltas: List[int], description: str) -> MatchOutcome:
        """Per-account message for lists that mix literals and predicates."""
        index = first_mismatch(deltas, self.expected)
        if index is None:
            index = 0
        delta, expected = deltas[index], self.expected[index]
        subject = (
            f'the balance of {description} tokens for "{self.accounts[index]}" '
            f"(the {ordinal(index + 1)} address in the list)"
        )
        if callable(expected):
            return self.outcome(
                delta_matches(delta, expected),
                f"Expected {subject} to satisfy the predicate, "
                f"but it didn't (token balance change: {delta} wei)",
                f"Expected {subject} to NOT satisfy the predicate, "
                f"but it did (token balance change: {delta} wei)",
            )
        return self.outcome(
            delta == expected,
            f"Expected {subject} to change by {expected}, but it changed by {delta}",
            f"Expected {subject} NOT to change by {expected}, but it did",
        )
