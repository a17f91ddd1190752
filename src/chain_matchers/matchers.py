"""Matcher facade: ``expect(subject).to.be.reverted()`` and friends.

Matchers validate their arguments and chain legality synchronously, register a
check on the assertion chain and return an awaitable. Awaiting any matcher of
a chain evaluates the whole chain once: every check samples what it needs,
the subject executes a single time, then every check judges the shared
settlement.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional, Sequence

from .balance import BalanceDeltaEngine, ensure_bracketable, ensure_same_length
from .balance import ensure_token_contract
from .chain_guard import ChainGuard
from .checks.balance import (
    ChangeEtherBalanceCheck,
    ChangeEtherBalancesCheck,
    ChangeTokenBalanceCheck,
    ChangeTokenBalancesCheck,
)
from .checks.base import Check
from .checks.reverted import (
    RevertedCheck,
    RevertedWithCheck,
    RevertedWithCustomErrorCheck,
    RevertedWithoutReasonCheck,
    RevertedWithPanicCheck,
)
from .checks.reverted import any_uint, any_value  # noqa: F401
from .config import (
    CHANGE_ETHER_BALANCE_MATCHER,
    CHANGE_ETHER_BALANCES_MATCHER,
    CHANGE_TOKEN_BALANCE_MATCHER,
    CHANGE_TOKEN_BALANCES_MATCHER,
    REVERTED_MATCHER,
    REVERTED_WITH_CUSTOM_ERROR_MATCHER,
    REVERTED_WITH_MATCHER,
    REVERTED_WITH_PANIC_MATCHER,
    REVERTED_WITHOUT_REASON_MATCHER,
)
from .errors import ErrorCode, MatcherUsageError
from .provider import Provider
from .subject import Subject
from .types import MatchOutcome

logger = logging.getLogger(__name__)


class PendingMatch:
    """Awaitable handle returned by every matcher."""

    def __init__(self, assertion: "Assertion", check: Check):
        self._assertion = assertion
        self._check = check

    @property
    def and_(self) -> "Assertion":
        return self._assertion

    def with_args(self, *expected: Any) -> "PendingMatch":
        if not isinstance(self._check, RevertedWithCustomErrorCheck):
            raise MatcherUsageError(
                ErrorCode.ILLEGAL_CHAINING,
                "with_args() can only be used after reverted_with_custom_error()",
            )
        self._assertion.ensure_open("withArgs")
        self._check.with_args(expected)
        return self

    def __await__(self):
        return self._assertion.evaluate().__await__()


class Assertion:
    """One assertion chain over one subject."""

    def __init__(self, subject: Subject, engine: BalanceDeltaEngine):
        self.subject = subject
        self.engine = engine
        self.guard = ChainGuard()
        self.negated = False
        self.checks: List[Check] = []
        self.outcomes: List[MatchOutcome] = []
        self._evaluation: Optional[asyncio.Future] = None

    # --- Chaining words ---

    @property
    def to(self) -> "Assertion":
        return self

    @property
    def be(self) -> "Assertion":
        return self

    @property
    def been(self) -> "Assertion":
        return self

    @property
    def that(self) -> "Assertion":
        return self

    @property
    def and_(self) -> "Assertion":
        return self

    @property
    def not_(self) -> "Assertion":
        self.negated = True
        return self

    # --- Registration and evaluation ---

    def ensure_open(self, name: str) -> None:
        if self._evaluation is not None:
            raise MatcherUsageError(
                ErrorCode.CHAIN_ALREADY_EVALUATED,
                f"The matcher '{name}' cannot be added to an assertion that is already evaluated",
            )

    def _register(self, name: str, build: Callable[[], Check]) -> PendingMatch:
        self.ensure_open(name)
        self.guard.assert_legal(name)
        check = build()
        self.guard.mark_terminal(name)
        self.checks.append(check)
        return PendingMatch(self, check)

    def evaluate(self) -> asyncio.Future:
        if self._evaluation is None:
            self._evaluation = asyncio.ensure_future(self._run())
        return self._evaluation

    async def _run(self) -> None:
        for check in self.checks:
            await check.before()
        settlement = await self.subject.settle()
        for check in self.checks:
            outcome = await check.after(settlement)
            self.outcomes.append(outcome)
            logger.debug("%s: %s", outcome.matcher, "passed" if outcome.passed else outcome.message)
            if not outcome.passed:
                raise AssertionError(outcome.message)

    # --- Revert matchers ---

    def reverted(self) -> PendingMatch:
        return self._register(REVERTED_MATCHER, lambda: RevertedCheck(self.negated))

    def reverted_with(self, reason: Any) -> PendingMatch:
        return self._register(
            REVERTED_WITH_MATCHER,
            lambda: RevertedWithCheck(reason, self.negated),
        )

    def reverted_with_custom_error(self, contract: Any, name: str) -> PendingMatch:
        return self._register(
            REVERTED_WITH_CUSTOM_ERROR_MATCHER,
            lambda: RevertedWithCustomErrorCheck(contract, name, self.negated),
        )

    def reverted_with_panic(self, code: Any = None) -> PendingMatch:
        return self._register(
            REVERTED_WITH_PANIC_MATCHER,
            lambda: RevertedWithPanicCheck(code, self.negated),
        )

    def reverted_without_reason(self) -> PendingMatch:
        return self._register(
            REVERTED_WITHOUT_REASON_MATCHER,
            lambda: RevertedWithoutReasonCheck(self.negated),
        )

    # --- Balance matchers ---

    def change_ether_balance(self, account: Any, delta: Any) -> PendingMatch:
        def build() -> Check:
            check = ChangeEtherBalanceCheck(self.engine, account, delta, self.negated)
            ensure_bracketable(self.subject, CHANGE_ETHER_BALANCE_MATCHER)
            return check

        return self._register(CHANGE_ETHER_BALANCE_MATCHER, build)

    def change_ether_balances(self, accounts: Sequence[Any], deltas: Any) -> PendingMatch:
        def build() -> Check:
            ensure_same_length(accounts, deltas)
            check = ChangeEtherBalancesCheck(self.engine, accounts, deltas, self.negated)
            ensure_bracketable(self.subject, CHANGE_ETHER_BALANCES_MATCHER)
            return check

        return self._register(CHANGE_ETHER_BALANCES_MATCHER, build)

    def change_token_balance(self, token: Any, account: Any, delta: Any) -> PendingMatch:
        def build() -> Check:
            contract = ensure_token_contract(token, CHANGE_TOKEN_BALANCE_MATCHER)
            check = ChangeTokenBalanceCheck(self.engine, contract, account, delta, self.negated)
            ensure_bracketable(self.subject, CHANGE_TOKEN_BALANCE_MATCHER)
            return check

        return self._register(CHANGE_TOKEN_BALANCE_MATCHER, build)

    def change_token_balances(self, token: Any, accounts: Sequence[Any], deltas: Any) -> PendingMatch:
        def build() -> Check:
            contract = ensure_token_contract(token, CHANGE_TOKEN_BALANCES_MATCHER)
            ensure_same_length(accounts, deltas)
            check = ChangeTokenBalancesCheck(self.engine, contract, accounts, deltas, self.negated)
            ensure_bracketable(self.subject, CHANGE_TOKEN_BALANCES_MATCHER)
            return check

        return self._register(CHANGE_TOKEN_BALANCES_MATCHER, build)


def expect_for(provider: Provider) -> Callable[[Any], Assertion]:
    """Bind ``expect`` to a provider."""
    engine = BalanceDeltaEngine(provider)

    def expect(subject: Any) -> Assertion:
        return Assertion(Subject.of(subject, provider), engine)

    return expect
