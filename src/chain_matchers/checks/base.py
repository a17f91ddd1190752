"""Two-phase checks evaluated around one shared execution."""

from __future__ import annotations

from typing import ClassVar

from ..types import MatchOutcome, Settlement


class Check:
    """One terminal matcher registered on an assertion chain.

    ``before()`` runs for every check of the chain before the subject
    executes; ``after()`` receives the shared settlement once it exists.
    """

    matcher: ClassVar[str] = ""

    def __init__(self, negated: bool = False):
        self.negated = negated

    async def before(self) -> None:
        return None

    async def after(self, settlement: Settlement) -> MatchOutcome:
        raise NotImplementedError

    def outcome(self, condition: bool, message: str, negated_message: str) -> MatchOutcome:
        passed = condition != self.negated
        if passed:
            return MatchOutcome(self.matcher, True)
        return MatchOutcome(self.matcher, False, negated_message if self.negated else message)
