"""Terminal matcher exclusivity for one assertion chain."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .errors import illegal_chaining


class ChainState(Enum):
    UNSET = "unset"
    APPLIED = "applied"


class ChainGuard:
    """Tracks which terminal matcher a chain has committed to.

    A chain accepts one terminal matcher, applied any number of times. Any
    other terminal matcher is rejected before it touches the network.
    """

    def __init__(self) -> None:
        self._applied: Optional[str] = None

    @property
    def state(self) -> ChainState:
        return ChainState.UNSET if self._applied is None else ChainState.APPLIED

    @property
    def applied_matcher(self) -> Optional[str]:
        return self._applied

    def assert_legal(self, name: str) -> None:
        if self._applied is not None and self._applied != name:
            raise illegal_chaining(name, self._applied)

    def mark_terminal(self, name: str) -> None:
        self.assert_legal(name)
        self._applied = name
