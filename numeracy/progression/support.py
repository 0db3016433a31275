"""
Support-Level Adapter.

Representation support (scaffolding) from 5 (everything shown) down to 1
(symbolic only). Support is faded automatically: every
`streak_for_support_drop` consecutive correct answers lower the level by
one. Nothing ever raises it automatically; the learner (or an educator) asks
for more help explicitly through request_support().
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from loguru import logger

from numeracy.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from numeracy.core.models import ProgressionState

MIN_SUPPORT_LEVEL = 1
MAX_SUPPORT_LEVEL = 5


class Scaffold(str, Enum):
    """A representation shown next to the task."""

    SYMBOLIC = "symbolic"
    TWENTY_FRAME = "twenty_frame"
    NUMBER_LINE = "number_line"
    DECOMPOSITION = "decomposition"
    STRATEGY_HINT = "strategy_hint"


SCAFFOLDS_BY_LEVEL: dict[int, tuple[Scaffold, ...]] = {
    1: (Scaffold.SYMBOLIC,),
    2: (Scaffold.SYMBOLIC, Scaffold.TWENTY_FRAME),
    3: (Scaffold.TWENTY_FRAME, Scaffold.SYMBOLIC, Scaffold.NUMBER_LINE),
    4: (Scaffold.TWENTY_FRAME, Scaffold.SYMBOLIC, Scaffold.NUMBER_LINE, Scaffold.DECOMPOSITION),
    5: (
        Scaffold.TWENTY_FRAME,
        Scaffold.SYMBOLIC,
        Scaffold.NUMBER_LINE,
        Scaffold.DECOMPOSITION,
        Scaffold.STRATEGY_HINT,
    ),
}

SUPPORT_DESCRIPTIONS: dict[int, str] = {
    1: "Symbolic only: numbers without visual aids",
    2: "Symbolic with a twenty frame for checking",
    3: "Twenty frame, symbols and number line",
    4: "All representations plus decomposition",
    5: "Full support including strategy hints",
}


def recommended_support_for_level(level: int) -> int:
    """Starting support level for a learner at `level`."""
    if level <= 10:
        return 5
    if level <= 30:
        return 4
    if level <= 60:
        return 3
    if level <= 85:
        return 2
    return 1


@dataclass(frozen=True)
class SupportLevel:
    """Current support level and the streak counting towards the next drop."""

    level: int
    consecutive_correct: int = 0

    @property
    def scaffolds(self) -> tuple[Scaffold, ...]:
        return SCAFFOLDS_BY_LEVEL[self.level]

    @property
    def description(self) -> str:
        return SUPPORT_DESCRIPTIONS[self.level]

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "consecutive_correct": self.consecutive_correct,
            "scaffolds": [s.value for s in self.scaffolds],
            "description": self.description,
        }


class SupportLevelAdapter:
    """Adjusts ProgressionState.support_level / support_streak."""

    def __init__(self, config: EngineConfig = DEFAULT_ENGINE_CONFIG):
        self.config = config

    def apply(self, state: ProgressionState, is_correct: bool) -> ProgressionState:
        """
        Update the support counters for one answer.

        Args:
            state: Current state
            is_correct: Whether the answer was correct

        Returns:
            New state with updated support_level and support_streak
        """
        if not is_correct:
            return replace(state, support_streak=0)

        streak = state.support_streak + 1
        if streak < self.config.streak_for_support_drop:
            return replace(state, support_streak=streak)

        new_level = max(MIN_SUPPORT_LEVEL, state.support_level - 1)
        if new_level != state.support_level:
            logger.info(f"Support reduced: {state.support_level} -> {new_level}")
        return replace(state, support_level=new_level, support_streak=0)

    def request_support(self, state: ProgressionState) -> ProgressionState:
        """Raise support by one level (ceiling 5) and restart the streak."""
        new_level = min(MAX_SUPPORT_LEVEL, state.support_level + 1)
        if new_level != state.support_level:
            logger.info(f"Support requested: {state.support_level} -> {new_level}")
        return replace(state, support_level=new_level, support_streak=0)

    @staticmethod
    def snapshot(state: ProgressionState) -> SupportLevel:
        return SupportLevel(level=state.support_level, consecutive_correct=state.support_streak)
