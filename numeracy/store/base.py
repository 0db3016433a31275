"""
Storage port used by the engine.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from numeracy.core.models import PrerequisiteSkillSnapshot, ProgressionState, TaskOutcome


class LearnerStore(Protocol):
    """Protocol for learner persistence adapters."""

    def load_recent_outcomes(self, user_id: str, window_size: int) -> Sequence[TaskOutcome]:
        """Most recent outcomes, oldest first."""
        ...

    def append_outcome(self, user_id: str, outcome: TaskOutcome) -> None:
        """Add one outcome to the learner's history."""
        ...

    def count_sessions(self, user_id: str) -> int:
        """Number of distinct practice sessions seen for the learner."""
        ...

    def load_progression_state(self, user_id: str) -> ProgressionState | None:
        """Stored state, or None for a new learner."""
        ...

    def load_prerequisite_skills(self, user_id: str) -> PrerequisiteSkillSnapshot:
        """Prerequisite skill snapshot (empty when nothing is tracked)."""
        ...

    def save_progression_state(
        self,
        user_id: str,
        state: ProgressionState,
        outcome: TaskOutcome | None = None,
    ) -> None:
        """
        Persist a state whose version is one above the stored version.

        When `outcome` is given it is appended in the same write, so the
        state and the outcome history never disagree.

        Raises ConcurrentUpdateConflict when the stored version moved on;
        nothing is written in that case.
        """
        ...
