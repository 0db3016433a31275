"""
In-memory learner store for tests and embedding.

All stored values are immutable records, so nothing is copied on the way
in or out. Versions are checked exactly like the SQL store does.
"""
from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Mapping, Sequence
from typing import Any

from numeracy.core.errors import ConcurrentUpdateConflict
from numeracy.core.models import PrerequisiteSkillSnapshot, ProgressionState, TaskOutcome


class InMemoryLearnerStore:
    """Dict-backed LearnerStore."""

    def __init__(self) -> None:
        self._outcomes: dict[str, list[TaskOutcome]] = defaultdict(list)
        self._states: dict[str, ProgressionState] = {}
        self._skills: dict[str, PrerequisiteSkillSnapshot] = {}
        self._lock = threading.Lock()

    def load_recent_outcomes(self, user_id: str, window_size: int) -> Sequence[TaskOutcome]:
        if window_size <= 0:
            return []
        with self._lock:
            return list(self._outcomes.get(user_id, ())[-window_size:])

    def append_outcome(self, user_id: str, outcome: TaskOutcome) -> None:
        with self._lock:
            self._outcomes[user_id].append(outcome)

    def count_sessions(self, user_id: str) -> int:
        with self._lock:
            return len({o.session_id for o in self._outcomes.get(user_id, ()) if o.session_id})

    def load_progression_state(self, user_id: str) -> ProgressionState | None:
        with self._lock:
            return self._states.get(user_id)

    def save_progression_state(
        self,
        user_id: str,
        state: ProgressionState,
        outcome: TaskOutcome | None = None,
    ) -> None:
        with self._lock:
            stored = self._states.get(user_id)
            expected = stored.version if stored else 0
            if state.version != expected + 1:
                raise ConcurrentUpdateConflict(user_id, state.version - 1, expected)
            self._states[user_id] = state
            if outcome is not None:
                self._outcomes[user_id].append(outcome)

    def load_prerequisite_skills(self, user_id: str) -> PrerequisiteSkillSnapshot:
        with self._lock:
            return self._skills.get(user_id, PrerequisiteSkillSnapshot())

    def set_prerequisite_skills(self, user_id: str, skills: Mapping[str, Any]) -> None:
        """Replace the learner's skill snapshot (values are clamped to 0-10)."""
        with self._lock:
            self._skills[user_id] = PrerequisiteSkillSnapshot.from_mapping(skills)
