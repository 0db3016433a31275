"""
Numeracy Engine service.

Application layer over the pure components. Each call is a
read-compute-write cycle against a LearnerStore:

    submit_outcome:       load state -> support adapter -> state machine -> save
    compute_risk_profile: load window + skills + session count -> screening
    compute_support_level / request_support / reset_to_level

Submissions for one learner are serialized by a per-learner lock; across
processes the store's version check catches concurrent writers. Different
learners never share mutable state. Locks live only while some call holds
them, so the registry stays as small as the number of active learners.

A submission saves the new state and its outcome in one store write.
"""
from __future__ import annotations

import threading
import weakref
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime

from loguru import logger

from numeracy.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from numeracy.core.errors import InvalidStateError
from numeracy.core.models import ProgressionState, RiskProfile, TaskOutcome, utcnow
from numeracy.diagnostics.error_classifier import ensure_error_type
from numeracy.diagnostics.interventions import DEFAULT_INTERVENTIONS, InterventionTemplate
from numeracy.diagnostics.screening import screen_learner
from numeracy.progression.state_machine import ProgressionStateMachine, ProgressionUpdate
from numeracy.progression.support import SupportLevel, SupportLevelAdapter
from numeracy.store.base import LearnerStore


class NumeracyEngine:
    """
    Adaptive progression and diagnostics for many learners.

    Usage:
        engine = NumeracyEngine(InMemoryLearnerStore())
        state = engine.submit_outcome("u1", TaskOutcome.build("+", 3, 4, 7, elapsed_ms=2100))
        profile = engine.compute_risk_profile("u1")
    """

    def __init__(
        self,
        store: LearnerStore,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
        *,
        interventions: Sequence[InterventionTemplate] = DEFAULT_INTERVENTIONS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.config = config
        self.interventions = tuple(interventions)
        self.state_machine = ProgressionStateMachine(config, clock=clock)
        self.support = SupportLevelAdapter(config)
        self._clock = clock
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = self._locks[user_id] = threading.Lock()
            return lock

    @contextmanager
    def _learner(self, user_id: str) -> Iterator[None]:
        """Hold the learner's lock and tag invalid-state errors with the learner."""
        with self._lock_for(user_id):
            try:
                yield
            except InvalidStateError as exc:
                if exc.user_id is not None:
                    raise
                raise InvalidStateError(str(exc), user_id=user_id) from exc

    def _load_state(self, user_id: str) -> ProgressionState:
        state = self.store.load_progression_state(user_id)
        if state is None:
            logger.debug(f"New learner {user_id}, starting at level 1")
            return self.state_machine.initial_state()
        return self.state_machine.clamp_state(state, self._clock())

    def _save_state(
        self,
        user_id: str,
        loaded: ProgressionState,
        state: ProgressionState,
        outcome: TaskOutcome | None = None,
    ) -> ProgressionState:
        self.state_machine.validate(state)
        state = replace(state, version=loaded.version + 1)
        self.store.save_progression_state(user_id, state, outcome)
        return state

    # ========================================
    # Progression
    # ========================================

    def record_outcome(self, user_id: str, outcome: TaskOutcome) -> ProgressionUpdate:
        """
        Apply an outcome and persist it.

        Returns:
            ProgressionUpdate with the saved state

        Raises:
            InvalidStateError: If the stored state is corrupt
            ConcurrentUpdateConflict: If another writer saved first; neither
                the state nor the outcome is written then
        """
        outcome = ensure_error_type(outcome)
        with self._learner(user_id):
            loaded = self._load_state(user_id)
            now = self._clock()

            state = self.support.apply(loaded, outcome.is_correct)
            update = self.state_machine.apply(state, outcome, now)

            saved = self._save_state(user_id, loaded, update.state, outcome)

        logger.debug(
            f"{user_id}: {outcome.number1}{outcome.operation.value}{outcome.number2}="
            f"{outcome.student_answer} ({'correct' if outcome.is_correct else 'incorrect'}) "
            f"-> level {saved.current_level}, streak {saved.current_streak}"
        )
        return replace(update, state=saved)

    def submit_outcome(self, user_id: str, outcome: TaskOutcome) -> ProgressionState:
        """Apply an outcome and return the new progression state."""
        return self.record_outcome(user_id, outcome).state

    def get_progression_state(self, user_id: str) -> ProgressionState:
        """Stored state, or the initial state for a new learner (not saved)."""
        return self._load_state(user_id)

    def reset_to_level(self, user_id: str, level: int) -> ProgressionState:
        """
        Administrative reset to `level`.

        Also repairs a stored history with gaps below `level`.

        Raises:
            InvalidStateError: If level is outside the valid range
        """
        with self._learner(user_id):
            loaded = self.store.load_progression_state(user_id) or self.state_machine.initial_state()
            state = self.state_machine.reset_to_level(loaded, level, self._clock())
            saved = self._save_state(user_id, loaded, state)
        logger.info(f"{user_id} reset to level {saved.current_level}")
        return saved

    # ========================================
    # Support
    # ========================================

    def compute_support_level(self, user_id: str) -> SupportLevel:
        return self.support.snapshot(self._load_state(user_id))

    def request_support(self, user_id: str) -> SupportLevel:
        """Raise the learner's support level by one (ceiling 5)."""
        with self._learner(user_id):
            loaded = self._load_state(user_id)
            saved = self._save_state(user_id, loaded, self.support.request_support(loaded))
        return self.support.snapshot(saved)

    # ========================================
    # Diagnostics
    # ========================================

    def compute_risk_profile(self, user_id: str, *, fail_soft: bool = True) -> RiskProfile:
        """
        Screen the learner's recent outcome window.

        Args:
            user_id: Learner to screen
            fail_soft: Log failures and return the insufficient-evidence
                profile instead of raising

        Returns:
            RiskProfile with indicators and recommendations
        """
        try:
            outcomes = self.store.load_recent_outcomes(user_id, self.config.window_size)
            skills = self.store.load_prerequisite_skills(user_id)
            sessions = self.store.count_sessions(user_id)
            state = self.store.load_progression_state(user_id)
            return screen_learner(
                outcomes,
                skills,
                sessions,
                state,
                config=self.config,
                interventions=self.interventions,
            )
        except Exception:
            if not fail_soft:
                raise
            logger.exception(f"Risk profile computation failed for {user_id}")
            return RiskProfile.insufficient_evidence()
