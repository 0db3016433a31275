"""
Progression State Machine.

Owns the learner's current level and its history. One state per level;
transitions are driven by submitted task outcomes:

- correct answer: attempts + 1, correct + 1, streak + 1
- incorrect answer: attempts + 1, streak reset to 0
- after every update the mastery policy decides whether to advance
- regression is never triggered by a single poor answer. The automatic
  regression policy is separate, disabled by default, and needs a much
  worse record over a longer window than advancing does (hysteresis)
- administrative resets move a learner to any level explicitly

Every transition is a pure function from (state, outcome) to a new state;
the caller persists the result.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from loguru import logger

from numeracy.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from numeracy.core.errors import InvalidStateError
from numeracy.core.models import LevelProgressRecord, ProgressionState, TaskOutcome, utcnow
from numeracy.core.stages import stage_for_level
from numeracy.progression.support import (
    MAX_SUPPORT_LEVEL,
    MIN_SUPPORT_LEVEL,
    recommended_support_for_level,
)


class Transition(str, Enum):
    """What happened to the current level after an update."""

    ADVANCED = "advanced"
    REMAINED = "remained"
    REGRESSED = "regressed"


@dataclass(frozen=True)
class Milestone:
    """Mastery of a level, as announced to the learner."""

    level: int
    title: str
    icon: str

    @classmethod
    def for_level(cls, level: int) -> Milestone:
        if level % 10 == 0:
            icon = "🏆"
        elif level % 5 == 0:
            icon = "⭐"
        else:
            icon = "✓"
        return cls(level=level, title=f"Level {level} mastered!", icon=icon)


@dataclass(frozen=True)
class LevelProgress:
    """Attempts at the current level relative to the mastery sample."""

    current: int
    total: int

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 0
        return min(100, round(self.current / self.total * 100))


@dataclass(frozen=True)
class ProgressionUpdate:
    """Result of applying one outcome."""

    state: ProgressionState
    previous_level: int
    transition: Transition
    level_progress: LevelProgress
    milestone: Milestone | None = None
    message: str = ""

    @property
    def level_changed(self) -> bool:
        return self.transition is not Transition.REMAINED


# ============================================================================
# Policies
# ============================================================================


class MasteryPolicy:
    """
    Decides when the current level is mastered.

    Mastered when at least `mastery_sample_min` attempts were made and the
    success rate over the last `mastery_window` attempts reaches
    `mastery_threshold`.
    """

    def __init__(self, config: EngineConfig = DEFAULT_ENGINE_CONFIG):
        self.config = config

    def is_mastered(self, record: LevelProgressRecord) -> bool:
        if record.is_mastered:
            return False
        if record.attempts < self.config.mastery_sample_min:
            return False
        return record.recent_success_rate(self.config.mastery_window) >= self.config.mastery_threshold


class RegressionPolicy:
    """
    Optional automatic demotion after sustained failure.

    Disabled unless `auto_regression_enabled` is set. Requires a full
    `regression_window` of attempts at the current level with a success
    rate below `regression_threshold`; EngineConfig guarantees this bar is
    stricter than the mastery bar so a learner cannot oscillate.
    """

    def __init__(self, config: EngineConfig = DEFAULT_ENGINE_CONFIG):
        self.config = config

    @property
    def enabled(self) -> bool:
        return self.config.auto_regression_enabled

    def should_regress(self, state: ProgressionState, record: LevelProgressRecord) -> bool:
        if not self.enabled or state.current_level <= 1:
            return False
        window = self.config.regression_window
        if len(record.recent_results) < window:
            return False
        return record.recent_success_rate(window) < self.config.regression_threshold


# ============================================================================
# Validation
# ============================================================================


def validate_state(state: ProgressionState, config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> None:
    """
    Check every progression invariant.

    Raises:
        InvalidStateError: On the first violated invariant
    """
    if not 1 <= state.current_level <= config.max_level:
        raise InvalidStateError(
            f"Current level {state.current_level} outside valid range 1-{config.max_level}"
        )
    if not state.levels:
        raise InvalidStateError("Level history is empty")

    previous: LevelProgressRecord | None = None
    for record in state.levels:
        if not 1 <= record.level <= config.max_level:
            raise InvalidStateError(f"Level {record.level} in history outside valid range 1-{config.max_level}")
        if previous is not None and record.level != previous.level + 1:
            raise InvalidStateError(
                f"Level history not contiguous: level {record.level} follows level {previous.level}"
            )
        if record.correct < 0 or record.attempts < record.correct:
            raise InvalidStateError(
                f"Level {record.level} has {record.correct} correct answers in {record.attempts} attempts"
            )
        previous = record

    current = state.levels[-1]
    if current.level != state.current_level:
        raise InvalidStateError(
            f"Current level {state.current_level} is not the last level in history ({current.level})"
        )
    for record in state.levels[:-1]:
        if not record.is_mastered:
            raise InvalidStateError(f"Level {record.level} was left without being mastered")
    if current.is_mastered and state.current_level < config.max_level:
        raise InvalidStateError(f"Current level {state.current_level} is already mastered")

    if state.current_stage != stage_for_level(state.current_level):
        raise InvalidStateError(
            f"Stage {state.current_stage} does not match level {state.current_level}"
        )
    if state.current_streak < 0 or not 0 <= state.total_correct <= state.total_tasks:
        raise InvalidStateError(
            f"Invalid totals: streak={state.current_streak} "
            f"correct={state.total_correct} tasks={state.total_tasks}"
        )
    if not MIN_SUPPORT_LEVEL <= state.support_level <= MAX_SUPPORT_LEVEL:
        raise InvalidStateError(f"Support level {state.support_level} outside 1-5")


# ============================================================================
# State machine
# ============================================================================


class ProgressionStateMachine:
    """
    Level progression for one learner at a time.

    Usage:
        machine = ProgressionStateMachine(config)
        update = machine.apply(state, outcome)
        save(update.state)
    """

    def __init__(
        self,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
        *,
        mastery_policy: MasteryPolicy | None = None,
        regression_policy: RegressionPolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config
        self.mastery_policy = mastery_policy or MasteryPolicy(config)
        self.regression_policy = regression_policy or RegressionPolicy(config)
        self._clock = clock

    def initial_state(self, level: int = 1) -> ProgressionState:
        """State for a learner without history, starting at `level`."""
        if not 1 <= level <= self.config.max_level:
            raise InvalidStateError(f"Start level {level} outside valid range 1-{self.config.max_level}")
        state = ProgressionState.initial(level, now=self._clock())
        return replace(state, support_level=recommended_support_for_level(level))

    def validate(self, state: ProgressionState) -> None:
        validate_state(state, self.config)

    # ----- updates -----------------------------------------------------

    def apply(
        self,
        state: ProgressionState,
        outcome: TaskOutcome,
        now: datetime | None = None,
    ) -> ProgressionUpdate:
        """
        Apply one outcome at the current level.

        Raises:
            InvalidStateError: If the incoming state is invalid
        """
        self.validate(state)
        now = now or self._clock()
        previous_level = state.current_level

        # A mastered final level is closed history; only the totals move.
        record = state.current_record
        if not record.is_mastered:
            record = record.record_attempt(
                outcome.is_correct,
                outcome.elapsed_ms,
                now,
                self.config.result_history_size,
            )
        state = replace(
            state,
            levels=(*state.levels[:-1], record),
            current_streak=state.current_streak + 1 if outcome.is_correct else 0,
            total_tasks=state.total_tasks + 1,
            total_correct=state.total_correct + (1 if outcome.is_correct else 0),
        )

        transition = Transition.REMAINED
        milestone: Milestone | None = None

        if self.mastery_policy.is_mastered(record):
            milestone = Milestone.for_level(record.level)
            state = self._master_current_level(state, now)
            if state.current_level != previous_level:
                transition = Transition.ADVANCED
        elif not record.is_mastered and self.regression_policy.should_regress(state, record):
            logger.warning(
                f"Automatic regression from level {previous_level}: "
                f"{record.recent_success_rate(self.config.regression_window):.0%} "
                f"over the last {self.config.regression_window} attempts"
            )
            state = self._rebuild_at_level(state, previous_level - 1, now)
            transition = Transition.REGRESSED

        self.validate(state)
        return ProgressionUpdate(
            state=state,
            previous_level=previous_level,
            transition=transition,
            level_progress=self._level_progress(state),
            milestone=milestone,
            message=self._message(outcome.is_correct, state.current_streak, milestone),
        )

    def _master_current_level(self, state: ProgressionState, now: datetime) -> ProgressionState:
        """Mark the current level mastered and unlock the next one."""
        mastered = replace(state.current_record, mastered_at=now)
        levels = (*state.levels[:-1], mastered)

        if state.current_level >= self.config.max_level:
            logger.info(f"Final level {state.current_level} mastered")
            return replace(state, levels=levels)

        new_level = state.current_level + 1
        new_stage = stage_for_level(new_level)
        logger.info(f"Level up: {state.current_level} -> {new_level}")
        return replace(
            state,
            current_level=new_level,
            current_stage=new_stage,
            levels=(*levels, LevelProgressRecord(level=new_level, unlocked_at=now)),
            support_streak=0 if new_stage != state.current_stage else state.support_streak,
        )

    # ----- administrative operations ----------------------------------

    def reset_to_level(
        self,
        state: ProgressionState,
        level: int,
        now: datetime | None = None,
    ) -> ProgressionState:
        """
        Move a learner to `level` with a fresh 0/10 record and the
        recommended support level for it.

        Lower levels keep their history (missing ones are back-filled as
        mastered so the history stays contiguous); higher levels are
        dropped. This is the only way, besides the opt-in regression
        policy, that a learner moves backwards.

        Raises:
            InvalidStateError: If level is outside the valid range
        """
        if not 1 <= level <= self.config.max_level:
            raise InvalidStateError(f"Cannot reset to level {level}: valid range is 1-{self.config.max_level}")
        logger.info(f"Resetting learner from level {state.current_level} to level {level}")
        new_state = replace(
            self._rebuild_at_level(state, level, now or self._clock()),
            support_level=recommended_support_for_level(level),
        )
        self.validate(new_state)
        return new_state

    def clamp_state(self, state: ProgressionState, now: datetime | None = None) -> ProgressionState:
        """
        Repair a stored state whose level ran outside the valid range.

        Out-of-range levels are reset to the nearest valid level and a
        stale stage number is recomputed. Any other invariant violation is
        left for validate() to reject.
        """
        now = now or self._clock()
        if state.current_level > self.config.max_level:
            logger.warning(f"Clamping level {state.current_level} to {self.config.max_level}")
            return self._rebuild_at_level(state, self.config.max_level, now)
        if state.current_level < 1:
            logger.warning(f"Clamping level {state.current_level} to 1")
            return self._rebuild_at_level(state, 1, now)

        expected_stage = stage_for_level(state.current_level)
        if state.current_stage != expected_stage:
            logger.warning(f"Correcting stage {state.current_stage} -> {expected_stage} for level {state.current_level}")
            return replace(state, current_stage=expected_stage)
        return state

    def _rebuild_at_level(self, state: ProgressionState, level: int, now: datetime) -> ProgressionState:
        existing = {record.level: record for record in state.levels if 1 <= record.level < level}
        kept: list[LevelProgressRecord] = []
        if existing:
            for n in range(min(existing), level):
                record = existing.get(n) or self._backfilled_record(n, now)
                kept.append(record if record.is_mastered else replace(record, mastered_at=now))

        return replace(
            state,
            current_level=level,
            current_stage=stage_for_level(level),
            levels=(*kept, LevelProgressRecord(level=level, unlocked_at=now)),
            current_streak=0,
            support_streak=0,
        )

    def _backfilled_record(self, level: int, now: datetime) -> LevelProgressRecord:
        sample = self.config.mastery_sample_min
        return LevelProgressRecord(
            level=level,
            unlocked_at=now,
            mastered_at=now,
            attempts=sample,
            correct=sample,
        )

    # ----- feedback ----------------------------------------------------

    def _level_progress(self, state: ProgressionState) -> LevelProgress:
        attempts = state.current_record.attempts
        total = self.config.mastery_sample_min
        return LevelProgress(current=min(attempts, total), total=total)

    @staticmethod
    def _message(is_correct: bool, streak: int, milestone: Milestone | None) -> str:
        if milestone is not None:
            return f"Level up! {milestone.icon}"
        if not is_correct:
            return ""
        if streak == 5:
            return "🔥 5 in a row!"
        if streak == 10:
            return "⚡ 10 in a row!"
        if streak > 10 and streak % 10 == 0:
            return f"🏆 {streak} in a row!"
        return ""
