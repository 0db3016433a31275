"""
SQLAlchemy implementation of the LearnerStore port.

Progression states are saved with a versioned UPDATE: the row is only
written when its stored version is exactly one below the incoming state's
version. Anything else means another writer got there first and raises
ConcurrentUpdateConflict; the caller reloads and retries. An outcome passed
along with the state is written in the same transaction.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from loguru import logger
from sqlalchemy import Engine, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from numeracy.core.errors import ConcurrentUpdateConflict
from numeracy.core.models import PrerequisiteSkillSnapshot, ProgressionState, TaskOutcome
from numeracy.db.database import create_db_engine, init_db, make_session_factory, session_scope
from numeracy.db.models import LearnerProgression, PrerequisiteSkill, TaskOutcomeRecord


def _outcome_from_row(row: TaskOutcomeRecord) -> TaskOutcome:
    return TaskOutcome.from_dict(
        {
            "operation": row.operation,
            "number1": row.number1,
            "number2": row.number2,
            "correct_answer": row.correct_answer,
            "student_answer": row.student_answer,
            "is_correct": row.is_correct,
            "elapsed_ms": row.elapsed_ms,
            "timestamp": row.timestamp,
            "number_range": row.number_range,
            "strategy": row.strategy,
            "error_type": row.error_type,
            "session_id": row.session_id,
            "level": row.level,
        }
    )


def _row_from_outcome(user_id: str, outcome: TaskOutcome) -> TaskOutcomeRecord:
    return TaskOutcomeRecord(
        user_id=user_id,
        session_id=outcome.session_id,
        operation=outcome.operation.value,
        number1=outcome.number1,
        number2=outcome.number2,
        correct_answer=outcome.correct_answer,
        student_answer=outcome.student_answer,
        is_correct=outcome.is_correct,
        elapsed_ms=outcome.elapsed_ms,
        number_range=outcome.number_range,
        strategy=outcome.strategy.value if outcome.strategy else None,
        error_type=outcome.error_type.value if outcome.error_type else None,
        level=outcome.level,
        timestamp=outcome.timestamp,
    )


class SqlAlchemyLearnerStore:
    """LearnerStore backed by any SQLAlchemy database."""

    def __init__(self, engine: Engine, *, create_tables: bool = True):
        self.engine = engine
        self._session_factory: sessionmaker[Session] = make_session_factory(engine)
        if create_tables:
            init_db(engine)

    @classmethod
    def from_url(cls, database_url: str, **kwargs: Any) -> SqlAlchemyLearnerStore:
        return cls(create_db_engine(database_url), **kwargs)

    # ----- outcomes ----------------------------------------------------

    def load_recent_outcomes(self, user_id: str, window_size: int) -> Sequence[TaskOutcome]:
        if window_size <= 0:
            return []
        with session_scope(self._session_factory) as session:
            rows = session.scalars(
                select(TaskOutcomeRecord)
                .where(TaskOutcomeRecord.user_id == user_id)
                .order_by(TaskOutcomeRecord.id.desc())
                .limit(window_size)
            ).all()
            return [_outcome_from_row(row) for row in reversed(rows)]

    def append_outcome(self, user_id: str, outcome: TaskOutcome) -> None:
        with session_scope(self._session_factory) as session:
            session.add(_row_from_outcome(user_id, outcome))

    def count_sessions(self, user_id: str) -> int:
        with session_scope(self._session_factory) as session:
            count = session.scalar(
                select(func.count(func.distinct(TaskOutcomeRecord.session_id))).where(
                    TaskOutcomeRecord.user_id == user_id,
                    TaskOutcomeRecord.session_id.is_not(None),
                )
            )
            return int(count or 0)

    # ----- progression -------------------------------------------------

    def load_progression_state(self, user_id: str) -> ProgressionState | None:
        with session_scope(self._session_factory) as session:
            row = session.get(LearnerProgression, user_id)
            if row is None:
                return None
            data = dict(row.state)
            data["version"] = row.version
            return ProgressionState.from_dict(data)

    def save_progression_state(
        self,
        user_id: str,
        state: ProgressionState,
        outcome: TaskOutcome | None = None,
    ) -> None:
        expected = state.version - 1
        try:
            with session_scope(self._session_factory) as session:
                self._write_state(session, user_id, state, expected)
                if outcome is not None:
                    session.add(_row_from_outcome(user_id, outcome))
        except IntegrityError as exc:
            actual = self._stored_version(user_id)
            logger.warning(f"Insert conflict for {user_id}: stored version {actual}")
            raise ConcurrentUpdateConflict(user_id, expected, actual) from exc

    def _write_state(self, session: Session, user_id: str, state: ProgressionState, expected: int) -> None:
        payload = state.to_dict()
        if expected == 0:
            session.add(
                LearnerProgression(
                    user_id=user_id,
                    state=payload,
                    version=state.version,
                    current_level=state.current_level,
                )
            )
            session.flush()
            return

        result = session.execute(
            update(LearnerProgression)
            .where(
                LearnerProgression.user_id == user_id,
                LearnerProgression.version == expected,
            )
            .values(state=payload, version=state.version, current_level=state.current_level)
        )
        if result.rowcount != 1:
            actual = session.scalar(
                select(LearnerProgression.version).where(LearnerProgression.user_id == user_id)
            )
            logger.warning(f"Version conflict for {user_id}: expected {expected}, found {actual}")
            raise ConcurrentUpdateConflict(user_id, expected, actual)

    def _stored_version(self, user_id: str) -> int | None:
        with session_scope(self._session_factory) as session:
            return session.scalar(
                select(LearnerProgression.version).where(LearnerProgression.user_id == user_id)
            )

    # ----- prerequisite skills ----------------------------------------

    def load_prerequisite_skills(self, user_id: str) -> PrerequisiteSkillSnapshot:
        with session_scope(self._session_factory) as session:
            rows = session.scalars(
                select(PrerequisiteSkill).where(PrerequisiteSkill.user_id == user_id)
            ).all()
            return PrerequisiteSkillSnapshot.from_mapping({row.skill: row.level for row in rows})

    def set_prerequisite_skills(self, user_id: str, skills: Mapping[str, Any]) -> None:
        """Upsert skill levels for a learner (values are clamped to 0-10)."""
        snapshot = PrerequisiteSkillSnapshot.from_mapping(skills)
        with session_scope(self._session_factory) as session:
            for skill, level in snapshot.levels.items():
                row = session.get(PrerequisiteSkill, (user_id, skill))
                if row is None:
                    session.add(PrerequisiteSkill(user_id=user_id, skill=skill, level=level))
                else:
                    row.level = level
