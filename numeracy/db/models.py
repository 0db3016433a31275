"""
SQLAlchemy models for the learner store.

Tables:
- learner_progressions: one row per learner, progression state as JSON
  plus the optimistic-concurrency version
- task_outcomes: append-only outcome history
- prerequisite_skills: skill levels written by the skill tracker
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class LearnerProgression(Base):
    """Current progression state of a learner."""

    __tablename__ = "learner_progressions"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    state: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<LearnerProgression {self.user_id} level={self.current_level} v{self.version}>"


class TaskOutcomeRecord(Base):
    """One attempted task."""

    __tablename__ = "task_outcomes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    session_id: Mapped[str | None] = mapped_column(String(64), index=True)

    operation: Mapped[str] = mapped_column(String(1), nullable=False)
    number1: Mapped[int] = mapped_column(Integer, nullable=False)
    number2: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_answer: Mapped[int] = mapped_column(Integer, nullable=False)
    student_answer: Mapped[int | None] = mapped_column(Integer)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    elapsed_ms: Mapped[int | None] = mapped_column(Integer)
    number_range: Mapped[int] = mapped_column(Integer, default=20)
    strategy: Mapped[str | None] = mapped_column(Text)
    error_type: Mapped[str | None] = mapped_column(Text)
    level: Mapped[int | None] = mapped_column(Integer)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class PrerequisiteSkill(Base):
    """Proficiency (0-10) in one prerequisite skill."""

    __tablename__ = "prerequisite_skills"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    skill: Mapped[str] = mapped_column(String(100), primary_key=True)
    level: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )
