"""
Engine Data Models.

Immutable records shared by every component of the engine:

- TaskOutcome: one attempted arithmetic problem
- PrerequisiteSkillSnapshot: read-only 0-10 skill levels from the skill tracker
- LevelProgressRecord / ProgressionState: the learner's position and history
- RiskIndicator / InterventionRecommendation / RiskProfile: diagnostic output

All records are frozen dataclasses. State transitions produce new records
with dataclasses.replace(); nothing here is mutated in place.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from numeracy.core.errors import InvalidStateError
from numeracy.core.stages import number_range_for_level, stage_for_level


class Operation(str, Enum):
    """Arithmetic operation of a task."""

    ADD = "+"
    SUBTRACT = "-"

    @classmethod
    def parse(cls, value: str | Operation) -> Operation:
        """Accept symbols as well as the names used by older clients."""
        if isinstance(value, Operation):
            return value
        aliases = {"add": cls.ADD, "addition": cls.ADD, "subtract": cls.SUBTRACT, "subtraction": cls.SUBTRACT}
        normalized = str(value).strip().lower()
        if normalized in aliases:
            return aliases[normalized]
        return cls(normalized)

    def apply(self, number1: int, number2: int) -> int:
        if self is Operation.ADD:
            return number1 + number2
        return number1 - number2


class Strategy(str, Enum):
    """Solution strategy reported for a task."""

    COUNTING_ALL = "counting_all"
    COUNTING_ON = "counting_on"
    DECOMPOSITION = "decomposition"
    RECALL = "recall"
    OTHER = "other"


COUNTING_STRATEGIES = frozenset({Strategy.COUNTING_ALL, Strategy.COUNTING_ON})


class ErrorType(str, Enum):
    """Named error categories for incorrect answers."""

    COUNTING_ERROR_MINUS_1 = "counting_error_minus_1"
    COUNTING_ERROR_PLUS_1 = "counting_error_plus_1"
    COUNTING_ERROR_MINUS_2 = "counting_error_minus_2"
    COUNTING_ERROR_PLUS_2 = "counting_error_plus_2"
    OPERATION_CONFUSION = "operation_confusion"
    OFF_BY_TEN_MINUS = "off_by_ten_minus"
    OFF_BY_TEN_PLUS = "off_by_ten_plus"
    DOUBLING_ERROR = "doubling_error"
    DIGIT_REVERSAL = "digit_reversal"
    OTHER = "other"


class Severity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"


class RiskLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            RiskLevel.LOW: "green",
            RiskLevel.MODERATE: "yellow",
            RiskLevel.HIGH: "red",
            RiskLevel.CRITICAL: "bold red",
        }[self]


class Priority(str, Enum):
    IMMEDIATE = "immediate"
    HIGH = "high"
    MEDIUM = "medium"


def utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    return _as_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


def _format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ============================================================================
# Task outcomes
# ============================================================================


@dataclass(frozen=True)
class TaskOutcome:
    """
    One attempted problem, as recorded by the session layer.

    Attributes:
        operation: Addition or subtraction
        number1: First operand
        number2: Second operand
        correct_answer: Arithmetically correct result
        student_answer: What the learner entered (None if nothing was entered)
        is_correct: Whether the answer was accepted
        elapsed_ms: Time taken in milliseconds (None if not measured)
        timestamp: When the answer was submitted
        number_range: Number range the task was generated in (10, 20, 100)
        strategy: Strategy the learner used or reported
        error_type: Error category for incorrect answers
        session_id: Practice session the task belongs to
        level: Level the task was generated for
    """

    operation: Operation
    number1: int
    number2: int
    correct_answer: int
    student_answer: int | None
    is_correct: bool
    elapsed_ms: int | None = None
    timestamp: datetime = field(default_factory=utcnow)
    number_range: int = 20
    strategy: Strategy | None = None
    error_type: ErrorType | None = None
    session_id: str | None = None
    level: int | None = None

    @classmethod
    def build(
        cls,
        operation: Operation | str,
        number1: int,
        number2: int,
        student_answer: int | None,
        *,
        elapsed_ms: int | None = None,
        strategy: Strategy | str | None = None,
        timestamp: datetime | None = None,
        number_range: int | None = None,
        session_id: str | None = None,
        level: int | None = None,
    ) -> TaskOutcome:
        """
        Create an outcome from the raw task and the learner's answer.

        The correct answer and correctness flag are derived from the
        operands; incorrect answers are tagged with an error category.
        """
        from numeracy.diagnostics.error_classifier import classify_error

        op = Operation.parse(operation)
        correct_answer = op.apply(number1, number2)
        is_correct = student_answer is not None and student_answer == correct_answer
        if number_range is None:
            number_range = number_range_for_level(level) if level else (20 if correct_answer <= 20 else 100)
        return cls(
            operation=op,
            number1=number1,
            number2=number2,
            correct_answer=correct_answer,
            student_answer=student_answer,
            is_correct=is_correct,
            elapsed_ms=elapsed_ms,
            timestamp=timestamp or utcnow(),
            number_range=number_range,
            strategy=Strategy(strategy) if strategy else None,
            error_type=classify_error(op, number1, number2, correct_answer, student_answer),
            session_id=session_id,
            level=level,
        )

    @property
    def answer_difference(self) -> int | None:
        """Signed distance of the learner's answer from the correct one."""
        if self.student_answer is None:
            return None
        return self.student_answer - self.correct_answer

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation.value,
            "number1": self.number1,
            "number2": self.number2,
            "correct_answer": self.correct_answer,
            "student_answer": self.student_answer,
            "is_correct": self.is_correct,
            "elapsed_ms": self.elapsed_ms,
            "timestamp": _format_datetime(self.timestamp),
            "number_range": self.number_range,
            "strategy": self.strategy.value if self.strategy else None,
            "error_type": self.error_type.value if self.error_type else None,
            "session_id": self.session_id,
            "level": self.level,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TaskOutcome:
        """
        Rebuild an outcome from a stored or hand-written record.

        Records without correct_answer / is_correct are completed from
        the operands, the same way build() does it.
        """
        if "correct_answer" not in data or "is_correct" not in data:
            return cls.build(
                data["operation"],
                int(data["number1"]),
                int(data["number2"]),
                data.get("student_answer"),
                elapsed_ms=data.get("elapsed_ms"),
                strategy=data.get("strategy"),
                timestamp=_parse_datetime(data.get("timestamp")),
                number_range=data.get("number_range"),
                session_id=data.get("session_id"),
                level=data.get("level"),
            )
        return cls(
            operation=Operation.parse(data["operation"]),
            number1=int(data["number1"]),
            number2=int(data["number2"]),
            correct_answer=int(data["correct_answer"]),
            student_answer=data.get("student_answer"),
            is_correct=bool(data["is_correct"]),
            elapsed_ms=data.get("elapsed_ms"),
            timestamp=_parse_datetime(data.get("timestamp")) or utcnow(),
            number_range=int(data.get("number_range") or 20),
            strategy=Strategy(data["strategy"]) if data.get("strategy") else None,
            error_type=ErrorType(data["error_type"]) if data.get("error_type") else None,
            session_id=data.get("session_id"),
            level=data.get("level"),
        )


# ============================================================================
# Prerequisite skills
# ============================================================================

MAX_SKILL_LEVEL = 10.0


@dataclass(frozen=True)
class PrerequisiteSkillSnapshot:
    """
    Skill name -> proficiency (0-10), owned by the skill tracker.

    Values outside 0-10 are clamped on construction through from_mapping().
    """

    levels: Mapping[str, float] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> PrerequisiteSkillSnapshot:
        """
        Build a snapshot from plain numbers or {"level": n} entries.
        """
        levels: dict[str, float] = {}
        for skill, value in (mapping or {}).items():
            if isinstance(value, Mapping):
                value = value.get("level", 0)
            level = float(value or 0)
            levels[str(skill)] = min(MAX_SKILL_LEVEL, max(0.0, level))
        return cls(levels=levels)

    def __len__(self) -> int:
        return len(self.levels)

    def average_level(self) -> float:
        """Mean skill level normalized to [0, 1]; 0 when nothing is tracked."""
        if not self.levels:
            return 0.0
        return sum(self.levels.values()) / len(self.levels) / MAX_SKILL_LEVEL


# ============================================================================
# Progression
# ============================================================================


@dataclass(frozen=True)
class LevelProgressRecord:
    """
    Progress at one level.

    Counters only grow while the level is current. Once mastered_at is set
    the record is history and is never touched again (short of an
    administrative reset).
    """

    level: int
    unlocked_at: datetime
    mastered_at: datetime | None = None
    attempts: int = 0
    correct: int = 0
    total_time_ms: int = 0
    timed_attempts: int = 0
    recent_results: tuple[bool, ...] = ()
    last_attempt_at: datetime | None = None

    @property
    def is_mastered(self) -> bool:
        return self.mastered_at is not None

    @property
    def success_rate(self) -> float:
        return self.correct / self.attempts if self.attempts else 0.0

    @property
    def average_time_ms(self) -> float:
        return self.total_time_ms / self.timed_attempts if self.timed_attempts else 0.0

    def recent_success_rate(self, window: int) -> float:
        """Success rate over the last `window` attempts at this level."""
        recent = self.recent_results[-window:] if window > 0 else ()
        return sum(recent) / len(recent) if recent else 0.0

    def record_attempt(
        self,
        is_correct: bool,
        elapsed_ms: int | None,
        at: datetime,
        history_size: int,
    ) -> LevelProgressRecord:
        """Return a copy with one more attempt counted."""
        recent = (*self.recent_results, is_correct)[-history_size:]
        return replace(
            self,
            attempts=self.attempts + 1,
            correct=self.correct + (1 if is_correct else 0),
            total_time_ms=self.total_time_ms + (elapsed_ms or 0),
            timed_attempts=self.timed_attempts + (1 if elapsed_ms is not None else 0),
            recent_results=recent,
            last_attempt_at=at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "unlocked_at": _format_datetime(self.unlocked_at),
            "mastered_at": _format_datetime(self.mastered_at),
            "attempts": self.attempts,
            "correct": self.correct,
            "success_rate": round(self.success_rate, 4),
            "average_time_ms": round(self.average_time_ms, 1),
            "total_time_ms": self.total_time_ms,
            "timed_attempts": self.timed_attempts,
            "recent_results": list(self.recent_results),
            "last_attempt_at": _format_datetime(self.last_attempt_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LevelProgressRecord:
        return cls(
            level=int(data["level"]),
            unlocked_at=_parse_datetime(data.get("unlocked_at")) or utcnow(),
            mastered_at=_parse_datetime(data.get("mastered_at")),
            attempts=int(data.get("attempts", 0)),
            correct=int(data.get("correct", 0)),
            total_time_ms=int(data.get("total_time_ms", 0)),
            timed_attempts=int(data.get("timed_attempts", 0)),
            recent_results=tuple(bool(r) for r in data.get("recent_results", ())),
            last_attempt_at=_parse_datetime(data.get("last_attempt_at")),
        )


@dataclass(frozen=True)
class ProgressionState:
    """
    A learner's position in the level sequence.

    Attributes:
        current_level: Level the learner is working on
        current_stage: Stage derived from current_level
        levels: One record per level reached, ascending and contiguous
        current_streak: Consecutive correct answers (0 after any error)
        total_tasks: Tasks solved overall
        total_correct: Correct answers overall
        support_level: Representation support level (5 = all scaffolds)
        support_streak: Consecutive correct answers since the last support change
        version: Persistence version, bumped on every save
    """

    current_level: int = 1
    current_stage: int = 1
    levels: tuple[LevelProgressRecord, ...] = ()
    current_streak: int = 0
    total_tasks: int = 0
    total_correct: int = 0
    support_level: int = 5
    support_streak: int = 0
    version: int = 0

    @classmethod
    def initial(cls, level: int = 1, now: datetime | None = None) -> ProgressionState:
        """State of a learner who has not solved anything yet."""
        return cls(
            current_level=level,
            current_stage=stage_for_level(level),
            levels=(LevelProgressRecord(level=level, unlocked_at=now or utcnow()),),
        )

    @property
    def current_record(self) -> LevelProgressRecord:
        if not self.levels or self.levels[-1].level != self.current_level:
            raise InvalidStateError(f"No progress record for current level {self.current_level}")
        return self.levels[-1]

    def record_for(self, level: int) -> LevelProgressRecord | None:
        for record in self.levels:
            if record.level == level:
                return record
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_level": self.current_level,
            "current_stage": self.current_stage,
            "levels": [record.to_dict() for record in self.levels],
            "current_streak": self.current_streak,
            "total_tasks": self.total_tasks,
            "total_correct": self.total_correct,
            "support_level": self.support_level,
            "support_streak": self.support_streak,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProgressionState:
        levels = tuple(
            sorted(
                (LevelProgressRecord.from_dict(item) for item in data.get("levels", ())),
                key=lambda record: record.level,
            )
        )
        current_level = int(data.get("current_level", 1))
        return cls(
            current_level=current_level,
            current_stage=int(data.get("current_stage") or stage_for_level(max(1, current_level))),
            levels=levels,
            current_streak=int(data.get("current_streak", 0)),
            total_tasks=int(data.get("total_tasks", 0)),
            total_correct=int(data.get("total_correct", 0)),
            support_level=int(data.get("support_level", 5)),
            support_streak=int(data.get("support_streak", 0)),
            version=int(data.get("version", 0)),
        )


# ============================================================================
# Diagnostic output
# ============================================================================


@dataclass(frozen=True)
class RiskIndicator:
    """One evidence-backed screening criterion that fired."""

    criterion: str
    severity: Severity
    evidence: str
    citation: str

    def to_dict(self) -> dict[str, str]:
        return {
            "criterion": self.criterion,
            "severity": self.severity.value,
            "evidence": self.evidence,
            "citation": self.citation,
        }


@dataclass(frozen=True)
class InterventionRecommendation:
    """A recommended support measure."""

    priority: Priority
    intervention: str
    dosage: str
    materials: tuple[str, ...]
    expected_outcome: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "priority": self.priority.value,
            "intervention": self.intervention,
            "dosage": self.dosage,
            "materials": list(self.materials),
            "expected_outcome": self.expected_outcome,
        }


SCIENTIFIC_BASIS = (
    "Moser Opitz, E. (2013). Rechenschwäche/Dyskalkulie. Theoretische Klärungen "
    "und empirische Studien an betroffenen Schülerinnen und Schülern. Haupt Verlag."
)


@dataclass(frozen=True)
class RiskProfile:
    """
    Screening result for one learner.

    Confidence scales with the number of observed sessions; a critical
    rating with low confidence is not as actionable as one with high
    confidence, so both are always reported together.
    """

    risk_level: RiskLevel = RiskLevel.LOW
    confidence: float = 0.0
    indicators: tuple[RiskIndicator, ...] = ()
    recommendations: tuple[InterventionRecommendation, ...] = ()
    sample_size: int = 0
    scientific_basis: str = SCIENTIFIC_BASIS

    @classmethod
    def insufficient_evidence(cls) -> RiskProfile:
        """Profile returned when nothing has been observed yet."""
        return cls()

    def with_recommendations(
        self, recommendations: tuple[InterventionRecommendation, ...]
    ) -> RiskProfile:
        return replace(self, recommendations=tuple(recommendations))

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk_level": self.risk_level.value,
            "confidence": round(self.confidence, 3),
            "indicators": [indicator.to_dict() for indicator in self.indicators],
            "recommendations": [rec.to_dict() for rec in self.recommendations],
            "sample_size": self.sample_size,
            "scientific_basis": self.scientific_basis,
        }
