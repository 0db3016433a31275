"""
Core domain types: data models, stage map and error taxonomy.
"""
from numeracy.core.errors import ConcurrentUpdateConflict, InvalidStateError, NumeracyError
from numeracy.core.models import (
    COUNTING_STRATEGIES,
    SCIENTIFIC_BASIS,
    ErrorType,
    InterventionRecommendation,
    LevelProgressRecord,
    Operation,
    PrerequisiteSkillSnapshot,
    Priority,
    ProgressionState,
    RiskIndicator,
    RiskLevel,
    RiskProfile,
    Severity,
    Strategy,
    TaskOutcome,
    utcnow,
)
from numeracy.core.stages import MAX_STAGE, levels_in_stage, number_range_for_level, stage_for_level

__all__ = [
    # Models
    "TaskOutcome",
    "PrerequisiteSkillSnapshot",
    "LevelProgressRecord",
    "ProgressionState",
    "RiskIndicator",
    "RiskProfile",
    "InterventionRecommendation",
    # Enums
    "Operation",
    "Strategy",
    "ErrorType",
    "Severity",
    "RiskLevel",
    "Priority",
    "COUNTING_STRATEGIES",
    "SCIENTIFIC_BASIS",
    "utcnow",
    # Stages
    "MAX_STAGE",
    "stage_for_level",
    "levels_in_stage",
    "number_range_for_level",
    # Errors
    "NumeracyError",
    "InvalidStateError",
    "ConcurrentUpdateConflict",
]
