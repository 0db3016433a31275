"""
Progression module: level state machine and support-level adapter.
"""
from numeracy.progression.state_machine import (
    LevelProgress,
    MasteryPolicy,
    Milestone,
    ProgressionStateMachine,
    ProgressionUpdate,
    RegressionPolicy,
    Transition,
    validate_state,
)
from numeracy.progression.support import (
    MAX_SUPPORT_LEVEL,
    MIN_SUPPORT_LEVEL,
    SCAFFOLDS_BY_LEVEL,
    SUPPORT_DESCRIPTIONS,
    Scaffold,
    SupportLevel,
    SupportLevelAdapter,
    recommended_support_for_level,
)

__all__ = [
    "LevelProgress",
    "MasteryPolicy",
    "Milestone",
    "ProgressionStateMachine",
    "ProgressionUpdate",
    "RegressionPolicy",
    "Transition",
    "validate_state",
    "MAX_SUPPORT_LEVEL",
    "MIN_SUPPORT_LEVEL",
    "SCAFFOLDS_BY_LEVEL",
    "SUPPORT_DESCRIPTIONS",
    "Scaffold",
    "SupportLevel",
    "SupportLevelAdapter",
    "recommended_support_for_level",
]
