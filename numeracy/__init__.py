"""
Numeracy Engine.

Adaptive level progression and rule-based screening for early arithmetic
difficulties.
"""
from numeracy.config import DEFAULT_ENGINE_CONFIG, EngineConfig, Settings, get_settings
from numeracy.core import (
    ConcurrentUpdateConflict,
    InvalidStateError,
    NumeracyError,
    PrerequisiteSkillSnapshot,
    ProgressionState,
    RiskLevel,
    RiskProfile,
    TaskOutcome,
)
from numeracy.engine import NumeracyEngine
from numeracy.progression import ProgressionUpdate, SupportLevel
from numeracy.store import InMemoryLearnerStore, LearnerStore

__version__ = "0.1.0"

__all__ = [
    "ConcurrentUpdateConflict",
    "DEFAULT_ENGINE_CONFIG",
    "EngineConfig",
    "InMemoryLearnerStore",
    "InvalidStateError",
    "LearnerStore",
    "NumeracyEngine",
    "NumeracyError",
    "PrerequisiteSkillSnapshot",
    "ProgressionState",
    "ProgressionUpdate",
    "RiskLevel",
    "RiskProfile",
    "Settings",
    "SupportLevel",
    "TaskOutcome",
    "get_settings",
]
