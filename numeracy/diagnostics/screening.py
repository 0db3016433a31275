"""
Screening pipeline: analyzer -> risk classifier -> intervention generator.
"""
from __future__ import annotations

from collections.abc import Sequence

from numeracy.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from numeracy.core.models import PrerequisiteSkillSnapshot, ProgressionState, RiskProfile, TaskOutcome
from numeracy.diagnostics.analyzer import analyze_outcomes
from numeracy.diagnostics.interventions import (
    DEFAULT_INTERVENTIONS,
    InterventionTemplate,
    generate_interventions,
)
from numeracy.diagnostics.risk import classify_risk


def screen_learner(
    outcomes: Sequence[TaskOutcome],
    skills: PrerequisiteSkillSnapshot | None,
    session_count: int,
    state: ProgressionState | None = None,
    *,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    interventions: Sequence[InterventionTemplate] = DEFAULT_INTERVENTIONS,
) -> RiskProfile:
    """
    Build a complete risk profile from an outcome history.

    Args:
        outcomes: Outcome history, oldest first; only the configured window is used
        skills: Prerequisite skill snapshot
        session_count: Number of practice sessions observed
        state: Current progression state, if known
        config: Engine thresholds
        interventions: Intervention table

    Returns:
        RiskProfile including recommendations
    """
    analysis = analyze_outcomes(outcomes, config)
    profile = classify_risk(analysis, skills, session_count, config=config)
    return profile.with_recommendations(generate_interventions(profile.indicators, state, interventions))
