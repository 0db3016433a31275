"""
Diagnostic Engine.

Screening for early arithmetic difficulties over a window of task outcomes.

Components:
- analyzer: strategy rates and systematic error patterns
- error_classifier: named error categories for wrong answers
- risk: rule table and risk-level aggregation
- interventions: intervention lookup table and generator
- screening: the three stages chained together
"""
from numeracy.diagnostics.analyzer import (
    OFF_BY_ONE,
    PART_WHOLE_DEFICIT,
    TEN_CROSSING_ERROR,
    StrategyAnalysis,
    analyze_outcomes,
    automatization_rate,
    counting_strategy_rate,
    decomposition_failure_rate,
    detect_systematic_errors,
    error_type_counts,
    structured_perception_rate,
)
from numeracy.diagnostics.error_classifier import classify_error, ensure_error_type
from numeracy.diagnostics.interventions import (
    DEFAULT_INTERVENTIONS,
    InterventionTemplate,
    generate_interventions,
    load_intervention_table,
)
from numeracy.diagnostics.risk import (
    RISK_LEVEL_RULES,
    RISK_RULES,
    RiskRule,
    aggregate_risk_level,
    classify_risk,
    compute_confidence,
)
from numeracy.diagnostics.screening import screen_learner

__all__ = [
    # Analyzer
    "StrategyAnalysis",
    "analyze_outcomes",
    "counting_strategy_rate",
    "automatization_rate",
    "structured_perception_rate",
    "decomposition_failure_rate",
    "detect_systematic_errors",
    "error_type_counts",
    "OFF_BY_ONE",
    "TEN_CROSSING_ERROR",
    "PART_WHOLE_DEFICIT",
    # Error classification
    "classify_error",
    "ensure_error_type",
    # Risk
    "RiskRule",
    "RISK_RULES",
    "RISK_LEVEL_RULES",
    "classify_risk",
    "aggregate_risk_level",
    "compute_confidence",
    # Interventions
    "InterventionTemplate",
    "DEFAULT_INTERVENTIONS",
    "generate_interventions",
    "load_intervention_table",
    # Pipeline
    "screen_learner",
]
