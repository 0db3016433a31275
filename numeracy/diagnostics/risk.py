"""
Risk Classifier.

Rule-based screening for early arithmetic difficulties following the
criteria of Moser Opitz (2013) and Scherer:

1. Persistent counting strategy (main indicator)
2. Missing structured (quasi-simultaneous) quantity perception
3. No automatization after 50+ tasks
4. Weak prerequisite skills
5. Systematic error patterns

Each rule is an entry in RISK_RULES and contributes at most one
indicator. The risk level is then read off RISK_LEVEL_RULES top to bottom,
first match wins. Both tables are data so tests can enumerate every rule
on its own.
"""
from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from loguru import logger

from numeracy.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from numeracy.core.models import (
    PrerequisiteSkillSnapshot,
    RiskIndicator,
    RiskLevel,
    RiskProfile,
    Severity,
)
from numeracy.diagnostics.analyzer import StrategyAnalysis


@dataclass(frozen=True)
class RiskEvidence:
    """Everything a risk rule may look at."""

    analysis: StrategyAnalysis
    error_patterns: tuple[str, ...]
    skills: PrerequisiteSkillSnapshot
    session_count: int

    @property
    def task_count(self) -> int:
        return self.analysis.task_count


@dataclass(frozen=True)
class RiskRule:
    """
    One screening criterion.

    Attributes:
        key: Stable identifier for tests and logs
        criterion: Indicator name (matched by the intervention table)
        severity: Severity of the indicator when the rule fires
        citation: Literature reference backing the criterion
        applies: Predicate over the evidence and thresholds
        describe: Builds the human-readable evidence string
    """

    key: str
    criterion: str
    severity: Severity
    citation: str
    applies: Callable[[RiskEvidence, EngineConfig], bool]
    describe: Callable[[RiskEvidence], str]

    def evaluate(self, evidence: RiskEvidence, config: EngineConfig) -> RiskIndicator | None:
        if not self.applies(evidence, config):
            return None
        return RiskIndicator(
            criterion=self.criterion,
            severity=self.severity,
            evidence=self.describe(evidence),
            citation=self.citation,
        )


def _percent(rate: float) -> str:
    return f"{rate * 100:.0f}%"


RISK_RULES: tuple[RiskRule, ...] = (
    RiskRule(
        key="counting",
        criterion="persistent counting strategy",
        severity=Severity.SEVERE,
        citation='Moser Opitz (2013), p. 87: "counting as the main characteristic"',
        applies=lambda e, c: (
            e.analysis.counting_rate > c.counting_rate_threshold
            and e.session_count > c.counting_session_min
        ),
        describe=lambda e: (
            f"{_percent(e.analysis.counting_rate)} counting strategies after {e.session_count} sessions"
        ),
    ),
    RiskRule(
        key="structured_perception",
        criterion="missing structured quantity perception",
        severity=Severity.SEVERE,
        citation="Scherer (2019): structured quantity perception as a foundation",
        applies=lambda e, c: (
            e.analysis.structured_perception_rate < c.structured_rate_threshold
            and e.session_count > c.structured_session_min
        ),
        describe=lambda e: (
            f"Only {_percent(e.analysis.structured_perception_rate)} structured perception on benchmark tasks"
        ),
    ),
    RiskRule(
        key="automatization",
        criterion="no automatization",
        severity=Severity.SEVERE,
        citation='Moser Opitz (2013), p. 92: "automatization as a learning goal"',
        applies=lambda e, c: (
            e.task_count > c.automatization_task_min
            and e.analysis.automatization_rate < c.automatization_rate_threshold
        ),
        describe=lambda e: (
            f"Only {_percent(e.analysis.automatization_rate)} automatized after {e.task_count} tasks"
        ),
    ),
    RiskRule(
        key="prerequisites",
        criterion="weak prerequisite skills",
        severity=Severity.MODERATE,
        citation="Moser Opitz & Grob (2017): predictive value of prerequisite skills",
        # An empty snapshot is missing evidence, not weak skills
        applies=lambda e, c: len(e.skills) > 0 and e.skills.average_level() < c.prerequisite_threshold,
        describe=lambda e: f"Average: {e.skills.average_level() * 10:.1f}/10",
    ),
    RiskRule(
        key="systematic_errors",
        criterion="systematic error patterns",
        severity=Severity.MODERATE,
        citation="Moser Opitz (2013), p. 95: error analysis as a diagnostic tool",
        applies=lambda e, c: len(e.error_patterns) > c.systematic_pattern_min,
        describe=lambda e: f"{len(e.error_patterns)} patterns: {', '.join(e.error_patterns)}",
    ),
)


@dataclass(frozen=True)
class RiskLevelRule:
    """Maps (severe count, moderate count) to a risk level."""

    level: RiskLevel
    applies: Callable[[int, int], bool]


# Evaluated top to bottom, first match wins; no match means LOW
RISK_LEVEL_RULES: tuple[RiskLevelRule, ...] = (
    RiskLevelRule(RiskLevel.CRITICAL, lambda severe, moderate: severe >= 2),
    RiskLevelRule(RiskLevel.HIGH, lambda severe, moderate: severe == 1 and moderate >= 2),
    RiskLevelRule(RiskLevel.MODERATE, lambda severe, moderate: severe == 1 or moderate >= 2),
)


def aggregate_risk_level(indicators: Sequence[RiskIndicator]) -> RiskLevel:
    severe = sum(1 for i in indicators if i.severity is Severity.SEVERE)
    moderate = sum(1 for i in indicators if i.severity is Severity.MODERATE)
    for rule in RISK_LEVEL_RULES:
        if rule.applies(severe, moderate):
            return rule.level
    return RiskLevel.LOW


def compute_confidence(session_count: int, config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> float:
    """Sample-size damper: min(1, sessions / 20), never negative."""
    return min(1.0, max(0, session_count) / config.confidence_sessions)


def classify_risk(
    analysis: StrategyAnalysis,
    skills: PrerequisiteSkillSnapshot | None,
    session_count: int,
    *,
    error_patterns: Sequence[str] | None = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    rules: Sequence[RiskRule] = RISK_RULES,
) -> RiskProfile:
    """
    Classify risk from analyzer output.

    Args:
        analysis: Output of analyze_outcomes()
        skills: Prerequisite skill snapshot (None is treated as empty)
        session_count: Number of practice sessions observed
        error_patterns: Pattern list; defaults to analysis.error_patterns
        config: Engine thresholds
        rules: Rule table to evaluate

    Returns:
        RiskProfile without recommendations
    """
    evidence = RiskEvidence(
        analysis=analysis,
        error_patterns=tuple(analysis.error_patterns if error_patterns is None else error_patterns),
        skills=skills or PrerequisiteSkillSnapshot(),
        session_count=session_count,
    )

    indicators = tuple(
        indicator
        for indicator in (rule.evaluate(evidence, config) for rule in rules)
        if indicator is not None
    )
    profile = RiskProfile(
        risk_level=aggregate_risk_level(indicators),
        confidence=compute_confidence(session_count, config),
        indicators=indicators,
        sample_size=analysis.task_count,
    )

    logger.debug(
        f"Risk classification: {profile.risk_level.value} "
        f"(confidence={profile.confidence:.2f}) - {[i.criterion for i in indicators]}"
    )
    return profile
