"""
Unit tests for the risk classifier.

Tests:
- Each rule in RISK_RULES on its own, on both sides of its threshold
- Risk level aggregation table
- Confidence damping by session count
- Zero-observation and idempotence properties
"""
import pytest

from numeracy.config import EngineConfig
from numeracy.core.models import PrerequisiteSkillSnapshot, RiskIndicator, RiskLevel, Severity, Strategy
from numeracy.diagnostics.analyzer import StrategyAnalysis, analyze_outcomes
from numeracy.diagnostics.risk import (
    RISK_RULES,
    aggregate_risk_level,
    classify_risk,
    compute_confidence,
)


def _criteria(profile) -> set[str]:
    return {indicator.criterion for indicator in profile.indicators}


def _indicator(severity: Severity) -> RiskIndicator:
    return RiskIndicator(criterion="x", severity=severity, evidence="", citation="")


class TestRuleTable:
    """The rule table is explicit and ordered."""

    def test_rule_keys(self):
        """Five rules, in screening order."""
        assert [rule.key for rule in RISK_RULES] == [
            "counting",
            "structured_perception",
            "automatization",
            "prerequisites",
            "systematic_errors",
        ]

    def test_severities(self):
        """Three severe rules followed by two moderate rules."""
        assert [rule.severity for rule in RISK_RULES] == [
            Severity.SEVERE,
            Severity.SEVERE,
            Severity.SEVERE,
            Severity.MODERATE,
            Severity.MODERATE,
        ]


class TestCountingRule:
    """Rule 1: persistent counting strategy."""

    def test_counting_dominance_flags_persistent_counting(self, outcome_factory, config):
        """15 counting_on outcomes over 12 sessions flag counting dominance."""
        outcomes = [outcome_factory(5, 3, strategy=Strategy.COUNTING_ON) for _ in range(15)]

        profile = classify_risk(analyze_outcomes(outcomes, config), None, 12, config=config)

        counting = [i for i in profile.indicators if i.criterion == "persistent counting strategy"]
        assert len(counting) == 1
        assert counting[0].severity is Severity.SEVERE
        assert "100%" in counting[0].evidence
        assert profile.risk_level in (RiskLevel.MODERATE, RiskLevel.HIGH, RiskLevel.CRITICAL)

    def test_needs_more_than_ten_sessions(self, config):
        """Ten sessions are not enough evidence."""
        analysis = StrategyAnalysis(task_count=30, counting_rate=0.9, structured_perception_rate=1.0)

        assert "persistent counting strategy" not in _criteria(classify_risk(analysis, None, 10, config=config))
        assert "persistent counting strategy" in _criteria(classify_risk(analysis, None, 11, config=config))

    def test_rate_must_exceed_threshold(self, config):
        """A counting rate of exactly 0.8 does not fire."""
        analysis = StrategyAnalysis(task_count=30, counting_rate=0.8, structured_perception_rate=1.0)

        assert "persistent counting strategy" not in _criteria(classify_risk(analysis, None, 15, config=config))


class TestStructuredPerceptionRule:
    """Rule 2: missing structured quantity perception."""

    def test_fires_after_eight_sessions(self, config):
        analysis = StrategyAnalysis(task_count=20, structured_perception_rate=0.2)

        assert "missing structured quantity perception" not in _criteria(
            classify_risk(analysis, None, 8, config=config)
        )
        assert "missing structured quantity perception" in _criteria(
            classify_risk(analysis, None, 9, config=config)
        )

    def test_rate_at_threshold_does_not_fire(self, config):
        analysis = StrategyAnalysis(task_count=20, structured_perception_rate=0.3)

        assert _criteria(classify_risk(analysis, None, 9, config=config)) == set()


class TestAutomatizationRule:
    """Rule 3: no automatization after more than 50 tasks."""

    def test_slow_answers_flag_missing_automatization(self, outcome_factory, config):
        """60 outcomes, 50 correct but all at 5000ms, flag missing automatization."""
        outcomes = [outcome_factory(3, 4, elapsed_ms=5000) for _ in range(50)]
        outcomes += [outcome_factory(3, 4, answer=12, elapsed_ms=5000) for _ in range(10)]

        analysis = analyze_outcomes(outcomes, config)
        profile = classify_risk(analysis, None, 5, config=config)

        assert analysis.automatization_rate == 0.0
        assert "no automatization" in _criteria(profile)
        assert profile.risk_level is RiskLevel.MODERATE

    def test_fifty_tasks_are_not_enough(self, config):
        analysis = StrategyAnalysis(task_count=50, automatization_rate=0.0)

        assert _criteria(classify_risk(analysis, None, 0, config=config)) == set()


class TestPrerequisiteRule:
    """Rule 4: weak prerequisite skills."""

    def test_weak_skills(self, config):
        """Mean level 3/10 is below 0.4."""
        skills = PrerequisiteSkillSnapshot.from_mapping({"comparison": 2, "seriation": 4})

        profile = classify_risk(StrategyAnalysis(), skills, 0, config=config)

        assert _criteria(profile) == {"weak prerequisite skills"}
        assert profile.indicators[0].evidence == "Average: 3.0/10"

    def test_adequate_skills(self, config):
        skills = PrerequisiteSkillSnapshot.from_mapping({"comparison": 4, "seriation": 4})

        assert _criteria(classify_risk(StrategyAnalysis(), skills, 0, config=config)) == set()

    def test_empty_snapshot_is_not_evidence(self, config):
        """No tracked skills means no prerequisite indicator."""
        assert _criteria(classify_risk(StrategyAnalysis(), PrerequisiteSkillSnapshot(), 0, config=config)) == set()


class TestSystematicErrorRule:
    """Rule 5: more than two systematic error patterns."""

    def test_three_patterns_fire(self, config):
        patterns = ("off-by-one", "ten-crossing error", "part-whole deficit")

        profile = classify_risk(StrategyAnalysis(task_count=5), None, 0, error_patterns=patterns, config=config)

        assert _criteria(profile) == {"systematic error patterns"}
        assert profile.indicators[0].evidence == "3 patterns: off-by-one, ten-crossing error, part-whole deficit"

    def test_two_patterns_do_not_fire(self, config):
        patterns = ("off-by-one", "ten-crossing error")

        profile = classify_risk(StrategyAnalysis(task_count=5), None, 0, error_patterns=patterns, config=config)

        assert profile.indicators == ()


class TestRiskLevelAggregation:
    """First matching row of the risk level table wins."""

    @pytest.mark.parametrize(
        "severe, moderate, expected",
        [
            (0, 0, RiskLevel.LOW),
            (0, 1, RiskLevel.LOW),
            (0, 2, RiskLevel.MODERATE),
            (1, 0, RiskLevel.MODERATE),
            (1, 1, RiskLevel.MODERATE),
            (1, 2, RiskLevel.HIGH),
            (2, 0, RiskLevel.CRITICAL),
            (3, 2, RiskLevel.CRITICAL),
        ],
    )
    def test_levels(self, severe, moderate, expected):
        indicators = [_indicator(Severity.SEVERE)] * severe + [_indicator(Severity.MODERATE)] * moderate

        assert aggregate_risk_level(indicators) is expected


class TestConfidence:
    """Confidence scales with observed sessions."""

    @pytest.mark.parametrize("sessions, expected", [(0, 0.0), (5, 0.25), (10, 0.5), (20, 1.0), (40, 1.0)])
    def test_values(self, config, sessions, expected):
        assert compute_confidence(sessions, config) == pytest.approx(expected)

    def test_monotone(self, config):
        """More sessions never lower confidence."""
        values = [compute_confidence(n, config) for n in range(50)]

        assert values == sorted(values)

    def test_negative_sessions_clamped(self, config):
        assert compute_confidence(-3, config) == 0.0


class TestZeroObservations:
    """No outcomes, no sessions, no skills."""

    def test_low_risk_without_evidence(self, config):
        profile = classify_risk(analyze_outcomes([], config), PrerequisiteSkillSnapshot(), 0, config=config)

        assert profile.risk_level is RiskLevel.LOW
        assert profile.confidence == 0.0
        assert profile.indicators == ()
        assert profile.recommendations == ()
        assert profile.sample_size == 0


class TestIdempotence:
    """Classifying the same evidence twice gives the same profile."""

    def test_same_input_same_profile(self, outcome_factory):
        config = EngineConfig()
        outcomes = [outcome_factory(8, 5, answer=12, strategy=Strategy.COUNTING_ALL) for _ in range(60)]
        skills = PrerequisiteSkillSnapshot.from_mapping({"comparison": 1})

        first = classify_risk(analyze_outcomes(outcomes, config), skills, 15, config=config)
        second = classify_risk(analyze_outcomes(outcomes, config), skills, 15, config=config)

        assert first == second
        assert first.risk_level is RiskLevel.CRITICAL
