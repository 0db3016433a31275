"""
Strategy & Pattern Analyzer.

Reduces a window of task outcomes to strategy rates and a list of
systematic error patterns. Every function here is pure and total:

- an empty window, or an empty relevant subset, yields 0.0 (never NaN,
  never an exception) because a new learner with no data is the normal case
- every rate is a ratio in [0, 1]
- thresholds come from the injected EngineConfig, never from literals

Rates:
1. Counting-strategy rate: share of tasks solved by counting all / counting on
2. Automatization rate: share of tasks solved correctly and fast (< 3s)
3. Structured-perception rate: on tasks touching 5/10/20, share solved
   correctly within 4s
4. Decomposition-failure rate: on single-digit additions crossing ten,
   share solved incorrectly or slowly (> 8s)
"""
from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger

from numeracy.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from numeracy.core.models import COUNTING_STRATEGIES, Operation, TaskOutcome

OFF_BY_ONE = "off-by-one"
TEN_CROSSING_ERROR = "ten-crossing error"
PART_WHOLE_DEFICIT = "part-whole deficit"


def _ratio(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator else 0.0


def _faster_than(outcome: TaskOutcome, limit_ms: int) -> bool:
    return outcome.elapsed_ms is not None and outcome.elapsed_ms < limit_ms


def _slower_than(outcome: TaskOutcome, limit_ms: int) -> bool:
    return outcome.elapsed_ms is not None and outcome.elapsed_ms > limit_ms


def recent_window(outcomes: Sequence[TaskOutcome], size: int) -> tuple[TaskOutcome, ...]:
    """The `size` most recent outcomes (input is ordered oldest -> newest)."""
    if size <= 0:
        return ()
    return tuple(outcomes[-size:])


# ============================================================================
# Rates
# ============================================================================


def counting_strategy_rate(outcomes: Sequence[TaskOutcome]) -> float:
    counting = sum(1 for o in outcomes if o.strategy in COUNTING_STRATEGIES)
    return _ratio(counting, len(outcomes))


def automatization_rate(
    outcomes: Sequence[TaskOutcome],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> float:
    automatized = sum(1 for o in outcomes if o.is_correct and _faster_than(o, config.automatization_ms))
    return _ratio(automatized, len(outcomes))


def is_benchmark_task(outcome: TaskOutcome, config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> bool:
    """Task whose operands or result touch a benchmark value (5, 10, 20)."""
    return (
        outcome.number1 in config.benchmark_operands
        or outcome.number2 in config.benchmark_operands
        or outcome.correct_answer in config.benchmark_results
    )


def structured_perception_rate(
    outcomes: Sequence[TaskOutcome],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> float:
    """
    Share of benchmark tasks solved correctly and quickly.

    No benchmark tasks in the window means no evidence, reported as 0.
    """
    relevant = [o for o in outcomes if is_benchmark_task(o, config)]
    structured = sum(1 for o in relevant if o.is_correct and _faster_than(o, config.structured_ms))
    return _ratio(structured, len(relevant))


def is_decomposition_task(outcome: TaskOutcome) -> bool:
    """Single-digit addition crossing ten, e.g. 8+7."""
    return (
        outcome.operation is Operation.ADD
        and outcome.number1 < 10
        and outcome.number2 < 10
        and outcome.number1 + outcome.number2 > 10
    )


def decomposition_failure_rate(
    outcomes: Sequence[TaskOutcome],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> float:
    subset = [o for o in outcomes if is_decomposition_task(o)]
    failures = sum(1 for o in subset if not o.is_correct or _slower_than(o, config.decomposition_ms))
    return _ratio(failures, len(subset))


# ============================================================================
# Systematic error patterns
# ============================================================================


def detect_systematic_errors(
    outcomes: Sequence[TaskOutcome],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> tuple[str, ...]:
    """
    Detect named systematic error patterns.

    Patterns are returned in detection order. The order carries no
    priority; callers must not rank patterns by position.
    """
    patterns: list[str] = []
    if not outcomes:
        return ()

    incorrect = [o for o in outcomes if not o.is_correct]

    # Off-by-one: share is taken over all outcomes, not only the wrong ones
    off_by_one = sum(1 for o in incorrect if o.answer_difference is not None and abs(o.answer_difference) == 1)
    if off_by_one / len(outcomes) >= config.off_by_one_share:
        patterns.append(OFF_BY_ONE)

    ten_crossing = sum(
        1
        for o in incorrect
        if o.operation is Operation.ADD and o.number1 < 10 and o.correct_answer > 10
    )
    if ten_crossing > config.ten_crossing_min_errors:
        patterns.append(TEN_CROSSING_ERROR)

    if decomposition_failure_rate(outcomes, config) > config.part_whole_failure_rate:
        patterns.append(PART_WHOLE_DEFICIT)

    return tuple(dict.fromkeys(patterns))


def error_type_counts(outcomes: Sequence[TaskOutcome]) -> dict[str, int]:
    """Tally error categories of incorrect outcomes, most frequent first."""
    counts = Counter(o.error_type.value for o in outcomes if not o.is_correct and o.error_type is not None)
    return dict(counts.most_common())


# ============================================================================
# Combined analysis
# ============================================================================


@dataclass(frozen=True)
class StrategyAnalysis:
    """Analyzer output for one outcome window."""

    task_count: int = 0
    counting_rate: float = 0.0
    automatization_rate: float = 0.0
    structured_perception_rate: float = 0.0
    decomposition_failure_rate: float = 0.0
    error_patterns: tuple[str, ...] = ()
    accuracy: float = 0.0
    average_time_ms: float = 0.0

    @property
    def is_empty(self) -> bool:
        return self.task_count == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_count": self.task_count,
            "counting_rate": round(self.counting_rate, 4),
            "automatization_rate": round(self.automatization_rate, 4),
            "structured_perception_rate": round(self.structured_perception_rate, 4),
            "decomposition_failure_rate": round(self.decomposition_failure_rate, 4),
            "error_patterns": list(self.error_patterns),
            "accuracy": round(self.accuracy, 4),
            "average_time_ms": round(self.average_time_ms, 1),
        }


def analyze_outcomes(
    outcomes: Sequence[TaskOutcome],
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> StrategyAnalysis:
    """
    Analyze the most recent `config.window_size` outcomes.

    Args:
        outcomes: Outcome history, oldest first (may be empty)
        config: Engine thresholds

    Returns:
        StrategyAnalysis with all rates and detected patterns
    """
    window = recent_window(outcomes, config.window_size)
    if not window:
        return StrategyAnalysis()

    timed = [o.elapsed_ms for o in window if o.elapsed_ms is not None]
    analysis = StrategyAnalysis(
        task_count=len(window),
        counting_rate=counting_strategy_rate(window),
        automatization_rate=automatization_rate(window, config),
        structured_perception_rate=structured_perception_rate(window, config),
        decomposition_failure_rate=decomposition_failure_rate(window, config),
        error_patterns=detect_systematic_errors(window, config),
        accuracy=_ratio(sum(1 for o in window if o.is_correct), len(window)),
        average_time_ms=sum(timed) / len(timed) if timed else 0.0,
    )

    logger.debug(
        f"Analyzed {analysis.task_count} outcomes: counting={analysis.counting_rate:.2f} "
        f"automatized={analysis.automatization_rate:.2f} "
        f"structured={analysis.structured_perception_rate:.2f} "
        f"decomposition_failures={analysis.decomposition_failure_rate:.2f} "
        f"patterns={list(analysis.error_patterns)}"
    )
    return analysis
