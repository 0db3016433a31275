"""
Intervention Generator.

Maps risk indicators to recommended support measures. The mapping lives in
a lookup table of InterventionTemplate entries (configuration data, not
control flow): each template names the keywords it matches in indicator
criterion names, and carries priority, dosage, materials and the expected
outcome. A replacement table can be loaded from JSON.

One recommendation is produced per matched template, however many
indicators match it, so the output never repeats an intervention.
"""
from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from numeracy.core.models import (
    InterventionRecommendation,
    Priority,
    ProgressionState,
    RiskIndicator,
)


class InterventionTemplate(BaseModel):
    """One row of the intervention table."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    category: str
    keywords: tuple[str, ...] = Field(min_length=1)
    priority: Priority
    intervention: str
    dosage: str
    materials: tuple[str, ...] = ()
    expected_outcome: str

    def matches(self, indicator: RiskIndicator) -> bool:
        """Case-insensitive keyword match against the criterion name."""
        criterion = indicator.criterion.lower()
        return any(keyword.lower() in criterion for keyword in self.keywords)

    def to_recommendation(self) -> InterventionRecommendation:
        return InterventionRecommendation(
            priority=self.priority,
            intervention=self.intervention,
            dosage=self.dosage,
            materials=self.materials,
            expected_outcome=self.expected_outcome,
        )


DEFAULT_INTERVENTIONS: tuple[InterventionTemplate, ...] = (
    InterventionTemplate(
        category="counting_dominance",
        keywords=("counting",),
        priority=Priority.IMMEDIATE,
        intervention="Hands-on arithmetic with structured material (HEUREKA concept)",
        dosage="5x/week, 20 min, 8 weeks",
        materials=(
            "Calculation boats (5/10 structure)",
            "Two-colored counters (red/blue)",
            "Twenty frame with magnetic counters",
            "Shaker box",
        ),
        expected_outcome="Detachment from counting, development of decomposition strategies",
    ),
    InterventionTemplate(
        category="structured_perception",
        keywords=("structured quantity perception", "structured perception"),
        priority=Priority.IMMEDIATE,
        intervention="Structured quantity perception training (Scherer)",
        dosage="4x/week, 15 min, 6 weeks",
        materials=(
            "Dot patterns in 5/10 structure (dice patterns, finger patterns)",
            "Flash cards shown for 1-2 seconds",
            "Structured twenty frame (red/blue separated)",
            'Game: "How many do you see?" with structured quantities',
        ),
        expected_outcome="Structured perception as the basis for non-counting calculation",
    ),
    InterventionTemplate(
        category="part_whole",
        keywords=("part-whole",),
        priority=Priority.HIGH,
        intervention="Natural differentiation with substantial tasks (Scherer)",
        dosage="3x/week, 20 min, 8 weeks",
        materials=(
            "Number houses (all decompositions of 10)",
            "Part-whole boxes with counters",
            'Story problems: "8 animals, how many inside / outside the enclosure?"',
            "Inverse tasks: 5+3=8, so 8-3=?",
        ),
        expected_outcome="Flexible decomposition, addition and subtraction understood as inverses",
    ),
    InterventionTemplate(
        category="weak_prerequisites",
        keywords=("prerequisite",),
        priority=Priority.HIGH,
        intervention="Prerequisite skill training (quantity comparison, seriation)",
        dosage="3x/week, 15 min, 6 weeks",
        materials=(
            "Quantity memory game",
            "Number staircase",
            "Part-whole boxes",
        ),
        expected_outcome="Stronger number and quantity understanding",
    ),
    InterventionTemplate(
        category="automatization",
        keywords=("automatization",),
        priority=Priority.MEDIUM,
        intervention="Operative practice formats (task packages, number walls)",
        dosage="2x/week, 10 min, ongoing",
        materials=(
            "Task packages with patterns (3+4, 3+5, 3+6, ...)",
            "Number walls with neighbouring numbers",
            "Doubling tasks as anchors (5+5, 6+6, ...)",
            "Decomposition and make-ten practice games",
        ),
        expected_outcome="Automatization through pattern recognition rather than drill",
    ),
)

_TABLE_ADAPTER = TypeAdapter(list[InterventionTemplate])


def load_intervention_table(path: str | Path) -> tuple[InterventionTemplate, ...]:
    """
    Load an intervention table from a JSON list of templates.

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If an entry is malformed
        ValueError: If the table is empty or repeats an intervention label
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Intervention table not found: {path}")

    templates = tuple(_TABLE_ADAPTER.validate_python(json.loads(path.read_text(encoding="utf-8"))))
    if not templates:
        logger.warning(f"Rejected empty intervention table {path}")
        raise ValueError(f"Intervention table {path} is empty")

    labels = [t.intervention for t in templates]
    duplicates = sorted({label for label in labels if labels.count(label) > 1})
    if duplicates:
        logger.warning(f"Rejected intervention table {path}: duplicate labels {duplicates}")
        raise ValueError(f"Intervention table {path} repeats interventions: {duplicates}")

    logger.info(f"Loaded {len(templates)} intervention templates from {path.name}")
    return templates


def generate_interventions(
    indicators: Sequence[RiskIndicator],
    state: ProgressionState | None = None,
    table: Sequence[InterventionTemplate] = DEFAULT_INTERVENTIONS,
) -> tuple[InterventionRecommendation, ...]:
    """
    Generate recommendations for a set of indicators.

    Args:
        indicators: Indicators from the risk classifier
        state: Learner's progression state, for log context
        table: Intervention table, in output order

    Returns:
        Recommendations in table order, unique by intervention label
    """
    recommendations: dict[str, InterventionRecommendation] = {}
    for template in table:
        if template.intervention in recommendations:
            continue
        if any(template.matches(indicator) for indicator in indicators):
            recommendations[template.intervention] = template.to_recommendation()

    if recommendations:
        level = f" at level {state.current_level}" if state else ""
        logger.debug(f"Recommending {len(recommendations)} interventions{level}: {list(recommendations)}")
    return tuple(recommendations.values())
