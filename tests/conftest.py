"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
from datetime import UTC, datetime, timedelta

import pytest

from numeracy.config import EngineConfig
from numeracy.core.models import Operation, Strategy, TaskOutcome


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (engine + stores)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        path = str(item.fspath)
        if "unit" in path:
            item.add_marker(pytest.mark.unit)
        elif "integration" in path:
            item.add_marker(pytest.mark.integration)
        elif "smoke" in path:
            item.add_marker(pytest.mark.smoke)


FIXED_NOW = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def now():
    """Fixed point in time for deterministic timestamps."""
    return FIXED_NOW


@pytest.fixture
def config():
    """Default engine configuration."""
    return EngineConfig()


def make_outcome(
    number1: int = 3,
    number2: int = 4,
    *,
    operation: Operation = Operation.ADD,
    answer: int | None = None,
    correct: bool = True,
    elapsed_ms: int | None = 2000,
    strategy: Strategy | None = None,
    session_id: str | None = None,
    offset: int = 0,
) -> TaskOutcome:
    """
    Build an outcome for tests.

    With `answer` unset, a correct outcome answers the correct result and
    an incorrect one answers one too many.
    """
    correct_answer = operation.apply(number1, number2)
    if answer is None:
        answer = correct_answer if correct else correct_answer + 1
    return TaskOutcome(
        operation=operation,
        number1=number1,
        number2=number2,
        correct_answer=correct_answer,
        student_answer=answer,
        is_correct=answer == correct_answer,
        elapsed_ms=elapsed_ms,
        timestamp=FIXED_NOW + timedelta(seconds=offset),
        strategy=strategy,
        session_id=session_id,
    )


@pytest.fixture
def outcome_factory():
    """Factory for TaskOutcome records (see make_outcome)."""
    return make_outcome
