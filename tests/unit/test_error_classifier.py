"""
Unit tests for error classification of incorrect answers.
"""
import pytest

from numeracy.core.models import ErrorType, Operation, TaskOutcome
from numeracy.diagnostics.error_classifier import classify_error, ensure_error_type, is_doubling_task


class TestClassifyError:
    """Tests for classify_error precedence and categories."""

    @pytest.mark.parametrize(
        "operation, number1, number2, answer, expected",
        [
            (Operation.ADD, 3, 4, 6, ErrorType.COUNTING_ERROR_MINUS_1),
            (Operation.ADD, 3, 4, 8, ErrorType.COUNTING_ERROR_PLUS_1),
            (Operation.ADD, 3, 4, 5, ErrorType.COUNTING_ERROR_MINUS_2),
            (Operation.ADD, 3, 4, 9, ErrorType.COUNTING_ERROR_PLUS_2),
            (Operation.ADD, 9, 4, 5, ErrorType.OPERATION_CONFUSION),
            (Operation.SUBTRACT, 9, 4, 13, ErrorType.OPERATION_CONFUSION),
            (Operation.ADD, 25, 12, 27, ErrorType.OFF_BY_TEN_MINUS),
            (Operation.ADD, 25, 12, 47, ErrorType.OFF_BY_TEN_PLUS),
            (Operation.ADD, 7, 7, 15, ErrorType.DOUBLING_ERROR),
            (Operation.SUBTRACT, 14, 7, 6, ErrorType.DOUBLING_ERROR),
            (Operation.ADD, 30, 42, 27, ErrorType.DIGIT_REVERSAL),
            (Operation.ADD, 3, 4, 15, ErrorType.OTHER),
        ],
    )
    def test_categories(self, operation, number1, number2, answer, expected):
        """Each wrong answer lands in its most specific category."""
        correct = operation.apply(number1, number2)

        assert classify_error(operation, number1, number2, correct, answer) is expected

    def test_correct_answer_has_no_error(self):
        """Correct answers are not classified."""
        assert classify_error(Operation.ADD, 3, 4, 7, 7) is None

    def test_missing_answer_has_no_error(self):
        """A missing answer is not classified."""
        assert classify_error(Operation.ADD, 3, 4, 7, None) is None

    def test_doubling_takes_precedence_over_counting(self):
        """6+6=13 is a doubling error, not a +1 counting slip."""
        assert classify_error(Operation.ADD, 6, 6, 12, 13) is ErrorType.DOUBLING_ERROR

    def test_operation_confusion_takes_precedence_over_counting(self):
        """5+4=1 matches 5-4 before any distance rule."""
        assert classify_error(Operation.ADD, 5, 4, 9, 1) is ErrorType.OPERATION_CONFUSION

    def test_single_digit_answers_are_not_reversals(self):
        """Digit reversal needs two-digit answers on both sides."""
        assert classify_error(Operation.ADD, 3, 4, 7, 70) is ErrorType.OTHER


class TestDoublingTasks:
    """Tests for doubling / halving task detection."""

    def test_addition_doubling(self):
        assert is_doubling_task(Operation.ADD, 8, 8)
        assert not is_doubling_task(Operation.ADD, 8, 7)

    def test_subtraction_halving(self):
        assert is_doubling_task(Operation.SUBTRACT, 16, 8)
        assert not is_doubling_task(Operation.SUBTRACT, 16, 7)


class TestEnsureErrorType:
    """Tests for filling in missing error types."""

    def test_fills_missing_type(self, outcome_factory):
        """An incorrect outcome without a type gets one."""
        outcome = outcome_factory(3, 4, answer=8)
        assert outcome.error_type is None

        assert ensure_error_type(outcome).error_type is ErrorType.COUNTING_ERROR_PLUS_1

    def test_keeps_caller_supplied_type(self):
        """A type set by the caller is never overwritten."""
        outcome = TaskOutcome(
            operation=Operation.ADD,
            number1=3,
            number2=4,
            correct_answer=7,
            student_answer=8,
            is_correct=False,
            error_type=ErrorType.OTHER,
        )

        assert ensure_error_type(outcome) is outcome

    def test_correct_outcome_unchanged(self, outcome_factory):
        outcome = outcome_factory()

        assert ensure_error_type(outcome) is outcome
