"""
Error classification for incorrect answers.

Maps a wrong answer to the most specific named error category. Checks run
in a fixed precedence: task-specific errors first (doubling tasks,
confusing the operation), then answer-shape errors (swapped digits), then
distance-based errors (counting slips of 1-2, tens slips of 10).
"""
from __future__ import annotations

from dataclasses import replace

from numeracy.core.models import ErrorType, Operation, TaskOutcome

_COUNTING_ERRORS = {
    -1: ErrorType.COUNTING_ERROR_MINUS_1,
    1: ErrorType.COUNTING_ERROR_PLUS_1,
    -2: ErrorType.COUNTING_ERROR_MINUS_2,
    2: ErrorType.COUNTING_ERROR_PLUS_2,
}

_OFF_BY_TEN_ERRORS = {
    -10: ErrorType.OFF_BY_TEN_MINUS,
    10: ErrorType.OFF_BY_TEN_PLUS,
}


def is_doubling_task(operation: Operation, number1: int, number2: int) -> bool:
    """Doubling (7+7) or halving (14-7) core task."""
    if operation is Operation.ADD:
        return number1 == number2
    return number1 == number2 * 2


def _confused_operation_result(operation: Operation, number1: int, number2: int) -> int:
    if operation is Operation.ADD:
        return abs(number1 - number2)
    return number1 + number2


def _is_digit_reversal(correct_answer: int, student_answer: int) -> bool:
    correct = str(correct_answer)
    student = str(student_answer)
    return len(correct) == 2 and len(student) == 2 and student != correct and student == correct[::-1]


def classify_error(
    operation: Operation,
    number1: int,
    number2: int,
    correct_answer: int,
    student_answer: int | None,
) -> ErrorType | None:
    """
    Classify an answer.

    Returns:
        The error category, or None if the answer is correct or missing
    """
    if student_answer is None or student_answer == correct_answer:
        return None

    if is_doubling_task(operation, number1, number2):
        return ErrorType.DOUBLING_ERROR

    if student_answer == _confused_operation_result(operation, number1, number2):
        return ErrorType.OPERATION_CONFUSION

    if _is_digit_reversal(correct_answer, student_answer):
        return ErrorType.DIGIT_REVERSAL

    difference = student_answer - correct_answer
    if difference in _COUNTING_ERRORS:
        return _COUNTING_ERRORS[difference]
    if difference in _OFF_BY_TEN_ERRORS:
        return _OFF_BY_TEN_ERRORS[difference]

    return ErrorType.OTHER


def ensure_error_type(outcome: TaskOutcome) -> TaskOutcome:
    """Fill in the error category of an incorrect outcome that has none."""
    if outcome.is_correct or outcome.error_type is not None:
        return outcome
    error_type = classify_error(
        outcome.operation,
        outcome.number1,
        outcome.number2,
        outcome.correct_answer,
        outcome.student_answer,
    )
    if error_type is None:
        return outcome
    return replace(outcome, error_type=error_type)
