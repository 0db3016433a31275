"""
Engine error taxonomy.

Absence of data is never an error: analysis degrades to zero rates and
zero confidence instead. What remains are invalid progression states and
write conflicts reported by the persistence layer.
"""
from __future__ import annotations


class NumeracyError(Exception):
    """Base class for all engine errors."""


class InvalidStateError(NumeracyError):
    """
    A progression state violates a state-machine invariant.

    Raised for non-contiguous level history, levels outside the configured
    range, counters that went backwards and similar corruption. States that
    fail validation are never persisted.
    """

    def __init__(self, message: str, *, user_id: str | None = None):
        self.user_id = user_id
        if user_id:
            message = f"{message} (user={user_id})"
        super().__init__(message)


class ConcurrentUpdateConflict(NumeracyError):
    """Another writer saved the learner's state first."""

    def __init__(self, user_id: str, expected_version: int, actual_version: int | None):
        self.user_id = user_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Progression state for {user_id} changed concurrently: "
            f"expected stored version {expected_version}, found {actual_version}"
        )
