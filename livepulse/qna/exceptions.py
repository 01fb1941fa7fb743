"""Errors raised by the Q&A moderation engine.

Every error leaves the store untouched (or, for ``PersistenceError``, at its
last-known-good state). Callers surface the error once; nothing here is
retried automatically.
"""

from __future__ import annotations

from collections.abc import Iterable


class ModerationError(Exception):
    """Base class for moderation failures surfaced to the caller."""

    code = "moderation_error"


class ValidationError(ModerationError):
    """Input rejected before any write (blank content, bad id list, ...)."""

    code = "invalid"

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFoundError(ModerationError):
    code = "not_found"


class StateError(ModerationError):
    """A transition was attempted from an illegal source status."""

    code = "invalid_state"

    def __init__(self, operation: str, status: str, allowed: Iterable[str]):
        self.operation = operation
        self.status = status
        self.allowed = tuple(sorted(allowed))
        msg = (
            f"Cannot {operation} a question in status '{status}' "
            f"(allowed: {', '.join(self.allowed) or 'none'})."
        )
        super().__init__(msg)


class ConflictError(ModerationError):
    """The row changed since the caller read it (version mismatch)."""

    code = "stale_write"

    def __init__(self, question_id: int, expected: int, actual: int):
        self.question_id = question_id
        self.expected = expected
        self.actual = actual
        msg = (
            f"Question {question_id} is at version {actual}, "
            f"expected {expected}. Refetch and retry."
        )
        super().__init__(msg)


class PersistenceError(ModerationError):
    """The store failed to apply a write; refetch to resynchronize."""

    code = "persistence_failed"
