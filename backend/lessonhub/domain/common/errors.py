"""Typed errors for the publish / moderation / replication pipeline."""
from __future__ import annotations
from typing import List, Optional


class LessonError(Exception):
    """Base class. `retryable` tells callers whether repeating the same call can succeed."""

    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LessonError):
    """Required content is missing or a patch touches an immutable field."""


class AuthorizationError(LessonError):
    """Ownership or role mismatch."""


class ModerationBlocked(LessonError):
    """The Moderation Gate blocked the submission. Not retryable without content changes."""

    def __init__(self, reasons: List[str], notes: Optional[str] = None):
        self.reasons = list(reasons)
        self.notes = notes
        joined = ", ".join(self.reasons) if self.reasons else "no reasons given"
        super().__init__(f"Content blocked by moderation: {joined}")


class ModerationUnavailable(LessonError):
    retryable = True


class IllegalStateTransition(LessonError):
    """The operation is not valid for the draft's current publish state."""


class ConcurrencyConflict(IllegalStateTransition):
    """The observed publish state changed between read and write."""

    retryable = True


class DraftBusy(IllegalStateTransition):
    """Another submission for the same draft is still in flight."""

    retryable = True


class NotFound(LessonError):
    pass


class PermissionDenied(LessonError):
    """The store refused the read. Reported to outside callers exactly like NotFound."""


class ReplicaWriteFailure(LessonError):
    """Writing the public replica failed. Safe to retry: replication is an idempotent upsert."""

    retryable = True


class StoreUnavailable(LessonError):
    """The Draft Store or Replica Store could not be reached or was locked."""

    retryable = True
