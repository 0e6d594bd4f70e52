"""Best-effort audit trail of publish / moderation decisions."""
from __future__ import annotations
from typing import Callable, Optional

import structlog

from lessonhub.domain.lesson.models import AuditEvent
from lessonhub.domain.lesson.service import new_id, now_iso
from lessonhub.persistence.interfaces.audit_repository import AuditRepository

logger = structlog.get_logger(__name__)

PUBLISH_SUCCESS = "PUBLISH_SUCCESS"
PUBLISH_BLOCKED = "PUBLISH_BLOCKED"
UNPUBLISH_SUCCESS = "UNPUBLISH_SUCCESS"
UNPUBLISH_BLOCKED = "UNPUBLISH_BLOCKED"
SUBMIT_BLOCKED = "SUBMIT_BLOCKED"
REVIEW_APPROVED = "REVIEW_APPROVED"
REVIEW_REJECTED = "REVIEW_REJECTED"
SOFT_DELETED = "SOFT_DELETED"
RESTORED = "RESTORED"
HARD_DELETED = "HARD_DELETED"


class AuditLog:
    """Writes never raise: a lost audit row must not fail the operation it describes."""

    def __init__(self, repo: Optional[AuditRepository], clock: Callable[[], str] = now_iso):
        self._repo = repo
        self._clock = clock

    def record(self, event_type: str, uid: str, lesson_id: str, **meta) -> None:
        if self._repo is None:
            return
        event = AuditEvent(
            id=new_id(),
            type=event_type,
            uid=uid,
            lesson_id=lesson_id,
            ts=self._clock(),
            meta=meta,
        )
        try:
            self._repo.append(event)
        except Exception as e:
            logger.warning("audit_write_failed", event_type=event_type, lesson_id=lesson_id, error=str(e))
