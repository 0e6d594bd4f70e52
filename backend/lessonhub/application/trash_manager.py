"""Trash / Restore: soft delete, restore and irreversible hard delete of drafts."""
from __future__ import annotations
from typing import Callable, List

import structlog

from lessonhub.application.audit_log import HARD_DELETED, RESTORED, SOFT_DELETED, AuditLog
from lessonhub.application.publish_replicator import PublishReplicator
from lessonhub.application.visibility_controller import VisibilityController
from lessonhub.domain.common.errors import IllegalStateTransition, NotFound
from lessonhub.domain.lesson import rules
from lessonhub.domain.lesson.models import Actor, LessonDraft
from lessonhub.domain.lesson.service import LessonDomainService, now_iso
from lessonhub.persistence.interfaces.draft_repository import DraftRepository

logger = structlog.get_logger(__name__)


class TrashManager:
    def __init__(
        self,
        drafts: DraftRepository,
        replicator: PublishReplicator,
        visibility: VisibilityController,
        audit: AuditLog,
        clock: Callable[[], str] = now_iso,
        page_size: int = 50,
    ):
        self._drafts = drafts
        self._replicator = replicator
        self._visibility = visibility
        self._audit = audit
        self._domain = LessonDomainService(clock)
        self._page_size = page_size

    def _load(self, draft_id: str) -> LessonDraft:
        draft = self._drafts.get(draft_id)
        if draft is None:
            raise NotFound(f"Lesson '{draft_id}' not found.")
        return draft

    def list_trash(self, actor: Actor) -> List[LessonDraft]:
        rules.validate_admin(actor, "view the trash").unwrap()
        return self._drafts.list_deleted(self._page_size)

    def soft_delete(self, draft_id: str, actor: Actor) -> LessonDraft:
        """
        Owner or admin. The replica is hidden first (best-effort), then the draft is
        marked deleted and forced back to `draft` whatever state it was in.
        """
        draft = self._load(draft_id)
        rules.validate_owner_or_admin(actor, draft.owner_id).unwrap()
        if draft.is_deleted:
            raise IllegalStateTransition(f"Lesson '{draft.id}' is already deleted.")

        observed = draft.publish_state
        self._visibility.deactivate_for_draft(draft, actor.uid, reason="soft_delete")
        self._domain.mark_soft_deleted(draft).unwrap()
        self._drafts.save(draft, expected_state=observed)
        self._audit.record(SOFT_DELETED, actor.uid, draft.id, previous_state=observed)
        logger.info("draft_soft_deleted", draft_id=draft.id, uid=actor.uid, previous_state=observed)
        return draft

    def restore(self, draft_id: str, actor: Actor) -> LessonDraft:
        """Admin only. Clears the tombstone; the lesson stays unpublished."""
        rules.validate_admin(actor, "restore lessons").unwrap()
        draft = self._load(draft_id)
        observed = draft.publish_state
        self._domain.mark_restored(draft).unwrap()
        self._drafts.save(draft, expected_state=observed)
        self._audit.record(RESTORED, actor.uid, draft.id)
        logger.info("draft_restored", draft_id=draft.id, uid=actor.uid)
        return draft

    def hard_delete(self, draft_id: str, actor: Actor) -> None:
        """Admin only. Removes the replica (best-effort) and then the draft. Irreversible."""
        rules.validate_admin(actor, "permanently delete lessons").unwrap()
        draft = self._load(draft_id)
        self._replicator.remove_for_draft(draft)
        if not self._drafts.delete(draft.id):
            raise NotFound(f"Lesson '{draft_id}' not found.")
        self._audit.record(HARD_DELETED, actor.uid, draft.id, was_deleted=draft.is_deleted)
        logger.info("draft_hard_deleted", draft_id=draft.id, uid=actor.uid)
