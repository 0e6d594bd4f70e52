"""Domain service: pure business logic for the lesson publish lifecycle."""
from __future__ import annotations
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from lessonhub.domain.common.errors import IllegalStateTransition
from lessonhub.domain.common.result import Result
from lessonhub.domain.lesson import rules
from lessonhub.domain.lesson.models import (
    Actor,
    LessonDraft,
    ModerationRecord,
    ModerationVerdict,
    PublishedSnapshot,
    SignedBy,
)
from lessonhub.domain.lesson.normalize import apply_patch, normalize_content


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


class LessonDomainService:
    """
    Pure domain operations, no I/O. Methods that can refuse return Result[T];
    the application layer calls these and then persists via the repositories.
    Drafts are updated in place, as the caller already holds the observed state.
    """

    def __init__(self, clock: Callable[[], str] = now_iso):
        self._clock = clock

    def create_draft(self, owner_id: str, data: dict) -> Result[LessonDraft]:
        """Create a brand-new draft. Empty content is allowed until submit/publish."""
        now = self._clock()
        draft = LessonDraft(
            id=new_id(),
            owner_id=owner_id,
            publish_state=rules.DRAFT,
            created_at=now,
            updated_at=now,
            content=normalize_content(data),
        )
        return Result.ok(draft)

    def update_draft(self, draft: LessonDraft, patch: dict) -> Result[LessonDraft]:
        validation = rules.validate_patch(draft, patch)
        if not validation.is_success:
            return Result.fail(validation.error)

        draft.content = apply_patch(draft.content, validation.value)
        draft.updated_at = self._clock()
        return Result.ok(draft)

    def set_manual_state(self, draft: LessonDraft, state: str) -> Result[LessonDraft]:
        for check in (rules.validate_manual_state(state), rules.validate_operation("set_manual_state", draft)):
            if not check.is_success:
                return Result.fail(check.error)

        draft.publish_state = state
        draft.visibility_preference = "unlisted" if state == rules.UNLISTED else "public"
        draft.updated_at = self._clock()
        return Result.ok(draft)

    def check_submittable(self, draft: LessonDraft) -> Result[LessonDraft]:
        """Everything that must hold before the Moderation Gate is called."""
        for check in (
            rules.validate_operation("submit_for_review", draft),
            rules.validate_publishable_content(draft.content),
        ):
            if not check.is_success:
                return Result.fail(check.error)
        return Result.ok(draft)

    def apply_verdict(self, draft: LessonDraft, verdict: ModerationVerdict) -> LessonDraft:
        """Record the verdict. Blocked or unreadable verdicts leave the draft in `draft`."""
        now = self._clock()
        draft.moderation = ModerationRecord(
            status=verdict.status,
            risk_score=verdict.risk_score,
            reasons=list(verdict.reasons),
            notes=verdict.notes,
            checked_at=now,
        )
        if verdict.status in ("pass", "review"):
            draft.publish_state = rules.PENDING
        else:
            draft.publish_state = rules.DRAFT
        draft.updated_at = now
        return draft

    def build_snapshot(
        self,
        draft: LessonDraft,
        actor: Actor,
        visibility: str,
        replica_id: str,
        reviewed: bool = False,
    ) -> PublishedSnapshot:
        """Denormalized public copy of the draft's current content."""
        now = self._clock()
        content = normalize_content(draft.content.to_document())
        content.body_text = content.body_text.strip()
        moderation = ModerationRecord(**draft.moderation.to_dict())
        if reviewed:
            moderation.reviewed_by = actor.uid
            moderation.reviewed_at = now
        return PublishedSnapshot(
            id=replica_id,
            source_draft_id=draft.id,
            owner_id=draft.owner_id or actor.uid,
            content=content,
            is_active=True,
            visibility=visibility,
            published_at=now,
            updated_at=now,
            reviewed_by=moderation.reviewed_by,
            reviewed_at=moderation.reviewed_at,
            moderation=moderation,
            signed_by=SignedBy(
                uid=actor.uid,
                name_snapshot=actor.display_name,
                email_snapshot=actor.email,
                signed_at=now,
                via_admin=actor.is_admin and draft.owner_id != actor.uid,
            ),
        )

    def mark_published(self, draft: LessonDraft, snapshot: PublishedSnapshot) -> LessonDraft:
        draft.publish_state = rules.PUBLISHED
        draft.active_published_id = snapshot.id
        draft.visibility_preference = snapshot.visibility
        if snapshot.reviewed_by:
            draft.moderation.reviewed_by = snapshot.reviewed_by
            draft.moderation.reviewed_at = snapshot.reviewed_at
        draft.updated_at = self._clock()
        return draft

    def mark_rejected(self, draft: LessonDraft, reviewer: Actor, target_state: str) -> LessonDraft:
        now = self._clock()
        draft.publish_state = target_state
        draft.active_published_id = None
        draft.moderation.reviewed_by = reviewer.uid
        draft.moderation.reviewed_at = now
        draft.updated_at = now
        return draft

    def mark_unpublished(self, draft: LessonDraft) -> LessonDraft:
        draft.publish_state = rules.DRAFT
        draft.active_published_id = None
        draft.updated_at = self._clock()
        return draft

    def mark_soft_deleted(self, draft: LessonDraft) -> Result[LessonDraft]:
        if draft.is_deleted:
            return Result.fail(IllegalStateTransition(f"Lesson '{draft.id}' is already deleted."))
        now = self._clock()
        draft.deleted_at = now
        draft.publish_state = rules.DRAFT
        draft.active_published_id = None
        draft.updated_at = now
        return Result.ok(draft)

    def mark_restored(self, draft: LessonDraft) -> Result[LessonDraft]:
        if not draft.is_deleted:
            return Result.fail(IllegalStateTransition(f"Lesson '{draft.id}' is not deleted."))
        draft.deleted_at = None
        draft.updated_at = self._clock()
        return Result.ok(draft)

    def replica_id_for(self, draft: LessonDraft, existing: Optional[PublishedSnapshot] = None) -> str:
        """The replica keeps the draft's id, unless one already exists under another key."""
        if draft.active_published_id:
            return draft.active_published_id
        if existing is not None:
            return existing.id
        return draft.id
