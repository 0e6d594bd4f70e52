"""Application service: orchestrates validate, domain op and persist for the lesson publish lifecycle."""
from __future__ import annotations
import threading
from dataclasses import replace
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

import structlog

from lessonhub.application.audit_log import (
    PUBLISH_BLOCKED,
    PUBLISH_SUCCESS,
    REVIEW_APPROVED,
    REVIEW_REJECTED,
    SUBMIT_BLOCKED,
    UNPUBLISH_BLOCKED,
    UNPUBLISH_SUCCESS,
    AuditLog,
)
from lessonhub.application.publish_replicator import PublishReplicator
from lessonhub.application.visibility_controller import VisibilityController
from lessonhub.domain.common.errors import (
    ConcurrencyConflict,
    DraftBusy,
    IllegalStateTransition,
    ModerationBlocked,
    ModerationUnavailable,
    NotFound,
)
from lessonhub.domain.lesson import rules
from lessonhub.domain.lesson.models import Actor, LessonDraft, ModerationVerdict, PublishedSnapshot
from lessonhub.domain.lesson.service import LessonDomainService, now_iso
from lessonhub.integrations.moderation import ModerationGate
from lessonhub.persistence.interfaces.draft_repository import DraftRepository

logger = structlog.get_logger(__name__)


class LessonAppService:
    def __init__(
        self,
        drafts: DraftRepository,
        replicator: PublishReplicator,
        visibility: VisibilityController,
        gate: ModerationGate,
        audit: AuditLog,
        clock: Callable[[], str] = now_iso,
        reject_target_state: str = rules.REJECTED,
    ):
        if reject_target_state not in (rules.REJECTED, rules.DRAFT):
            raise ValueError(f"reject_target_state must be 'rejected' or 'draft', got '{reject_target_state}'")
        self._drafts = drafts
        self._replicator = replicator
        self._visibility = visibility
        self._gate = gate
        self._audit = audit
        self._domain = LessonDomainService(clock)
        self._reject_target_state = reject_target_state
        self._busy: set[str] = set()
        self._busy_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _load(self, draft_id: str) -> LessonDraft:
        draft = self._drafts.get(draft_id)
        if draft is None:
            raise NotFound(f"Lesson '{draft_id}' not found.")
        return draft

    def _load_owned(self, draft_id: str, actor: Actor) -> LessonDraft:
        draft = self._load(draft_id)
        rules.validate_owner_or_admin(actor, draft.owner_id).unwrap()
        return draft

    @contextmanager
    def _in_flight(self, draft_id: str) -> Iterator[None]:
        """Marks the draft busy for the duration of a moderation round trip."""
        with self._busy_lock:
            if draft_id in self._busy:
                raise DraftBusy(f"Lesson '{draft_id}' is already being submitted.")
            self._busy.add(draft_id)
        try:
            yield
        finally:
            with self._busy_lock:
                self._busy.discard(draft_id)

    def is_busy(self, draft_id: str) -> bool:
        with self._busy_lock:
            return draft_id in self._busy

    def _commit_published(self, draft: LessonDraft, snapshot: PublishedSnapshot, observed: str) -> LessonDraft:
        self._domain.mark_published(draft, snapshot)
        try:
            self._drafts.save(draft, expected_state=observed)
        except (ConcurrencyConflict, NotFound) as e:
            # Lost the race: hide the replica unless a concurrent publish already owns it
            current = self._drafts.get(draft.id)
            if current is None or current.is_deleted or current.publish_state != rules.PUBLISHED:
                self._visibility.deactivate_for_draft(draft, None, reason="publish_race_lost")
            logger.warning(
                "replica_pointer_write_conflict",
                draft_id=draft.id,
                replica_id=snapshot.id,
                error=str(e),
            )
            raise
        except Exception as e:
            # The replica is live but the draft does not point at it yet; a retry or reconcile converges
            logger.warning(
                "replica_pointer_write_failed",
                draft_id=draft.id,
                replica_id=snapshot.id,
                error=str(e),
            )
            raise
        return draft

    # ------------------------------------------------------------------
    # CREATE / READ
    # ------------------------------------------------------------------
    def create_draft(self, actor: Actor, data: dict) -> LessonDraft:
        draft = self._domain.create_draft(actor.uid, data).unwrap()
        self._drafts.save(draft)
        logger.info("draft_created", draft_id=draft.id, uid=actor.uid)
        return draft

    def get_draft(self, draft_id: str, actor: Actor) -> LessonDraft:
        return self._load_owned(draft_id, actor)

    def list_my_drafts(self, actor: Actor) -> List[LessonDraft]:
        return self._drafts.list_by_owner(actor.uid)

    # ------------------------------------------------------------------
    # UPDATE
    # ------------------------------------------------------------------
    def update_draft(self, draft_id: str, patch: dict, actor: Actor) -> LessonDraft:
        draft = self._load_owned(draft_id, actor)
        observed = draft.publish_state
        self._domain.update_draft(draft, patch).unwrap()
        self._drafts.save(draft, expected_state=observed)
        return draft

    def set_manual_state(self, draft_id: str, state: str, actor: Actor) -> LessonDraft:
        draft = self._load_owned(draft_id, actor)
        observed = draft.publish_state
        self._domain.set_manual_state(draft, state).unwrap()
        self._drafts.save(draft, expected_state=observed)
        logger.info("manual_state_set", draft_id=draft.id, state=state)
        return draft

    # ------------------------------------------------------------------
    # REVIEW
    # ------------------------------------------------------------------
    def submit_for_review(self, draft_id: str, actor: Actor) -> LessonDraft:
        """
        Runs the Moderation Gate and records its verdict on the draft whatever it is.
        pass/review move the draft to `pending`; blocked raises ModerationBlocked with
        the gate's reasons unchanged; an unreachable gate raises ModerationUnavailable.
        """
        draft = self._load_owned(draft_id, actor)
        self._domain.check_submittable(draft).unwrap()
        observed = draft.publish_state

        with self._in_flight(draft.id):
            try:
                verdict = self._gate.check(draft.content.title, draft.content.body_text, draft.content.task_list)
            except ModerationUnavailable as e:
                verdict = ModerationVerdict(status="unknown", notes=e.message)
            self._domain.apply_verdict(draft, verdict)
            self._drafts.save(draft, expected_state=observed)

        logger.info(
            "moderation_recorded",
            draft_id=draft.id,
            status=verdict.status,
            risk_score=verdict.risk_score,
            state=draft.publish_state,
        )
        if verdict.status == "blocked":
            self._audit.record(SUBMIT_BLOCKED, actor.uid, draft.id, reasons=verdict.reasons)
            raise ModerationBlocked(verdict.reasons, verdict.notes)
        if verdict.status == "unknown":
            raise ModerationUnavailable(verdict.notes or "Moderation verdict unavailable. Try again.")
        return draft

    def approve_publish(self, draft_id: str, reviewer: Actor) -> LessonDraft:
        rules.validate_admin(reviewer, "approve lessons").unwrap()
        draft = self._load(draft_id)
        rules.validate_operation("approve_publish", draft).unwrap()
        rules.validate_publishable_content(draft.content).unwrap()

        snapshot = self._replicator.replicate_draft(
            draft, reviewer, visibility=draft.visibility_preference, reviewed=True
        )
        self._commit_published(draft, snapshot, observed=rules.PENDING)
        self._audit.record(REVIEW_APPROVED, reviewer.uid, draft.id, published_id=snapshot.id)
        logger.info("review_approved", draft_id=draft.id, replica_id=snapshot.id, reviewer=reviewer.uid)
        return draft

    def reject_publish(self, draft_id: str, reviewer: Actor) -> LessonDraft:
        rules.validate_admin(reviewer, "reject lessons").unwrap()
        draft = self._load(draft_id)
        rules.validate_operation("reject_publish", draft).unwrap()

        before = replace(draft)
        self._domain.mark_rejected(draft, reviewer, self._reject_target_state)
        self._drafts.save(draft, expected_state=rules.PENDING)
        self._visibility.deactivate_for_draft(before, reviewer.uid, reason="reject")
        self._audit.record(REVIEW_REJECTED, reviewer.uid, draft.id, target_state=draft.publish_state)
        logger.info("review_rejected", draft_id=draft.id, reviewer=reviewer.uid, state=draft.publish_state)
        return draft

    # ------------------------------------------------------------------
    # PUBLISH / UNPUBLISH
    # ------------------------------------------------------------------
    def publish_direct(self, draft_id: str, actor: Actor, visibility: Optional[str] = None) -> PublishedSnapshot:
        """Trusted-actor publish: skips the Review Queue, still goes through the replicator."""
        draft = self._drafts.get(draft_id)
        if draft is None:
            self._audit.record(PUBLISH_BLOCKED, actor.uid, draft_id, reason="DRAFT_NOT_FOUND")
            raise NotFound(f"Lesson '{draft_id}' not found.")

        allowed = rules.validate_publisher(actor, draft)
        if not allowed.is_success:
            self._audit.record(
                PUBLISH_BLOCKED, actor.uid, draft.id,
                reason="NOT_OWNER" if rules.can_publish(actor) else "NOT_ALLOWED_TO_PUBLISH",
                teacher_status=actor.teacher_status,
                caps_publish=actor.caps_publish,
            )
            raise allowed.error

        rules.validate_operation("publish_direct", draft).unwrap()
        rules.validate_publishable_content(draft.content).unwrap()
        visibility = rules.validate_visibility(visibility or draft.visibility_preference).unwrap()
        observed = draft.publish_state

        snapshot = self._replicator.replicate_draft(draft, actor, visibility=visibility)
        self._commit_published(draft, snapshot, observed=observed)
        self._audit.record(
            PUBLISH_SUCCESS, actor.uid, draft.id,
            published_id=snapshot.id, visibility=visibility,
            is_admin_publish=actor.is_admin, effective_owner_id=snapshot.owner_id,
        )
        logger.info("lesson_published", draft_id=draft.id, replica_id=snapshot.id, uid=actor.uid)
        return snapshot

    def unpublish(self, draft_id: str, actor: Actor) -> LessonDraft:
        draft = self._load(draft_id)
        allowed = rules.validate_owner_or_admin(actor, draft.owner_id)
        if not allowed.is_success:
            self._audit.record(UNPUBLISH_BLOCKED, actor.uid, draft.id, reason="NOT_OWNER")
            raise allowed.error
        rules.validate_operation("unpublish", draft).unwrap()

        published_id = draft.active_published_id
        self._visibility.deactivate_for_draft(draft, actor.uid, reason="unpublish")
        self._domain.mark_unpublished(draft)
        self._drafts.save(draft, expected_state=rules.PUBLISHED)
        self._audit.record(
            UNPUBLISH_SUCCESS, actor.uid, draft.id,
            published_id=published_id, is_admin_unpublish=actor.is_admin,
        )
        logger.info("lesson_unpublished", draft_id=draft.id, uid=actor.uid)
        return draft

    def unpublish_request(self, published_id: str, draft_id: Optional[str], actor: Actor) -> dict:
        """
        Server unpublish endpoint semantics: the draft is looked up by `draft_id`
        (falling back to `published_id`). A published draft goes through `unpublish`;
        a missing or out-of-sync draft still lets its owner or an admin hide the replica.
        """
        lookup_id = draft_id or published_id
        draft = self._drafts.get(lookup_id)
        if draft is not None and draft.publish_state == rules.PUBLISHED and not draft.is_deleted:
            self.unpublish(draft.id, actor)
        elif draft is not None:
            rules.validate_owner_or_admin(actor, draft.owner_id).unwrap()
            try:
                self._visibility.unpublish_replica(published_id, actor, draft_id=lookup_id)
            except NotFound:
                raise IllegalStateTransition(
                    f"Cannot unpublish lesson '{draft.id}' in state '{draft.publish_state}'."
                )
        else:
            self._visibility.unpublish_replica(published_id, actor, draft_id=lookup_id)
        return {"ok": True, "publishedId": published_id, "draftId": lookup_id}

