"""Business rules for the Lesson domain: enforces the publish state machine and who may drive it."""
from __future__ import annotations
from typing import Optional

from lessonhub.domain.common.errors import (
    AuthorizationError,
    IllegalStateTransition,
    ValidationError,
)
from lessonhub.domain.common.result import Result
from lessonhub.domain.lesson.models import Actor, LessonContent, LessonDraft, PublishedSnapshot

DRAFT = "draft"
UNLISTED = "unlisted"
PENDING = "pending"
PUBLISHED = "published"
REJECTED = "rejected"

# Valid publish states
VALID_STATES = {DRAFT, UNLISTED, PENDING, PUBLISHED, REJECTED}

# States an owner may pick without review
MANUAL_STATES = {DRAFT, UNLISTED}

VALID_VISIBILITIES = {"public", "unlisted"}

MODERATION_STATUSES = {"pass", "review", "blocked", "unknown"}

# Which publish states each operation may start from
OPERATION_SOURCE_STATES: dict[str, set[str]] = {
    "set_manual_state": {DRAFT, UNLISTED, REJECTED},
    "submit_for_review": {DRAFT, UNLISTED, REJECTED},
    "approve_publish": {PENDING},
    "reject_publish": {PENDING},
    "publish_direct": {DRAFT, UNLISTED, PENDING, PUBLISHED, REJECTED},
    "unpublish": {PUBLISHED},
}

# Content keys an owner may patch; everything else on a draft is lifecycle state
PATCHABLE_FIELDS = {
    "title", "body_text", "task_list", "description", "level",
    "language", "topics", "text_type", "cover_image_url",
}

IMMUTABLE_FIELDS = {"id", "owner_id"}


def validate_operation(operation: str, draft: LessonDraft) -> Result[str]:
    """
    Checks that `operation` may run on `draft` in its current state.
    Soft-deleted drafts accept none of the state-machine operations.
    """
    allowed = OPERATION_SOURCE_STATES.get(operation)
    if allowed is None:
        return Result.fail(IllegalStateTransition(f"Unknown operation '{operation}'."))

    if draft.is_deleted:
        return Result.fail(IllegalStateTransition(
            f"Lesson '{draft.id}' is deleted/archived. Restore it before '{operation}'."
        ))

    if draft.publish_state not in allowed:
        return Result.fail(IllegalStateTransition(
            f"Cannot {operation} lesson '{draft.id}' in state '{draft.publish_state}'. "
            f"Allowed from: {sorted(allowed)}."
        ))
    return Result.ok(draft.publish_state)


def validate_manual_state(state: str) -> Result[str]:
    if state not in MANUAL_STATES:
        return Result.fail(ValidationError(
            f"'{state}' cannot be set manually. Must be one of {sorted(MANUAL_STATES)}."
        ))
    return Result.ok(state)


def validate_visibility(visibility: str) -> Result[str]:
    if visibility not in VALID_VISIBILITIES:
        return Result.fail(ValidationError(
            f"'{visibility}' is not a valid visibility. Must be one of {sorted(VALID_VISIBILITIES)}."
        ))
    return Result.ok(visibility)


def validate_publishable_content(content: LessonContent) -> Result[LessonContent]:
    """A lesson needs a title and body text before it can be reviewed or published."""
    if not (content.title or "").strip():
        return Result.fail(ValidationError("Lesson 'title' is required and cannot be empty."))
    if not (content.body_text or "").strip():
        return Result.fail(ValidationError("Lesson 'body_text' is required and cannot be empty."))
    return Result.ok(content)


def validate_patch(draft: LessonDraft, patch: dict) -> Result[dict]:
    if draft.is_deleted:
        return Result.fail(ValidationError(f"Lesson '{draft.id}' is deleted/archived and cannot be edited."))

    for key in IMMUTABLE_FIELDS:
        if key in patch and patch[key] != getattr(draft, key):
            return Result.fail(ValidationError(f"'{key}' is immutable."))

    unknown = set(patch) - PATCHABLE_FIELDS - IMMUTABLE_FIELDS
    if unknown:
        return Result.fail(ValidationError(f"Fields cannot be patched: {sorted(unknown)}."))
    return Result.ok({k: v for k, v in patch.items() if k in PATCHABLE_FIELDS})


# ------------------------------------------------------------------
# Actors
# ------------------------------------------------------------------
def can_publish(actor: Actor) -> bool:
    """Admins, approved teachers and holders of the publish capability may publish directly."""
    return actor.is_admin or actor.teacher_status == "approved" or actor.caps_publish


def validate_owner_or_admin(actor: Actor, owner_id: Optional[str]) -> Result[Actor]:
    if actor.is_admin or not owner_id or owner_id == actor.uid:
        return Result.ok(actor)
    return Result.fail(AuthorizationError("Not owner of draft."))


def validate_admin(actor: Actor, action: str) -> Result[Actor]:
    if not actor.is_admin:
        return Result.fail(AuthorizationError(f"Only admins may {action}."))
    return Result.ok(actor)


def validate_publisher(actor: Actor, draft: LessonDraft) -> Result[Actor]:
    if not can_publish(actor):
        return Result.fail(AuthorizationError(
            "Publishing not allowed (requires teacher_status=approved, caps.publish or admin). "
            f"teacher_status={actor.teacher_status} admin={actor.is_admin} caps.publish={actor.caps_publish}"
        ))
    return validate_owner_or_admin(actor, draft.owner_id)


def can_read_replica(snapshot: PublishedSnapshot, viewer: Optional[Actor]) -> bool:
    """Store read rule: inactive replicas are only readable by their owner or an admin."""
    if snapshot.is_active:
        return True
    if viewer is None:
        return False
    return viewer.is_admin or viewer.uid == snapshot.owner_id
