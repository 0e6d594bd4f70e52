"""Publish state machine, permission policy and replica read rule."""
import pytest

from lessonhub.domain.common.errors import AuthorizationError, IllegalStateTransition, ValidationError
from lessonhub.domain.lesson import rules
from lessonhub.domain.lesson.models import Actor, LessonContent, LessonDraft, PublishedSnapshot


def _draft(state="draft", deleted_at=None, owner_id="teacher-1"):
    return LessonDraft(
        id="d1",
        owner_id=owner_id,
        publish_state=state,
        created_at="t0",
        updated_at="t0",
        content=LessonContent(title="T", body_text="B"),
        deleted_at=deleted_at,
    )


def _snapshot(is_active):
    return PublishedSnapshot(
        id="d1", source_draft_id="d1", owner_id="teacher-1", content=LessonContent(),
        is_active=is_active, visibility="public", published_at="t0", updated_at="t0",
    )


# ------------------------------------------------------------------
# State machine
# ------------------------------------------------------------------
@pytest.mark.parametrize("state", ["draft", "unlisted", "rejected"])
def test_submit_allowed_from_editable_states(state):
    assert rules.validate_operation("submit_for_review", _draft(state)).is_success


@pytest.mark.parametrize("state", ["pending", "published"])
def test_submit_refused_from_pending_and_published(state):
    result = rules.validate_operation("submit_for_review", _draft(state))
    assert not result.is_success
    assert isinstance(result.error, IllegalStateTransition)


@pytest.mark.parametrize("op", ["approve_publish", "reject_publish"])
def test_review_decisions_only_from_pending(op):
    assert rules.validate_operation(op, _draft("pending")).is_success
    assert not rules.validate_operation(op, _draft("draft")).is_success


def test_unpublish_only_from_published():
    assert rules.validate_operation("unpublish", _draft("published")).is_success
    assert not rules.validate_operation("unpublish", _draft("unlisted")).is_success


def test_deleted_draft_refuses_every_operation():
    draft = _draft("draft", deleted_at="t1")
    for op in rules.OPERATION_SOURCE_STATES:
        result = rules.validate_operation(op, draft)
        assert not result.is_success
        assert "deleted" in result.error.message


def test_manual_state_limited_to_draft_and_unlisted():
    assert rules.validate_manual_state("unlisted").is_success
    result = rules.validate_manual_state("published")
    assert isinstance(result.error, ValidationError)


def test_publishable_content_requires_title_and_body():
    assert isinstance(rules.validate_publishable_content(LessonContent(title="", body_text="x")).error, ValidationError)
    assert isinstance(rules.validate_publishable_content(LessonContent(title="x", body_text="  ")).error, ValidationError)
    assert rules.validate_publishable_content(LessonContent(title="x", body_text="y")).is_success


def test_patch_rejects_immutable_and_unknown_fields():
    draft = _draft()
    assert isinstance(rules.validate_patch(draft, {"owner_id": "someone-else"}).error, ValidationError)
    assert isinstance(rules.validate_patch(draft, {"publish_state": "published"}).error, ValidationError)
    # Re-sending the unchanged id is harmless and dropped from the patch
    assert rules.validate_patch(draft, {"id": "d1", "title": "New"}).value == {"title": "New"}


# ------------------------------------------------------------------
# Actors
# ------------------------------------------------------------------
def test_publish_policy():
    assert rules.can_publish(Actor(uid="a", is_admin=True))
    assert rules.can_publish(Actor(uid="t", teacher_status="approved"))
    assert rules.can_publish(Actor(uid="c", caps_publish=True))
    assert not rules.can_publish(Actor(uid="s", teacher_status="pending"))


def test_publisher_must_own_unless_admin():
    draft = _draft(owner_id="teacher-1")
    other_teacher = Actor(uid="teacher-2", teacher_status="approved")
    assert isinstance(rules.validate_publisher(other_teacher, draft).error, AuthorizationError)
    assert rules.validate_publisher(Actor(uid="admin", is_admin=True), draft).is_success


def test_inactive_replica_readable_by_owner_and_admin_only():
    hidden = _snapshot(is_active=False)
    assert rules.can_read_replica(_snapshot(is_active=True), None)
    assert not rules.can_read_replica(hidden, None)
    assert not rules.can_read_replica(hidden, Actor(uid="student-9"))
    assert rules.can_read_replica(hidden, Actor(uid="teacher-1"))
    assert rules.can_read_replica(hidden, Actor(uid="root", is_admin=True))
