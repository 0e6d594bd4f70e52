"""Public reads: only active replicas ever come back."""
import pytest

from lessonhub.domain.common.errors import NotFound
from lessonhub.domain.lesson.models import LessonContent, PublishedSnapshot


def _legacy_replica(world, replica_id, draft_id, is_active=True, visibility="public", published_at="2026-01-01T00:00:00+00:00"):
    world.replicas.upsert(PublishedSnapshot(
        id=replica_id, source_draft_id=draft_id, owner_id="teacher-1",
        content=LessonContent(title=replica_id, body_text="b"), is_active=is_active,
        visibility=visibility, published_at=published_at, updated_at=published_at,
    ))


def test_resolves_active_replica(world, published_draft, stranger):
    snapshot = world.resolver.resolve(published_draft.id, stranger)
    assert snapshot.content.title == "Test"
    assert world.resolver.resolve(published_draft.id).id == published_draft.id


def test_inactive_replica_is_not_found(world, owner, admin, published_draft):
    world.lessons.unpublish(published_draft.id, owner)
    for viewer in (None, owner, admin):
        with pytest.raises(NotFound):
            world.resolver.resolve(published_draft.id, viewer)


def test_falls_back_to_source_draft_id(world):
    _legacy_replica(world, "pub-77", "draft-legacy")
    assert world.resolver.resolve("draft-legacy").id == "pub-77"
    assert world.resolver.resolve("pub-77").id == "pub-77"


def test_inactive_legacy_replica_is_not_found_through_fallback(world):
    _legacy_replica(world, "pub-78", "draft-old", is_active=False)
    with pytest.raises(NotFound):
        world.resolver.resolve("draft-old")


def test_unknown_id(world):
    with pytest.raises(NotFound):
        world.resolver.resolve("nothing-here")


def test_catalog_lists_active_public_newest_first(world):
    _legacy_replica(world, "old", "d1", published_at="2026-01-01T00:00:00+00:00")
    _legacy_replica(world, "new", "d2", published_at="2026-02-01T00:00:00+00:00")
    _legacy_replica(world, "hidden", "d3", is_active=False)
    _legacy_replica(world, "link-only", "d4", visibility="unlisted")

    assert [s.id for s in world.resolver.list_catalog()] == ["new", "old"]
    assert [s.id for s in world.resolver.list_catalog(limit=1)] == ["new"]
