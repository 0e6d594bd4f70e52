"""JSON shapes shared by the lesson, admin and catalog routers."""
from __future__ import annotations

from lessonhub.domain.lesson.models import LessonContent, LessonDraft, PublishedSnapshot


def serialize_content(c: LessonContent) -> dict:
    return c.to_document()


def serialize_draft(d: LessonDraft) -> dict:
    return {
        "id": d.id,
        "owner_id": d.owner_id,
        "publish_state": d.publish_state,
        "visibility_preference": d.visibility_preference,
        "active_published_id": d.active_published_id,
        "deleted_at": d.deleted_at,
        "created_at": d.created_at,
        "updated_at": d.updated_at,
        "moderation": d.moderation.to_dict(),
        **serialize_content(d.content),
    }


def serialize_snapshot(s: PublishedSnapshot) -> dict:
    return {
        "id": s.id,
        "source_draft_id": s.source_draft_id,
        "owner_id": s.owner_id,
        "is_active": s.is_active,
        "visibility": s.visibility,
        "published_at": s.published_at,
        "updated_at": s.updated_at,
        "reviewed_by": s.reviewed_by,
        "reviewed_at": s.reviewed_at,
        "signed_by": s.signed_by.to_dict() if s.signed_by else None,
        **serialize_content(s.content),
    }
