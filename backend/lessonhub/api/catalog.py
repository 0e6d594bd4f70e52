"""Public read path: catalog listing and lesson resolution by public id."""
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Query

from lessonhub.api.auth import optional_current_actor
from lessonhub.api.serializers import serialize_snapshot
from lessonhub.application.lesson_resolver import LessonResolver
from lessonhub.container import get_lesson_resolver
from lessonhub.domain.lesson.models import Actor

router = APIRouter(prefix="/published", tags=["catalog"])


@router.get("/")
def list_published(
    limit: Optional[int] = Query(None, ge=1, le=200),
    resolver: LessonResolver = Depends(get_lesson_resolver),
):
    return [serialize_snapshot(s) for s in resolver.list_catalog(limit)]


@router.get("/{public_id}")
def get_published(
    public_id: str,
    resolver: LessonResolver = Depends(get_lesson_resolver),
    viewer: Optional[Actor] = Depends(optional_current_actor),
):
    return serialize_snapshot(resolver.resolve(public_id, viewer))
