"""Owner-facing lesson draft endpoints: CRUD, manual state, submit for review, soft delete."""
from __future__ import annotations
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from lessonhub.api.auth import get_current_actor
from lessonhub.api.serializers import serialize_draft
from lessonhub.application.lesson_app_service import LessonAppService
from lessonhub.application.trash_manager import TrashManager
from lessonhub.container import get_lesson_app_service, get_trash_manager
from lessonhub.domain.lesson.models import Actor

router = APIRouter(tags=["lessons"])


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class LessonContentBody(BaseModel):
    title: str = ""
    body_text: str = ""
    task_list: List[Any] = []
    description: str = ""
    level: str = ""
    language: str = ""
    topics: List[str] = []
    text_type: str = ""
    cover_image_url: str = ""


class LessonPatchBody(BaseModel):
    # id / owner_id are accepted only so that attempts to change them are rejected
    id: Optional[str] = None
    owner_id: Optional[str] = None
    title: Optional[str] = None
    body_text: Optional[str] = None
    task_list: Optional[List[Any]] = None
    description: Optional[str] = None
    level: Optional[str] = None
    language: Optional[str] = None
    topics: Optional[List[str]] = None
    text_type: Optional[str] = None
    cover_image_url: Optional[str] = None


class ManualStateBody(BaseModel):
    state: str


# ------------------------------------------------------------------
# Health check
# ------------------------------------------------------------------
@router.get("/health")
def health():
    return {"status": "ok"}


# ------------------------------------------------------------------
# Draft endpoints
# ------------------------------------------------------------------
@router.get("/lessons/")
def list_lessons(
    svc: LessonAppService = Depends(get_lesson_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return [serialize_draft(d) for d in svc.list_my_drafts(actor)]


@router.post("/lessons/", status_code=status.HTTP_201_CREATED)
def create_lesson(
    body: LessonContentBody,
    svc: LessonAppService = Depends(get_lesson_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return serialize_draft(svc.create_draft(actor, body.model_dump()))


@router.get("/lessons/{lesson_id}")
def get_lesson(
    lesson_id: str,
    svc: LessonAppService = Depends(get_lesson_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return serialize_draft(svc.get_draft(lesson_id, actor))


@router.patch("/lessons/{lesson_id}")
def update_lesson(
    lesson_id: str,
    body: LessonPatchBody,
    svc: LessonAppService = Depends(get_lesson_app_service),
    actor: Actor = Depends(get_current_actor),
):
    patch = body.model_dump(exclude_unset=True)
    return serialize_draft(svc.update_draft(lesson_id, patch, actor))


@router.post("/lessons/{lesson_id}/state")
def set_state(
    lesson_id: str,
    body: ManualStateBody,
    svc: LessonAppService = Depends(get_lesson_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return serialize_draft(svc.set_manual_state(lesson_id, body.state, actor))


@router.post("/lessons/{lesson_id}/submit")
def submit_lesson(
    lesson_id: str,
    svc: LessonAppService = Depends(get_lesson_app_service),
    actor: Actor = Depends(get_current_actor),
):
    return serialize_draft(svc.submit_for_review(lesson_id, actor))


@router.delete("/lessons/{lesson_id}")
def delete_lesson(
    lesson_id: str,
    trash: TrashManager = Depends(get_trash_manager),
    actor: Actor = Depends(get_current_actor),
):
    """Soft delete: the lesson moves to the trash and its published copy is hidden."""
    return serialize_draft(trash.soft_delete(lesson_id, actor))
