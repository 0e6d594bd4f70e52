"""
Server-side publish / unpublish / moderation endpoints.

Replica writes only happen here, behind the caller's verified identity;
clients never write published records themselves.
"""
from __future__ import annotations
from typing import Any, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from lessonhub.api.auth import get_current_actor
from lessonhub.application.lesson_app_service import LessonAppService
from lessonhub.container import get_lesson_app_service, get_moderation_gate
from lessonhub.domain.common.errors import ValidationError
from lessonhub.domain.lesson.models import Actor
from lessonhub.integrations.moderation import ModerationGate

router = APIRouter(prefix="/api", tags=["publishing"])


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class PublishRequest(BaseModel):
    # Older clients send the draft id as `id` or `lessonId`
    draftId: Optional[str] = None
    lessonId: Optional[str] = None
    id: Optional[str] = None
    visibility: Optional[str] = None


class UnpublishRequest(BaseModel):
    id: Optional[str] = None
    publishedId: Optional[str] = None
    lessonId: Optional[str] = None
    draftId: Optional[str] = None


class ModerationRequest(BaseModel):
    title: str = ""
    bodyText: str = ""
    taskList: List[Any] = []


def _required_id(*candidates: Optional[str]) -> str:
    for value in candidates:
        if value and value.strip():
            return value.strip()
    raise ValidationError("Missing lesson id (draftId / lessonId / id).")


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------
@router.post("/publish")
def publish(
    body: PublishRequest,
    svc: LessonAppService = Depends(get_lesson_app_service),
    actor: Actor = Depends(get_current_actor),
):
    draft_id = _required_id(body.draftId, body.lessonId, body.id)
    snapshot = svc.publish_direct(draft_id, actor, visibility=body.visibility)
    return {"ok": True, "publishedId": snapshot.id, "draftId": draft_id, "visibility": snapshot.visibility}


@router.post("/unpublish")
def unpublish(
    body: UnpublishRequest,
    svc: LessonAppService = Depends(get_lesson_app_service),
    actor: Actor = Depends(get_current_actor),
):
    published_id = _required_id(body.publishedId, body.id, body.lessonId, body.draftId)
    return svc.unpublish_request(published_id, body.draftId, actor)


@router.post("/moderate-lesson")
def moderate_lesson(
    body: ModerationRequest,
    gate: ModerationGate = Depends(get_moderation_gate),
    actor: Actor = Depends(get_current_actor),
):
    verdict = gate.check(body.title, body.bodyText, body.taskList)
    return {
        "status": verdict.status,
        "riskScore": verdict.risk_score,
        "reasons": verdict.reasons,
        "notes": verdict.notes,
    }
