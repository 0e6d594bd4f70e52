"""Admin endpoints: review queue, trash and store reconciliation."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from lessonhub.api.auth import get_current_actor
from lessonhub.api.serializers import serialize_draft
from lessonhub.application.reconciliation import ReconciliationService
from lessonhub.application.review_queue import ReviewQueue
from lessonhub.application.trash_manager import TrashManager
from lessonhub.container import get_reconciliation_service, get_review_queue, get_trash_manager
from lessonhub.domain.common.errors import ValidationError
from lessonhub.domain.lesson.models import Actor

router = APIRouter(prefix="/admin", tags=["admin"])


class ReviewDecisionBody(BaseModel):
    id: str
    action: str  # approve | reject


# ------------------------------------------------------------------
# Review queue
# ------------------------------------------------------------------
@router.get("/review")
def list_review_queue(
    queue: ReviewQueue = Depends(get_review_queue),
    actor: Actor = Depends(get_current_actor),
):
    return [serialize_draft(d) for d in queue.list_pending(actor)]


@router.post("/review")
def decide_review(
    body: ReviewDecisionBody,
    queue: ReviewQueue = Depends(get_review_queue),
    actor: Actor = Depends(get_current_actor),
):
    if body.action == "approve":
        draft = queue.approve(body.id, actor)
    elif body.action == "reject":
        draft = queue.reject(body.id, actor)
    else:
        raise ValidationError(f"Unknown review action '{body.action}'. Must be 'approve' or 'reject'.")
    return serialize_draft(draft)


# ------------------------------------------------------------------
# Trash
# ------------------------------------------------------------------
@router.get("/trash")
def list_trash(
    trash: TrashManager = Depends(get_trash_manager),
    actor: Actor = Depends(get_current_actor),
):
    return [serialize_draft(d) for d in trash.list_trash(actor)]


@router.post("/trash/{lesson_id}/restore")
def restore_lesson(
    lesson_id: str,
    trash: TrashManager = Depends(get_trash_manager),
    actor: Actor = Depends(get_current_actor),
):
    return serialize_draft(trash.restore(lesson_id, actor))


@router.delete("/trash/{lesson_id}")
def hard_delete_lesson(
    lesson_id: str,
    trash: TrashManager = Depends(get_trash_manager),
    actor: Actor = Depends(get_current_actor),
):
    trash.hard_delete(lesson_id, actor)
    return {"ok": True, "id": lesson_id}


# ------------------------------------------------------------------
# Reconciliation
# ------------------------------------------------------------------
@router.post("/reconcile")
def reconcile(
    svc: ReconciliationService = Depends(get_reconciliation_service),
    actor: Actor = Depends(get_current_actor),
):
    return svc.reconcile(actor)
