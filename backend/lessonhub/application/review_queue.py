"""Review Queue: pending drafts for human decision, riskiest first."""
from __future__ import annotations
from typing import List

from lessonhub.application.lesson_app_service import LessonAppService
from lessonhub.domain.lesson import rules
from lessonhub.domain.lesson.models import Actor, LessonDraft
from lessonhub.persistence.interfaces.draft_repository import DraftRepository


class ReviewQueue:
    def __init__(self, drafts: DraftRepository, lessons: LessonAppService, page_size: int = 50):
        self._drafts = drafts
        self._lessons = lessons
        self._page_size = page_size

    def list_pending(self, reviewer: Actor) -> List[LessonDraft]:
        """May lag the latest Draft Store write slightly; reviewers re-check state on approve/reject."""
        rules.validate_admin(reviewer, "view the review queue").unwrap()
        return self._drafts.list_by_state(rules.PENDING, self._page_size)

    def approve(self, draft_id: str, reviewer: Actor) -> LessonDraft:
        return self._lessons.approve_publish(draft_id, reviewer)

    def reject(self, draft_id: str, reviewer: Actor) -> LessonDraft:
        return self._lessons.reject_publish(draft_id, reviewer)
