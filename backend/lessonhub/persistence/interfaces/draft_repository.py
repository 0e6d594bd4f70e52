"""Abstract repository interface for the Draft Store."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional

from lessonhub.domain.lesson.models import LessonDraft


class DraftRepository(ABC):

    @abstractmethod
    def save(self, draft: LessonDraft, expected_state: Optional[str] = None) -> None:
        """
        Insert or merge-write the draft as one atomic record write.
        With `expected_state`, the write only lands if the stored publish_state still
        equals it; otherwise ConcurrencyConflict (or NotFound if the row is gone).
        """
        ...

    @abstractmethod
    def get(self, draft_id: str) -> Optional[LessonDraft]:
        """Return the draft, or None."""
        ...

    @abstractmethod
    def delete(self, draft_id: str) -> bool:
        """Physically remove the draft. Returns True if deleted."""
        ...

    @abstractmethod
    def list_by_state(self, state: str, limit: int) -> List[LessonDraft]:
        """Non-deleted drafts in `state`, highest moderation risk first, then oldest update first."""
        ...

    @abstractmethod
    def list_by_owner(self, owner_id: str, include_deleted: bool = False) -> List[LessonDraft]:
        """Drafts owned by `owner_id`, most recently updated first."""
        ...

    @abstractmethod
    def list_deleted(self, limit: int) -> List[LessonDraft]:
        """Soft-deleted drafts, most recently deleted first."""
        ...

    @abstractmethod
    def list_all(self) -> List[LessonDraft]:
        """Every draft, deleted or not."""
        ...
