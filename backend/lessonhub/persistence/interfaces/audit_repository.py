"""Abstract repository interface for the append-only audit log."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List

from lessonhub.domain.lesson.models import AuditEvent


class AuditRepository(ABC):

    @abstractmethod
    def append(self, event: AuditEvent) -> None:
        ...

    @abstractmethod
    def list_for_lesson(self, lesson_id: str) -> List[AuditEvent]:
        """Events for a lesson, oldest first."""
        ...
