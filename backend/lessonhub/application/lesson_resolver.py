"""
Lesson Resolver: the read path every public consumer goes through.

A public id is first looked up as a replica key; on a miss or a permission
denial it is retried as a `source_draft_id`. Denials, misses and inactive
replicas all come out as NotFound; only the log line tells them apart.
"""
from __future__ import annotations
from typing import List, Optional

import structlog

from lessonhub.domain.common.errors import NotFound, PermissionDenied
from lessonhub.domain.lesson.models import Actor, PublishedSnapshot
from lessonhub.persistence.interfaces.replica_repository import ReplicaRepository

logger = structlog.get_logger(__name__)


class LessonResolver:
    def __init__(self, replicas: ReplicaRepository, catalog_page_size: int = 50):
        self._replicas = replicas
        self._catalog_page_size = catalog_page_size

    def resolve(self, public_id: str, viewer: Optional[Actor] = None) -> PublishedSnapshot:
        denied = False
        snapshot = None
        via = "docId"
        try:
            snapshot = self._replicas.read(public_id, viewer)
        except PermissionDenied:
            denied = True

        if snapshot is None:
            via = "fieldQuery"
            try:
                snapshot = self._replicas.read_by_source(public_id, viewer)
            except PermissionDenied:
                denied = True

        if snapshot is None:
            logger.info("lesson_unresolved", public_id=public_id, permission_denied=denied)
            raise NotFound(f"Lesson '{public_id}' not found.")

        if not snapshot.is_active:
            logger.info("lesson_inactive", public_id=public_id, replica_id=snapshot.id, via=via)
            raise NotFound(f"Lesson '{public_id}' not found.")
        return snapshot

    def list_catalog(self, limit: Optional[int] = None) -> List[PublishedSnapshot]:
        """Active public replicas, newest first. Unlisted lessons are only reachable by id."""
        return self._replicas.list_active(visibility="public", limit=limit or self._catalog_page_size)
