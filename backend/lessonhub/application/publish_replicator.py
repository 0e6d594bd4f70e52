"""
Publish Replicator: copies a draft's public fields into the Replica Store.

`replicate` is an idempotent upsert: every call overwrites the replica with
the draft's content at call time, marks it active and moves `published_at`
to now. It never touches the Draft Store; callers update the draft's
pointer fields afterwards, and a failure between the two writes leaves a
replica that a later replicate or reconcile converges.
"""
from __future__ import annotations
from typing import Optional

import structlog

from lessonhub.domain.common.errors import LessonError, NotFound, ReplicaWriteFailure
from lessonhub.domain.lesson.models import Actor, LessonDraft, PublishedSnapshot
from lessonhub.domain.lesson.service import LessonDomainService
from lessonhub.persistence.interfaces.draft_repository import DraftRepository
from lessonhub.persistence.interfaces.replica_repository import ReplicaRepository

logger = structlog.get_logger(__name__)


class PublishReplicator:
    def __init__(
        self,
        drafts: DraftRepository,
        replicas: ReplicaRepository,
        domain: Optional[LessonDomainService] = None,
    ):
        self._drafts = drafts
        self._replicas = replicas
        self._domain = domain or LessonDomainService()

    def replicate(
        self,
        draft_id: str,
        actor: Actor,
        visibility: Optional[str] = None,
        reviewed: bool = False,
    ) -> PublishedSnapshot:
        draft = self._drafts.get(draft_id)
        if draft is None:
            raise NotFound(f"Lesson '{draft_id}' not found.")
        return self.replicate_draft(draft, actor, visibility, reviewed)

    def replicate_draft(
        self,
        draft: LessonDraft,
        actor: Actor,
        visibility: Optional[str] = None,
        reviewed: bool = False,
    ) -> PublishedSnapshot:
        try:
            existing = None
            if not draft.active_published_id:
                existing = self._replicas.find_by_source_draft_id(draft.id)
            replica_id = self._domain.replica_id_for(draft, existing)
            snapshot = self._domain.build_snapshot(
                draft,
                actor,
                visibility or draft.visibility_preference,
                replica_id,
                reviewed=reviewed,
            )
            self._replicas.upsert(snapshot)
        except LessonError:
            raise
        except Exception as e:
            logger.error("replica_write_failed", draft_id=draft.id, error=str(e))
            raise ReplicaWriteFailure(f"Could not write published copy of '{draft.id}': {e}") from e

        logger.info(
            "replica_upserted",
            draft_id=draft.id,
            replica_id=snapshot.id,
            visibility=snapshot.visibility,
            uid=actor.uid,
        )
        return snapshot

    def remove_for_draft(self, draft: LessonDraft) -> bool:
        """Hard delete of every replica of `draft`. Best-effort: logs and returns False on failure."""
        try:
            ids = {rid for rid in (draft.active_published_id, draft.id) if rid}
            by_source = self._replicas.find_by_source_draft_id(draft.id)
            if by_source is not None:
                ids.add(by_source.id)
            removed = [rid for rid in sorted(ids) if self._replicas.delete(rid)]
        except Exception as e:
            logger.warning("replica_delete_failed", draft_id=draft.id, error=str(e))
            return False
        logger.info("replica_deleted", draft_id=draft.id, replica_ids=removed)
        return True
