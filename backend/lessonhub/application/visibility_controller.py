"""Visibility Controller: the only writer of the `is_active` tombstone outside a publish upsert."""
from __future__ import annotations
from typing import Callable, List, Optional

import structlog

from lessonhub.application.audit_log import UNPUBLISH_BLOCKED, UNPUBLISH_SUCCESS, AuditLog
from lessonhub.domain.common.errors import LessonError, NotFound, ReplicaWriteFailure
from lessonhub.domain.lesson.models import Actor, LessonDraft
from lessonhub.domain.lesson.rules import validate_owner_or_admin
from lessonhub.domain.lesson.service import now_iso
from lessonhub.persistence.interfaces.replica_repository import ReplicaRepository

logger = structlog.get_logger(__name__)


class VisibilityController:
    def __init__(
        self,
        replicas: ReplicaRepository,
        audit: AuditLog,
        clock: Callable[[], str] = now_iso,
    ):
        self._replicas = replicas
        self._audit = audit
        self._clock = clock

    def deactivate(self, replica_id: str, actor_uid: Optional[str] = None) -> bool:
        """Hide the replica without deleting it. Returns False if there was nothing to hide."""
        try:
            return self._replicas.set_active(replica_id, False, self._clock(), unpublished_by=actor_uid)
        except LessonError:
            raise
        except Exception as e:
            raise ReplicaWriteFailure(f"Could not deactivate replica '{replica_id}': {e}") from e

    def candidate_replica_ids(self, draft: LessonDraft) -> List[str]:
        """Every key a replica of this draft may live under: pointer, draft id, back-reference."""
        ids: List[str] = []
        for replica_id in (draft.active_published_id, draft.id):
            if replica_id and replica_id not in ids:
                ids.append(replica_id)
        by_source = self._replicas.find_by_source_draft_id(draft.id)
        if by_source is not None and by_source.id not in ids:
            ids.append(by_source.id)
        return ids

    def deactivate_for_draft(self, draft: LessonDraft, actor_uid: Optional[str], reason: str) -> bool:
        """
        Compensating action: hide every replica of `draft`. Failures are logged,
        never raised, so the draft-side transition that triggered this still lands.
        """
        try:
            hidden = [rid for rid in self.candidate_replica_ids(draft) if self.deactivate(rid, actor_uid)]
        except Exception as e:
            logger.warning(
                "replica_deactivation_failed",
                draft_id=draft.id,
                reason=reason,
                error=str(e),
            )
            return False
        logger.info("replica_deactivated", draft_id=draft.id, reason=reason, replica_ids=hidden)
        return True

    def unpublish_replica(self, replica_id: str, actor: Actor, draft_id: Optional[str] = None) -> str:
        """Direct unpublish of a replica whose draft is gone or out of sync. Errors propagate."""
        replica = self._replicas.get(replica_id)
        if replica is None:
            raise NotFound(f"Published lesson '{replica_id}' not found.")

        allowed = validate_owner_or_admin(actor, replica.owner_id)
        if not allowed.is_success:
            self._audit.record(
                UNPUBLISH_BLOCKED, actor.uid, draft_id or replica.source_draft_id,
                reason="NOT_OWNER", published_id=replica_id,
            )
            raise allowed.error

        self.deactivate(replica_id, actor.uid)
        self._audit.record(
            UNPUBLISH_SUCCESS, actor.uid, draft_id or replica.source_draft_id,
            published_id=replica_id, is_admin_unpublish=actor.is_admin, draft_missing=True,
        )
        logger.info("replica_unpublished", replica_id=replica_id, uid=actor.uid)
        return replica.source_draft_id
