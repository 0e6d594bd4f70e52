"""
Reconciliation pass between the Draft Store and the Replica Store.

The two stores are written without a shared transaction, so a crash or a
lost race can leave them disagreeing. The draft is the source of truth:

- draft `published` but its replica missing, inactive or not pointed at
  -> `repaired` (idempotent re-replicate and/or pointer write)
- an active replica whose draft is not `published`, is soft-deleted,
  or no longer exists -> `deactivated`
- everything else -> `skip`
"""
from __future__ import annotations
from typing import Callable, Dict, List, Optional, Set

import structlog

from lessonhub.application.publish_replicator import PublishReplicator
from lessonhub.application.visibility_controller import VisibilityController
from lessonhub.domain.lesson import rules
from lessonhub.domain.lesson.models import Actor, LessonDraft, PublishedSnapshot
from lessonhub.domain.lesson.service import LessonDomainService, now_iso
from lessonhub.persistence.interfaces.draft_repository import DraftRepository
from lessonhub.persistence.interfaces.replica_repository import ReplicaRepository

logger = structlog.get_logger(__name__)


class ReconciliationService:
    def __init__(
        self,
        drafts: DraftRepository,
        replicas: ReplicaRepository,
        replicator: PublishReplicator,
        visibility: VisibilityController,
        clock: Callable[[], str] = now_iso,
    ):
        self._drafts = drafts
        self._replicas = replicas
        self._replicator = replicator
        self._visibility = visibility
        self._domain = LessonDomainService(clock)

    def _replica_of(self, draft: LessonDraft) -> Optional[PublishedSnapshot]:
        if draft.active_published_id:
            replica = self._replicas.get(draft.active_published_id)
            if replica is not None:
                return replica
        return self._replicas.get(draft.id) or self._replicas.find_by_source_draft_id(draft.id)

    def _reconcile_draft(self, draft: LessonDraft, actor: Actor, seen: Set[str]) -> str:
        replica = self._replica_of(draft)
        if replica is not None:
            seen.add(replica.id)

        if draft.publish_state == rules.PUBLISHED and not draft.is_deleted:
            if replica is None or not replica.is_active:
                visibility = replica.visibility if replica else draft.visibility_preference
                replica = self._replicator.replicate_draft(draft, actor, visibility=visibility)
                seen.add(replica.id)
            elif draft.active_published_id == replica.id:
                return "skip"
            self._domain.mark_published(draft, replica)
            self._drafts.save(draft, expected_state=rules.PUBLISHED)
            return "repaired"

        if replica is not None and replica.is_active:
            self._visibility.deactivate(replica.id, actor.uid)
            return "deactivated"
        return "skip"

    def reconcile(self, actor: Actor) -> Dict[str, List[dict]]:
        rules.validate_admin(actor, "reconcile stores").unwrap()
        report: Dict[str, List[dict]] = {"repaired": [], "deactivated": [], "skip": [], "failed": []}
        seen: Set[str] = set()

        for draft in self._drafts.list_all():
            try:
                outcome = self._reconcile_draft(draft, actor, seen)
            except Exception as e:
                logger.warning("reconcile_draft_failed", draft_id=draft.id, error=str(e))
                report["failed"].append({"id": draft.id, "error": str(e)})
                continue
            report[outcome].append({"id": draft.id, "state": draft.publish_state})

        # Active replicas nobody points at any more
        for replica in self._replicas.list_active(visibility=None):
            if replica.id in seen or self._drafts.get(replica.source_draft_id) is not None:
                continue
            try:
                self._visibility.deactivate(replica.id, actor.uid)
            except Exception as e:
                logger.warning("reconcile_orphan_failed", replica_id=replica.id, error=str(e))
                report["failed"].append({"id": replica.id, "error": str(e)})
                continue
            report["deactivated"].append({"id": replica.id, "state": "orphan"})

        logger.info(
            "reconcile_finished",
            repaired=len(report["repaired"]),
            deactivated=len(report["deactivated"]),
            skipped=len(report["skip"]),
            failed=len(report["failed"]),
        )
        return report
