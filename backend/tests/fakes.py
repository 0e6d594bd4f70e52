"""In-memory repositories, a scripted moderation gate and a fixed clock for service tests."""
from __future__ import annotations
import copy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

from lessonhub.application.audit_log import AuditLog
from lessonhub.application.lesson_app_service import LessonAppService
from lessonhub.application.lesson_resolver import LessonResolver
from lessonhub.application.publish_replicator import PublishReplicator
from lessonhub.application.reconciliation import ReconciliationService
from lessonhub.application.review_queue import ReviewQueue
from lessonhub.application.trash_manager import TrashManager
from lessonhub.application.visibility_controller import VisibilityController
from lessonhub.domain.common.errors import ConcurrencyConflict, ModerationUnavailable, NotFound
from lessonhub.domain.lesson.models import AuditEvent, LessonDraft, ModerationVerdict, PublishedSnapshot
from lessonhub.domain.lesson.service import LessonDomainService
from lessonhub.integrations.moderation import ModerationGate
from lessonhub.persistence.interfaces.audit_repository import AuditRepository
from lessonhub.persistence.interfaces.draft_repository import DraftRepository
from lessonhub.persistence.interfaces.replica_repository import ReplicaRepository


class StoreDown(RuntimeError):
    """Stand-in for a store outage (network error, quota, rules engine down)."""


class TickingClock:
    """Every call returns a timestamp one second later than the last."""

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> str:
        self._now += timedelta(seconds=1)
        return self._now.isoformat()


class InMemoryDraftRepository(DraftRepository):

    def __init__(self):
        self.rows: Dict[str, LessonDraft] = {}
        self.fail_saves = False
        self.saves = 0
        # Called with the draft id right before a guarded write, to simulate a racing writer
        self.before_guarded_save: Optional[Callable[[str], None]] = None

    def save(self, draft: LessonDraft, expected_state: Optional[str] = None) -> None:
        if self.fail_saves:
            raise StoreDown("draft store unavailable")
        if expected_state is not None:
            if self.before_guarded_save:
                self.before_guarded_save(draft.id)
            current = self.rows.get(draft.id)
            if current is None:
                raise NotFound(f"Lesson '{draft.id}' not found.")
            if current.publish_state != expected_state:
                raise ConcurrencyConflict(
                    f"expected '{expected_state}', found '{current.publish_state}'"
                )
        self.saves += 1
        self.rows[draft.id] = copy.deepcopy(draft)

    def get(self, draft_id: str) -> Optional[LessonDraft]:
        row = self.rows.get(draft_id)
        return copy.deepcopy(row) if row else None

    def delete(self, draft_id: str) -> bool:
        return self.rows.pop(draft_id, None) is not None

    def list_by_state(self, state: str, limit: int) -> List[LessonDraft]:
        rows = [d for d in self.rows.values() if d.publish_state == state and not d.is_deleted]
        rows.sort(key=lambda d: (-d.moderation.risk_score, d.updated_at, d.id))
        return [copy.deepcopy(d) for d in rows[:limit]]

    def list_by_owner(self, owner_id: str, include_deleted: bool = False) -> List[LessonDraft]:
        rows = [
            d for d in self.rows.values()
            if d.owner_id == owner_id and (include_deleted or not d.is_deleted)
        ]
        rows.sort(key=lambda d: d.updated_at, reverse=True)
        return [copy.deepcopy(d) for d in rows]

    def list_deleted(self, limit: int) -> List[LessonDraft]:
        rows = sorted((d for d in self.rows.values() if d.is_deleted), key=lambda d: d.deleted_at, reverse=True)
        return [copy.deepcopy(d) for d in rows[:limit]]

    def list_all(self) -> List[LessonDraft]:
        return [copy.deepcopy(d) for d in sorted(self.rows.values(), key=lambda d: d.created_at)]


class InMemoryReplicaRepository(ReplicaRepository):

    def __init__(self):
        self.rows: Dict[str, PublishedSnapshot] = {}
        self.fail_writes = False
        self.upserts = 0

    def _check_writable(self):
        if self.fail_writes:
            raise StoreDown("replica store unavailable")

    def get(self, replica_id: str) -> Optional[PublishedSnapshot]:
        row = self.rows.get(replica_id)
        return copy.deepcopy(row) if row else None

    def find_by_source_draft_id(self, draft_id: str) -> Optional[PublishedSnapshot]:
        matches = [r for r in self.rows.values() if r.source_draft_id == draft_id]
        matches.sort(key=lambda r: (r.is_active, r.updated_at), reverse=True)
        return copy.deepcopy(matches[0]) if matches else None

    def upsert(self, snapshot: PublishedSnapshot) -> None:
        self._check_writable()
        self.upserts += 1
        self.rows[snapshot.id] = copy.deepcopy(snapshot)

    def set_active(
        self,
        replica_id: str,
        is_active: bool,
        updated_at: str,
        unpublished_by: Optional[str] = None,
    ) -> bool:
        self._check_writable()
        row = self.rows.get(replica_id)
        if row is None:
            return False
        row.is_active = is_active
        row.updated_at = updated_at
        row.unpublished_at = None if is_active else updated_at
        row.unpublished_by = None if is_active else unpublished_by
        return True

    def delete(self, replica_id: str) -> bool:
        self._check_writable()
        return self.rows.pop(replica_id, None) is not None

    def list_active(self, visibility: Optional[str] = "public", limit: Optional[int] = None) -> List[PublishedSnapshot]:
        rows = [
            r for r in self.rows.values()
            if r.is_active and (visibility is None or r.visibility == visibility)
        ]
        rows.sort(key=lambda r: r.published_at, reverse=True)
        if limit is not None:
            rows = rows[:limit]
        return [copy.deepcopy(r) for r in rows]


class InMemoryAuditRepository(AuditRepository):

    def __init__(self):
        self.events: List[AuditEvent] = []
        self.fail_writes = False

    def append(self, event: AuditEvent) -> None:
        if self.fail_writes:
            raise StoreDown("audit store unavailable")
        self.events.append(event)

    def list_for_lesson(self, lesson_id: str) -> List[AuditEvent]:
        return [e for e in self.events if e.lesson_id == lesson_id]

    def types(self) -> List[str]:
        return [e.type for e in self.events]


class ScriptedGate(ModerationGate):
    """Returns queued verdicts in order, repeating the last one. Counts calls."""

    def __init__(self, *verdicts: Any):
        self.verdicts = list(verdicts) or [ModerationVerdict(status="pass", risk_score=10)]
        self.calls: List[dict] = []
        self.on_call: Optional[Callable[[], None]] = None

    def check(self, title, body_text, task_list) -> ModerationVerdict:
        self.calls.append({"title": title, "body_text": body_text, "task_list": task_list})
        if self.on_call:
            self.on_call()
        verdict = self.verdicts.pop(0) if len(self.verdicts) > 1 else self.verdicts[0]
        if isinstance(verdict, Exception):
            raise verdict
        return verdict


def unavailable() -> ModerationUnavailable:
    return ModerationUnavailable("Moderation Gate unavailable: timed out")


def build_world(gate: Optional[ModerationGate] = None, reject_target_state: str = "rejected") -> SimpleNamespace:
    """Every service wired over in-memory stores, sharing one clock."""
    clock = TickingClock()
    drafts = InMemoryDraftRepository()
    replicas = InMemoryReplicaRepository()
    audit_repo = InMemoryAuditRepository()
    audit = AuditLog(audit_repo, clock)
    gate = gate or ScriptedGate()
    replicator = PublishReplicator(drafts, replicas, LessonDomainService(clock))
    visibility = VisibilityController(replicas, audit, clock)
    lessons = LessonAppService(
        drafts=drafts,
        replicator=replicator,
        visibility=visibility,
        gate=gate,
        audit=audit,
        clock=clock,
        reject_target_state=reject_target_state,
    )
    return SimpleNamespace(
        clock=clock,
        drafts=drafts,
        replicas=replicas,
        audit=audit_repo,
        gate=gate,
        replicator=replicator,
        visibility=visibility,
        lessons=lessons,
        queue=ReviewQueue(drafts, lessons, page_size=3),
        trash=TrashManager(drafts, replicator, visibility, audit, clock),
        resolver=LessonResolver(replicas),
        reconciler=ReconciliationService(drafts, replicas, replicator, visibility, clock),
    )
