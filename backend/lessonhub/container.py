"""Dependency injection container: wires implementations to interfaces."""
from __future__ import annotations
from functools import lru_cache

from lessonhub.application.audit_log import AuditLog
from lessonhub.application.lesson_app_service import LessonAppService
from lessonhub.application.lesson_resolver import LessonResolver
from lessonhub.application.publish_replicator import PublishReplicator
from lessonhub.application.reconciliation import ReconciliationService
from lessonhub.application.review_queue import ReviewQueue
from lessonhub.application.trash_manager import TrashManager
from lessonhub.application.visibility_controller import VisibilityController
from lessonhub.core import config
from lessonhub.integrations.moderation import HttpModerationGate, KeywordModerationGate, ModerationGate
from lessonhub.persistence.repositories.sqlite.sqlite_audit_repository import SqliteAuditRepository
from lessonhub.persistence.repositories.sqlite.sqlite_draft_repository import SqliteDraftRepository
from lessonhub.persistence.repositories.sqlite.sqlite_replica_repository import SqliteReplicaRepository


@lru_cache(maxsize=1)
def get_draft_repo() -> SqliteDraftRepository:
    return SqliteDraftRepository(config.DATABASE_PATH)


@lru_cache(maxsize=1)
def get_replica_repo() -> SqliteReplicaRepository:
    return SqliteReplicaRepository(config.REPLICA_DATABASE_PATH)


@lru_cache(maxsize=1)
def get_audit_log() -> AuditLog:
    return AuditLog(SqliteAuditRepository(config.DATABASE_PATH))


@lru_cache(maxsize=1)
def get_moderation_gate() -> ModerationGate:
    if config.MODERATION_URL:
        return HttpModerationGate(config.MODERATION_URL, timeout=config.MODERATION_TIMEOUT_SECONDS)
    return KeywordModerationGate()


@lru_cache(maxsize=1)
def get_publish_replicator() -> PublishReplicator:
    return PublishReplicator(get_draft_repo(), get_replica_repo())


@lru_cache(maxsize=1)
def get_visibility_controller() -> VisibilityController:
    return VisibilityController(get_replica_repo(), get_audit_log())


@lru_cache(maxsize=1)
def get_lesson_app_service() -> LessonAppService:
    return LessonAppService(
        drafts=get_draft_repo(),
        replicator=get_publish_replicator(),
        visibility=get_visibility_controller(),
        gate=get_moderation_gate(),
        audit=get_audit_log(),
        reject_target_state=config.REJECT_TARGET_STATE,
    )


@lru_cache(maxsize=1)
def get_review_queue() -> ReviewQueue:
    return ReviewQueue(get_draft_repo(), get_lesson_app_service(), page_size=config.REVIEW_QUEUE_PAGE_SIZE)


@lru_cache(maxsize=1)
def get_trash_manager() -> TrashManager:
    return TrashManager(
        drafts=get_draft_repo(),
        replicator=get_publish_replicator(),
        visibility=get_visibility_controller(),
        audit=get_audit_log(),
    )


@lru_cache(maxsize=1)
def get_lesson_resolver() -> LessonResolver:
    return LessonResolver(get_replica_repo())


@lru_cache(maxsize=1)
def get_reconciliation_service() -> ReconciliationService:
    return ReconciliationService(
        drafts=get_draft_repo(),
        replicas=get_replica_repo(),
        replicator=get_publish_replicator(),
        visibility=get_visibility_controller(),
    )


def clear_caches() -> None:
    """Drop every cached singleton, e.g. after pointing config at other databases."""
    for factory in (
        get_draft_repo, get_replica_repo, get_audit_log, get_moderation_gate,
        get_publish_replicator, get_visibility_controller, get_lesson_app_service,
        get_review_queue, get_trash_manager, get_lesson_resolver, get_reconciliation_service,
    ):
        factory.cache_clear()
