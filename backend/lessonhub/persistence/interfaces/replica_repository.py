"""Abstract repository interface for the Replica Store (published snapshots)."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional

from lessonhub.domain.common.errors import PermissionDenied
from lessonhub.domain.lesson.models import Actor, PublishedSnapshot
from lessonhub.domain.lesson.rules import can_read_replica


class ReplicaRepository(ABC):

    @abstractmethod
    def get(self, replica_id: str) -> Optional[PublishedSnapshot]:
        """Trusted keyed read, no read rules applied."""
        ...

    @abstractmethod
    def find_by_source_draft_id(self, draft_id: str) -> Optional[PublishedSnapshot]:
        """Trusted lookup by back-reference, for replicas stored under another key."""
        ...

    @abstractmethod
    def upsert(self, snapshot: PublishedSnapshot) -> None:
        """Create or fully overwrite the replica with this id. Never appends a second record."""
        ...

    @abstractmethod
    def set_active(
        self,
        replica_id: str,
        is_active: bool,
        updated_at: str,
        unpublished_by: Optional[str] = None,
    ) -> bool:
        """Flip the visibility tombstone. Returns False if no such replica."""
        ...

    @abstractmethod
    def delete(self, replica_id: str) -> bool:
        """Physically remove the replica (hard delete only). Returns True if deleted."""
        ...

    @abstractmethod
    def list_active(self, visibility: Optional[str] = "public", limit: Optional[int] = None) -> List[PublishedSnapshot]:
        """Active replicas, newest publish first; `visibility=None` means any visibility."""
        ...

    # ------------------------------------------------------------------
    # Rule-checked reads for untrusted callers
    # ------------------------------------------------------------------
    def read(self, replica_id: str, viewer: Optional[Actor] = None) -> Optional[PublishedSnapshot]:
        snapshot = self.get(replica_id)
        if snapshot is not None and not can_read_replica(snapshot, viewer):
            raise PermissionDenied(f"Missing or insufficient permissions for replica '{replica_id}'.")
        return snapshot

    def read_by_source(self, draft_id: str, viewer: Optional[Actor] = None) -> Optional[PublishedSnapshot]:
        snapshot = self.find_by_source_draft_id(draft_id)
        if snapshot is not None and not can_read_replica(snapshot, viewer):
            raise PermissionDenied(f"Missing or insufficient permissions for lesson '{draft_id}'.")
        return snapshot
