"""SQLite implementation of ReplicaRepository."""
from __future__ import annotations
import json
from typing import List, Optional

from lessonhub.core import config
from lessonhub.domain.lesson.models import PublishedSnapshot, SignedBy
from lessonhub.domain.lesson.normalize import (
    normalize_content,
    normalize_moderation,
    normalize_source_draft_id,
)
from lessonhub.persistence.db import get_connection
from lessonhub.persistence.interfaces.replica_repository import ReplicaRepository


def _row_to_snapshot(row) -> PublishedSnapshot:
    doc = json.loads(row["document"] or "{}")
    signed = doc.get("signed_by") or doc.get("signedBy")
    return PublishedSnapshot(
        id=row["id"],
        source_draft_id=row["source_draft_id"] or normalize_source_draft_id(doc, row["id"]),
        owner_id=row["owner_id"],
        content=normalize_content(doc),
        is_active=bool(row["is_active"]),
        visibility=row["visibility"] or "public",
        published_at=row["published_at"],
        updated_at=row["updated_at"],
        reviewed_by=row["reviewed_by"],
        reviewed_at=row["reviewed_at"],
        moderation=normalize_moderation(doc.get("moderation")),
        signed_by=SignedBy(
            uid=signed.get("uid", ""),
            name_snapshot=signed.get("name_snapshot") or signed.get("nameSnapshot") or "",
            email_snapshot=signed.get("email_snapshot") or signed.get("emailSnapshot") or "",
            signed_at=signed.get("signed_at") or signed.get("signedAt") or "",
            via_admin=bool(signed.get("via_admin") or signed.get("viaAdmin")),
        ) if isinstance(signed, dict) else None,
        unpublished_at=row["unpublished_at"],
        unpublished_by=row["unpublished_by"],
    )


def _snapshot_document(snapshot: PublishedSnapshot) -> str:
    doc = snapshot.content.to_document()
    doc["moderation"] = snapshot.moderation.to_dict()
    doc["signed_by"] = snapshot.signed_by.to_dict() if snapshot.signed_by else None
    return json.dumps(doc)


class SqliteReplicaRepository(ReplicaRepository):

    def __init__(self, db_path: Optional[str] = None):
        self._db_path = db_path

    def _connect(self):
        return get_connection(self._db_path or config.REPLICA_DATABASE_PATH)

    def get(self, replica_id: str) -> Optional[PublishedSnapshot]:
        conn = self._connect()
        row = conn.execute("SELECT * FROM published_lessons WHERE id = ?", (replica_id,)).fetchone()
        conn.close()
        return _row_to_snapshot(row) if row else None

    def find_by_source_draft_id(self, draft_id: str) -> Optional[PublishedSnapshot]:
        # Legacy rows may only carry the back-reference inside the document
        conn = self._connect()
        row = conn.execute(
            """
            SELECT * FROM published_lessons
            WHERE source_draft_id = :id
               OR json_extract(document, '$.sourceDraftId') = :id
               OR json_extract(document, '$.lessonId') = :id
            ORDER BY is_active DESC, updated_at DESC
            LIMIT 1
            """,
            {"id": draft_id},
        ).fetchone()
        conn.close()
        return _row_to_snapshot(row) if row else None

    def upsert(self, snapshot: PublishedSnapshot) -> None:
        conn = self._connect()
        conn.execute(
            """
            INSERT INTO published_lessons (
                id, source_draft_id, owner_id, is_active, visibility,
                published_at, updated_at, reviewed_by, reviewed_at,
                unpublished_at, unpublished_by, document
            ) VALUES (
                :id, :source_draft_id, :owner_id, :is_active, :visibility,
                :published_at, :updated_at, :reviewed_by, :reviewed_at,
                :unpublished_at, :unpublished_by, :document
            )
            ON CONFLICT(id) DO UPDATE SET
                source_draft_id = excluded.source_draft_id,
                owner_id        = excluded.owner_id,
                is_active       = excluded.is_active,
                visibility      = excluded.visibility,
                published_at    = excluded.published_at,
                updated_at      = excluded.updated_at,
                reviewed_by     = excluded.reviewed_by,
                reviewed_at     = excluded.reviewed_at,
                unpublished_at  = excluded.unpublished_at,
                unpublished_by  = excluded.unpublished_by,
                document        = excluded.document
            """,
            {
                "id": snapshot.id,
                "source_draft_id": snapshot.source_draft_id,
                "owner_id": snapshot.owner_id,
                "is_active": 1 if snapshot.is_active else 0,
                "visibility": snapshot.visibility,
                "published_at": snapshot.published_at,
                "updated_at": snapshot.updated_at,
                "reviewed_by": snapshot.reviewed_by,
                "reviewed_at": snapshot.reviewed_at,
                "unpublished_at": snapshot.unpublished_at,
                "unpublished_by": snapshot.unpublished_by,
                "document": _snapshot_document(snapshot),
            },
        )
        conn.commit()
        conn.close()

    def set_active(
        self,
        replica_id: str,
        is_active: bool,
        updated_at: str,
        unpublished_by: Optional[str] = None,
    ) -> bool:
        conn = self._connect()
        if is_active:
            cur = conn.execute(
                """
                UPDATE published_lessons
                SET is_active = 1, updated_at = ?, unpublished_at = NULL, unpublished_by = NULL
                WHERE id = ?
                """,
                (updated_at, replica_id),
            )
        else:
            cur = conn.execute(
                """
                UPDATE published_lessons
                SET is_active = 0, updated_at = ?, unpublished_at = ?, unpublished_by = ?
                WHERE id = ?
                """,
                (updated_at, updated_at, unpublished_by, replica_id),
            )
        conn.commit()
        conn.close()
        return cur.rowcount > 0

    def delete(self, replica_id: str) -> bool:
        conn = self._connect()
        cur = conn.execute("DELETE FROM published_lessons WHERE id = ?", (replica_id,))
        conn.commit()
        conn.close()
        return cur.rowcount > 0

    def list_active(self, visibility: Optional[str] = "public", limit: Optional[int] = None) -> List[PublishedSnapshot]:
        sql = "SELECT * FROM published_lessons WHERE is_active = 1"
        params: list = []
        if visibility is not None:
            sql += " AND visibility = ?"
            params.append(visibility)
        sql += " ORDER BY published_at DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        conn = self._connect()
        rows = conn.execute(sql, params).fetchall()
        conn.close()
        return [_row_to_snapshot(r) for r in rows]
