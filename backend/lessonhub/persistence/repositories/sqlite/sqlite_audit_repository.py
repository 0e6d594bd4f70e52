"""SQLite implementation of AuditRepository."""
from __future__ import annotations
import json
from typing import List, Optional

from lessonhub.domain.lesson.models import AuditEvent
from lessonhub.persistence.db import get_connection
from lessonhub.persistence.interfaces.audit_repository import AuditRepository


class SqliteAuditRepository(AuditRepository):

    def __init__(self, db_path: Optional[str] = None):
        self._db_path = db_path

    def append(self, event: AuditEvent) -> None:
        conn = get_connection(self._db_path)
        conn.execute(
            "INSERT INTO audit_events (id, type, uid, lesson_id, ts, meta) VALUES (?, ?, ?, ?, ?, ?)",
            (event.id, event.type, event.uid, event.lesson_id, event.ts, json.dumps(event.meta)),
        )
        conn.commit()
        conn.close()

    def list_for_lesson(self, lesson_id: str) -> List[AuditEvent]:
        conn = get_connection(self._db_path)
        rows = conn.execute(
            "SELECT * FROM audit_events WHERE lesson_id = ? ORDER BY ts ASC, rowid ASC",
            (lesson_id,),
        ).fetchall()
        conn.close()
        return [
            AuditEvent(
                id=r["id"],
                type=r["type"],
                uid=r["uid"],
                lesson_id=r["lesson_id"],
                ts=r["ts"],
                meta=json.loads(r["meta"] or "{}"),
            )
            for r in rows
        ]
