"""SQLite implementation of DraftRepository."""
from __future__ import annotations
import json
from typing import List, Optional

from lessonhub.domain.common.errors import ConcurrencyConflict, NotFound
from lessonhub.domain.lesson.models import LessonDraft
from lessonhub.domain.lesson.normalize import normalize_content, normalize_moderation
from lessonhub.persistence.db import get_connection
from lessonhub.persistence.interfaces.draft_repository import DraftRepository

_COLUMNS = """
    publish_state        = excluded.publish_state,
    visibility_preference = excluded.visibility_preference,
    risk_score            = excluded.risk_score,
    moderation            = excluded.moderation,
    document              = excluded.document,
    deleted_at            = excluded.deleted_at,
    active_published_id   = excluded.active_published_id,
    updated_at            = excluded.updated_at
"""


def _row_to_draft(row) -> LessonDraft:
    return LessonDraft(
        id=row["id"],
        owner_id=row["owner_id"],
        publish_state=row["publish_state"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        content=normalize_content(json.loads(row["document"] or "{}")),
        moderation=normalize_moderation(json.loads(row["moderation"] or "{}")),
        visibility_preference=row["visibility_preference"] or "public",
        deleted_at=row["deleted_at"],
        active_published_id=row["active_published_id"],
    )


def _draft_params(draft: LessonDraft) -> dict:
    return {
        "id": draft.id,
        "owner_id": draft.owner_id,
        "publish_state": draft.publish_state,
        "visibility_preference": draft.visibility_preference,
        "risk_score": draft.moderation.risk_score,
        "moderation": json.dumps(draft.moderation.to_dict()),
        "document": json.dumps(draft.content.to_document()),
        "deleted_at": draft.deleted_at,
        "active_published_id": draft.active_published_id,
        "created_at": draft.created_at,
        "updated_at": draft.updated_at,
    }


class SqliteDraftRepository(DraftRepository):

    def __init__(self, db_path: Optional[str] = None):
        self._db_path = db_path

    def save(self, draft: LessonDraft, expected_state: Optional[str] = None) -> None:
        params = _draft_params(draft)
        conn = get_connection(self._db_path)
        try:
            if expected_state is None:
                conn.execute(
                    f"""
                    INSERT INTO lesson_drafts (
                        id, owner_id, publish_state, visibility_preference, risk_score,
                        moderation, document, deleted_at, active_published_id,
                        created_at, updated_at
                    ) VALUES (
                        :id, :owner_id, :publish_state, :visibility_preference, :risk_score,
                        :moderation, :document, :deleted_at, :active_published_id,
                        :created_at, :updated_at
                    )
                    ON CONFLICT(id) DO UPDATE SET {_COLUMNS}
                    """,
                    params,
                )
            else:
                cur = conn.execute(
                    """
                    UPDATE lesson_drafts SET
                        publish_state         = :publish_state,
                        visibility_preference = :visibility_preference,
                        risk_score            = :risk_score,
                        moderation            = :moderation,
                        document              = :document,
                        deleted_at            = :deleted_at,
                        active_published_id   = :active_published_id,
                        updated_at            = :updated_at
                    WHERE id = :id AND publish_state = :expected_state
                    """,
                    {**params, "expected_state": expected_state},
                )
                if cur.rowcount == 0:
                    row = conn.execute(
                        "SELECT publish_state FROM lesson_drafts WHERE id = ?", (draft.id,)
                    ).fetchone()
                    if not row:
                        raise NotFound(f"Lesson '{draft.id}' not found.")
                    raise ConcurrencyConflict(
                        f"Lesson '{draft.id}' changed concurrently: expected state "
                        f"'{expected_state}', found '{row['publish_state']}'."
                    )
            conn.commit()
        finally:
            conn.close()

    def get(self, draft_id: str) -> Optional[LessonDraft]:
        conn = get_connection(self._db_path)
        row = conn.execute("SELECT * FROM lesson_drafts WHERE id = ?", (draft_id,)).fetchone()
        conn.close()
        return _row_to_draft(row) if row else None

    def delete(self, draft_id: str) -> bool:
        conn = get_connection(self._db_path)
        cur = conn.execute("DELETE FROM lesson_drafts WHERE id = ?", (draft_id,))
        conn.commit()
        conn.close()
        return cur.rowcount > 0

    def list_by_state(self, state: str, limit: int) -> List[LessonDraft]:
        conn = get_connection(self._db_path)
        rows = conn.execute(
            """
            SELECT * FROM lesson_drafts
            WHERE publish_state = ? AND deleted_at IS NULL
            ORDER BY risk_score DESC, updated_at ASC, id ASC
            LIMIT ?
            """,
            (state, limit),
        ).fetchall()
        conn.close()
        return [_row_to_draft(r) for r in rows]

    def list_by_owner(self, owner_id: str, include_deleted: bool = False) -> List[LessonDraft]:
        sql = "SELECT * FROM lesson_drafts WHERE owner_id = ?"
        if not include_deleted:
            sql += " AND deleted_at IS NULL"
        conn = get_connection(self._db_path)
        rows = conn.execute(sql + " ORDER BY updated_at DESC", (owner_id,)).fetchall()
        conn.close()
        return [_row_to_draft(r) for r in rows]

    def list_deleted(self, limit: int) -> List[LessonDraft]:
        conn = get_connection(self._db_path)
        rows = conn.execute(
            "SELECT * FROM lesson_drafts WHERE deleted_at IS NOT NULL ORDER BY deleted_at DESC LIMIT ?",
            (limit,),
        ).fetchall()
        conn.close()
        return [_row_to_draft(r) for r in rows]

    def list_all(self) -> List[LessonDraft]:
        conn = get_connection(self._db_path)
        rows = conn.execute("SELECT * FROM lesson_drafts ORDER BY created_at ASC").fetchall()
        conn.close()
        return [_row_to_draft(r) for r in rows]
