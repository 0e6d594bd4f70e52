"""
Normalization of stored lesson documents.

Older rows carry the same fields under several names (`textType` vs
`texttype`, a single `topic` vs a `topics` list, `sourceText` vs
`bodyText`, tasks stored as a JSON string). Everything read from a store
goes through here once and comes out as canonical `LessonContent`; business
logic never sees the raw shapes.
"""
from __future__ import annotations
import json
from typing import Any, List, Optional

from lessonhub.domain.lesson.models import LessonContent, ModerationRecord

_BODY_KEYS = ("body_text", "bodyText", "sourceText", "text")
_TASK_KEYS = ("task_list", "taskList", "tasks")
_TEXT_TYPE_KEYS = ("text_type", "textType", "texttype")
_COVER_KEYS = ("cover_image_url", "coverImageUrl", "imageUrl")
_SOURCE_DRAFT_KEYS = ("source_draft_id", "sourceDraftId", "lessonId")


def _first(doc: dict, keys: tuple) -> Any:
    for key in keys:
        value = doc.get(key)
        if value is not None and value != "":
            return value
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _raw_text(value: Any) -> str:
    """Lesson text keeps its whitespace while it is a draft; it is trimmed when published."""
    if value is None:
        return ""
    return str(value)


def normalize_task_list(value: Any) -> List[Any]:
    """Tasks are either a list, or a JSON string holding one."""
    if value is None or value == "":
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    if isinstance(value, list):
        return value
    return [value]


def normalize_topics(doc: dict) -> List[str]:
    topics = doc.get("topics")
    if isinstance(topics, list):
        return [_text(t) for t in topics if _text(t)]
    if isinstance(topics, str) and topics.strip():
        return [topics.strip()]
    topic = _text(doc.get("topic"))
    return [topic] if topic else []


def normalize_text_type(doc: dict) -> str:
    return _text(_first(doc, _TEXT_TYPE_KEYS))


def normalize_content(doc: Optional[dict]) -> LessonContent:
    doc = doc or {}
    return LessonContent(
        title=_text(doc.get("title")),
        body_text=_raw_text(_first(doc, _BODY_KEYS)),
        task_list=normalize_task_list(_first(doc, _TASK_KEYS)),
        description=_text(doc.get("description")),
        level=_text(doc.get("level")),
        language=_text(doc.get("language")),
        topics=normalize_topics(doc),
        text_type=normalize_text_type(doc),
        cover_image_url=_text(_first(doc, _COVER_KEYS)),
    )


def normalize_risk_score(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def normalize_moderation(doc: Optional[dict]) -> ModerationRecord:
    doc = doc or {}
    reasons = doc.get("reasons") or []
    if isinstance(reasons, str):
        reasons = [reasons]
    return ModerationRecord(
        status=_text(doc.get("status")) or "unknown",
        risk_score=normalize_risk_score(_first(doc, ("risk_score", "riskScore"))),
        reasons=[str(r) for r in reasons],
        notes=_text(doc.get("notes")),
        checked_at=_first(doc, ("checked_at", "checkedAt")),
        reviewed_by=_first(doc, ("reviewed_by", "reviewedBy")),
        reviewed_at=_first(doc, ("reviewed_at", "reviewedAt")),
    )


def normalize_source_draft_id(doc: dict, fallback: str) -> str:
    return _text(_first(doc, _SOURCE_DRAFT_KEYS)) or fallback


def apply_patch(content: LessonContent, patch: dict) -> LessonContent:
    """Merge a canonical-key patch onto existing content."""
    return normalize_content({**content.to_document(), **patch})
