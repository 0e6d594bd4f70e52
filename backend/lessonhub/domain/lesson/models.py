"""Lesson domain models: pure Python, no DB or HTTP dependencies."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class LessonContent:
    title: str = ""
    body_text: str = ""
    task_list: List[Any] = field(default_factory=list)  # opaque to the pipeline
    description: str = ""
    level: str = ""
    language: str = ""
    topics: List[str] = field(default_factory=list)
    text_type: str = ""
    cover_image_url: str = ""

    def to_document(self) -> Dict[str, Any]:
        """Canonical stored shape. Legacy key variants are never written."""
        return {
            "title": self.title,
            "body_text": self.body_text,
            "task_list": list(self.task_list),
            "description": self.description,
            "level": self.level,
            "language": self.language,
            "topics": list(self.topics),
            "text_type": self.text_type,
            "cover_image_url": self.cover_image_url,
        }


@dataclass
class ModerationVerdict:
    """What the Moderation Gate returns for one request."""
    status: str  # pass | review | blocked | unknown
    risk_score: float = 0
    reasons: List[str] = field(default_factory=list)
    notes: str = ""


@dataclass
class ModerationRecord:
    status: str = "unknown"
    risk_score: float = 0
    reasons: List[str] = field(default_factory=list)
    notes: str = ""
    checked_at: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "risk_score": self.risk_score,
            "reasons": list(self.reasons),
            "notes": self.notes,
            "checked_at": self.checked_at,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at,
        }


@dataclass
class LessonDraft:
    id: str
    owner_id: str
    publish_state: str  # draft | unlisted | pending | published | rejected
    created_at: str
    updated_at: str
    content: LessonContent = field(default_factory=LessonContent)
    moderation: ModerationRecord = field(default_factory=ModerationRecord)
    visibility_preference: str = "public"  # public | unlisted
    deleted_at: Optional[str] = None
    active_published_id: Optional[str] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass
class SignedBy:
    uid: str
    name_snapshot: str = ""
    email_snapshot: str = ""
    signed_at: str = ""
    via_admin: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uid": self.uid,
            "name_snapshot": self.name_snapshot,
            "email_snapshot": self.email_snapshot,
            "signed_at": self.signed_at,
            "via_admin": self.via_admin,
        }


@dataclass
class PublishedSnapshot:
    id: str
    source_draft_id: str
    owner_id: str
    content: LessonContent
    is_active: bool
    visibility: str  # public | unlisted
    published_at: str
    updated_at: str
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[str] = None
    moderation: ModerationRecord = field(default_factory=ModerationRecord)
    signed_by: Optional[SignedBy] = None
    unpublished_at: Optional[str] = None
    unpublished_by: Optional[str] = None


@dataclass
class Actor:
    """The authenticated caller, as loaded from the users table."""
    uid: str
    is_admin: bool = False
    teacher_status: Optional[str] = None  # none | pending | approved
    caps_publish: bool = False
    display_name: str = ""
    email: str = ""


@dataclass
class AuditEvent:
    id: str
    type: str
    uid: str
    lesson_id: str
    ts: str
    meta: Dict[str, Any] = field(default_factory=dict)
