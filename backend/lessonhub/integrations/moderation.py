"""
Moderation Gate: stateless risk scoring of lesson content.

Two implementations share one interface: `HttpModerationGate` calls a remote
endpoint speaking `{title, bodyText, taskList} -> {status, riskScore,
reasons, notes}`, and `KeywordModerationGate` scores locally with a small
keyword list. The container picks the HTTP gate when MODERATION_URL is set.
"""
from __future__ import annotations
import json
import re
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import requests
import structlog

from lessonhub.domain.common.errors import ModerationUnavailable
from lessonhub.domain.lesson.models import ModerationVerdict
from lessonhub.domain.lesson.normalize import normalize_risk_score
from lessonhub.domain.lesson.rules import MODERATION_STATUSES

logger = structlog.get_logger(__name__)


class ModerationGate(ABC):

    @abstractmethod
    def check(self, title: str, body_text: str, task_list: List[Any]) -> ModerationVerdict:
        """Return the verdict. Raises ModerationUnavailable if no verdict could be obtained."""
        ...


def parse_verdict(payload: Any) -> ModerationVerdict:
    """Read a gate response body. Unknown statuses become 'unknown'."""
    if not isinstance(payload, dict):
        raise ModerationUnavailable("Moderation Gate returned a non-object response.")
    status = str(payload.get("status") or "unknown").strip().lower()
    if status not in MODERATION_STATUSES:
        status = "unknown"
    reasons = payload.get("reasons") or []
    if isinstance(reasons, str):
        reasons = [reasons]
    return ModerationVerdict(
        status=status,
        risk_score=normalize_risk_score(payload.get("riskScore", payload.get("risk_score"))),
        reasons=[str(r) for r in reasons],
        notes=str(payload.get("notes") or ""),
    )


class HttpModerationGate(ModerationGate):

    def __init__(self, url: str, timeout: float = 15, session: Optional[requests.Session] = None):
        self._url = url
        self._timeout = timeout
        self._http = session or requests

    def check(self, title: str, body_text: str, task_list: List[Any]) -> ModerationVerdict:
        try:
            res = self._http.post(
                self._url,
                json={"title": title, "bodyText": body_text, "taskList": task_list},
                timeout=self._timeout,
            )
            res.raise_for_status()
            payload = res.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("moderation_gate_unreachable", url=self._url, error=str(e))
            raise ModerationUnavailable(f"Moderation Gate unavailable: {e}") from e
        return parse_verdict(payload)


# ------------------------------------------------------------------
# Local keyword scorer
# ------------------------------------------------------------------
SEXUAL_TERMS = ("porn", "sex", "nude", "naked")
HATE_TERMS = ("kill all", "hate", "nazi")
SELF_HARM_TERMS = ("suicide", "self-harm")
PERSONAL_DATA_PATTERNS = (re.compile(r"\+?\d[\d\s\-]{6,}\d"), re.compile(r"@"))

BLOCK_THRESHOLD = 80
REVIEW_THRESHOLD = 40


def score_text(text: str) -> ModerationVerdict:
    lowered = (text or "").lower()
    score = 0
    reasons: List[str] = []

    for terms, reason, weight in (
        (SEXUAL_TERMS, "sexual_content", 60),
        (HATE_TERMS, "hate_or_extremism", 60),
        (SELF_HARM_TERMS, "self_harm", 80),
    ):
        if any(term in lowered for term in terms):
            score += weight
            reasons.append(reason)

    if any(p.search(text or "") for p in PERSONAL_DATA_PATTERNS):
        score += 30
        reasons.append("possible_personal_data")

    score = max(0, min(100, score))
    if score >= BLOCK_THRESHOLD:
        status = "blocked"
    elif score >= REVIEW_THRESHOLD:
        status = "review"
    else:
        status = "pass"

    return ModerationVerdict(
        status=status,
        risk_score=score,
        reasons=reasons,
        notes="Auto-check flagged content." if reasons else "Auto-check passed.",
    )


class KeywordModerationGate(ModerationGate):

    def check(self, title: str, body_text: str, task_list: List[Any]) -> ModerationVerdict:
        combined = (
            f"TITLE:\n{title}\n\nTEXT:\n{body_text}\n\nTASKS:\n"
            + (json.dumps(task_list) if task_list else "")
        )
        return score_text(combined)
