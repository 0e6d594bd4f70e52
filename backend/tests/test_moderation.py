"""Keyword scorer and HTTP Moderation Gate client."""
import pytest
import requests

from lessonhub.domain.common.errors import ModerationUnavailable
from lessonhub.integrations import moderation
from lessonhub.integrations.moderation import (
    HttpModerationGate,
    KeywordModerationGate,
    parse_verdict,
    score_text,
)


# ------------------------------------------------------------------
# Keyword gate
# ------------------------------------------------------------------
def test_clean_text_passes():
    verdict = score_text("A short story about a cat and a garden.")
    assert verdict.status == "pass"
    assert verdict.risk_score == 0
    assert verdict.notes == "Auto-check passed."


def test_personal_data_alone_is_not_enough_for_review():
    verdict = score_text("Write to me at tess@example.com")
    assert verdict.status == "pass"
    assert verdict.risk_score == 30
    assert verdict.reasons == ["possible_personal_data"]


def test_one_sensitive_category_goes_to_review():
    verdict = score_text("This page shows a nude statue.")
    assert verdict.status == "review"
    assert verdict.reasons == ["sexual_content"]


def test_self_harm_is_blocked():
    verdict = score_text("Talk about suicide.")
    assert verdict.status == "blocked"
    assert verdict.risk_score == 80


def test_score_is_capped():
    verdict = score_text("porn nazi suicide call +1 555 123 4567")
    assert verdict.risk_score == 100
    assert verdict.status == "blocked"
    assert verdict.notes == "Auto-check flagged content."


def test_keyword_gate_scans_tasks_too():
    gate = KeywordModerationGate()
    assert gate.check("Title", "Body", [{"q": "Why is suicide a topic?"}]).status == "blocked"
    assert gate.check("Title", "Body", []).status == "pass"


# ------------------------------------------------------------------
# Verdict parsing
# ------------------------------------------------------------------
def test_parse_verdict_normalizes_status_and_score():
    verdict = parse_verdict({"status": "BLOCKED", "riskScore": 90, "reasons": ["profanity"]})
    assert verdict.status == "blocked"
    assert verdict.risk_score == 90
    assert verdict.reasons == ["profanity"]


def test_parse_verdict_unknown_status():
    assert parse_verdict({"status": "maybe"}).status == "unknown"


def test_parse_verdict_non_object():
    with pytest.raises(ModerationUnavailable):
        parse_verdict(["pass"])


# ------------------------------------------------------------------
# HTTP gate
# ------------------------------------------------------------------
class _Response:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def test_http_gate_posts_lesson_fields(monkeypatch):
    seen = {}

    def fake_post(url, json=None, timeout=None):
        seen.update(url=url, json=json, timeout=timeout)
        return _Response({"status": "pass", "riskScore": 10, "reasons": [], "notes": "ok"})

    monkeypatch.setattr(moderation.requests, "post", fake_post)
    verdict = HttpModerationGate("http://gate/moderate", timeout=5).check("T", "Hello world", [{"q": 1}])

    assert verdict.status == "pass"
    assert verdict.risk_score == 10
    assert seen["json"] == {"title": "T", "bodyText": "Hello world", "taskList": [{"q": 1}]}
    assert seen["timeout"] == 5


def test_http_gate_timeout_is_unavailable(monkeypatch):
    def fake_post(url, json=None, timeout=None):
        raise requests.Timeout("read timed out")

    monkeypatch.setattr(moderation.requests, "post", fake_post)
    with pytest.raises(ModerationUnavailable) as exc:
        HttpModerationGate("http://gate/moderate").check("T", "B", [])
    assert exc.value.retryable


def test_http_gate_server_error_is_unavailable(monkeypatch):
    monkeypatch.setattr(moderation.requests, "post", lambda *a, **kw: _Response({}, status_code=502))
    with pytest.raises(ModerationUnavailable):
        HttpModerationGate("http://gate/moderate").check("T", "B", [])


def test_http_gate_unreadable_body_is_unavailable(monkeypatch):
    monkeypatch.setattr(moderation.requests, "post", lambda *a, **kw: _Response(ValueError("bad json")))
    with pytest.raises(ModerationUnavailable):
        HttpModerationGate("http://gate/moderate").check("T", "B", [])
