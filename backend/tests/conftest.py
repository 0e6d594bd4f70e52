"""Shared fixtures: actors, an in-memory service graph, and an isolated HTTP app."""
import pytest

from lessonhub.domain.lesson.models import Actor

from fakes import build_world


@pytest.fixture
def owner():
    return Actor(uid="teacher-1", teacher_status="approved", display_name="Tess", email="tess@example.com")


@pytest.fixture
def student():
    """Owns drafts but has no publishing rights."""
    return Actor(uid="student-1", teacher_status="pending", display_name="Sam")


@pytest.fixture
def stranger():
    return Actor(uid="student-9", display_name="Nosy")


@pytest.fixture
def admin():
    return Actor(uid="admin-1", is_admin=True, display_name="Ada", email="ada@example.com")


@pytest.fixture
def world():
    return build_world()


@pytest.fixture
def make_draft(world):
    """Create a draft through the service and return it."""

    def _make(actor, title="Test", body_text="Hello world", **extra):
        return world.lessons.create_draft(actor, {"title": title, "body_text": body_text, **extra})

    return _make


@pytest.fixture
def pending_draft(world, owner, make_draft):
    draft = make_draft(owner)
    return world.lessons.submit_for_review(draft.id, owner)


@pytest.fixture
def published_draft(world, owner, admin, pending_draft):
    return world.lessons.approve_publish(pending_draft.id, admin)


# ------------------------------------------------------------------
# HTTP app on temporary SQLite stores
# ------------------------------------------------------------------
@pytest.fixture
def app_env(tmp_path, monkeypatch):
    from lessonhub import container
    from lessonhub.core import config
    from lessonhub.persistence.db import init_db

    monkeypatch.setattr(config, "DATABASE_PATH", str(tmp_path / "drafts.db"))
    monkeypatch.setattr(config, "REPLICA_DATABASE_PATH", str(tmp_path / "replicas.db"))
    monkeypatch.setattr(config, "MODERATION_URL", "")
    container.clear_caches()
    init_db()
    yield config
    container.clear_caches()


@pytest.fixture
def client(app_env):
    from fastapi.testclient import TestClient
    from lessonhub.main import app

    return TestClient(app)


def _login(client, username, password):
    resp = client.post("/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def admin_headers(client):
    return _login(client, "admin", "admin")


@pytest.fixture
def teacher_headers(client):
    from lessonhub.api.auth import create_user

    create_user("tess", "secret", teacher_status="approved", display_name="Tess", email="tess@example.com")
    return _login(client, "tess", "secret")


@pytest.fixture
def student_headers(client):
    from lessonhub.api.auth import create_user

    create_user("sam", "secret", teacher_status="pending", display_name="Sam")
    return _login(client, "sam", "secret")
