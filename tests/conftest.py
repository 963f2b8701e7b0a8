import json
import os

os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("ENV", "development")
os.environ.setdefault("ADMIN_UIDS", '["admin-uid"]')
os.environ.setdefault("GOOGLE_API_KEY", "fake-key")

import pytest
from fastapi.testclient import TestClient

from syllabot.core.security import create_access_token
from syllabot.main import app
from syllabot.repositories import schools_repo
from syllabot.services import chat_service
from syllabot.services.chat_service import ChatSessionStore
from syllabot.services.model_service import SyllabusModel, get_model
from syllabot.services.storage_service import SyllabusFile


class FakeStore:
    """Stands in for the Firestore-backed schools_repo functions."""

    def __init__(self):
        self.schools = {
            "demo": {"name": "Demo High", "location": "Springfield"},
            "north side": {"name": "North Side Prep"},
        }
        self.classes = {
            "demo": {
                "math108": {
                    "name": "MATH 108",
                    "section": "170",
                    "syllabus_uri": "MATH108170.pdf",
                    "notes": "",
                    "editors": ["teacher@example.com"],
                    "updatedAt": "2026-09-01T00:00:00+00:00",
                },
                "bio101": {
                    "name": "BIO 101",
                    "section": "1",
                    "syllabus_uri": "gs://bucket/bio.pdf",
                    "notes": "lab",
                    "editors": ["other@example.com"],
                },
            }
        }
        self._next = 0

    def list_schools(self):
        return [{"id": k, **v} for k, v in self.schools.items()]

    def get_class(self, school_id, class_id):
        data = self.classes.get(school_id, {}).get(class_id)
        return dict(data) if data is not None else None

    def list_classes(self, school_id, editor_email=None):
        rows = self.classes.get(school_id, {})
        return [
            {"id": k, **v}
            for k, v in rows.items()
            if editor_email is None or editor_email in v.get("editors", [])
        ]

    def create_class(self, school_id, data):
        self._next += 1
        class_id = f"new{self._next}"
        self.classes.setdefault(school_id, {})[class_id] = dict(data)
        return class_id

    def update_class(self, school_id, class_id, data):
        self.classes.setdefault(school_id, {}).setdefault(class_id, {}).update(data)

    def delete_class(self, school_id, class_id):
        self.classes.get(school_id, {}).pop(class_id, None)


class FakeModel(SyllabusModel):
    def __init__(self, reply="", chunks=None, fail_after=None):
        self.model_name = "fake"
        self.reply = reply
        self.chunks = chunks or []
        self.fail_after = fail_after
        self.calls = []

    async def generate(self, contents, config):
        self.calls.append((contents, config))
        return self.reply

    async def stream(self, contents, config):
        self.calls.append((contents, config))
        for i, c in enumerate(self.chunks):
            if self.fail_after is not None and i >= self.fail_after:
                raise RuntimeError("connection reset")
            yield c


@pytest.fixture
def store(monkeypatch):
    fake = FakeStore()
    for name in ("list_schools", "get_class", "list_classes", "create_class", "update_class", "delete_class"):
        monkeypatch.setattr(schools_repo, name, getattr(fake, name))
    return fake


@pytest.fixture
def syllabus(monkeypatch):
    fetched = []

    async def _fake_fetch(uri):
        fetched.append(uri)
        return SyllabusFile(data="JVBERi0xLjQ=")  # "%PDF-1.4"

    monkeypatch.setattr(chat_service, "fetch_syllabus", _fake_fetch)
    return fetched


@pytest.fixture
def model():
    fake = FakeModel()
    app.dependency_overrides[get_model] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_model, None)


@pytest.fixture
def client(store):
    app.state.chats = ChatSessionStore(max_size=10)
    with TestClient(app) as c:
        yield c


def auth_header(uid="teacher-uid", email="teacher@example.com"):
    return {"Authorization": f"Bearer {create_access_token(sub=email, uid=uid)}"}


def parse_sse(body: str):
    events = []
    for block in body.strip().split("\n\n"):
        if not block.strip():
            continue
        lines = dict(line.split(": ", 1) for line in block.splitlines())
        events.append((lines["event"], json.loads(lines["data"])))
    return events
