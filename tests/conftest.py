"""Shared fixtures.

Env vars are set before any chorepoints import so settings pick them up.
Every API test runs twice: once against SqlStorage on in-memory SQLite and
once against MemStorage.
"""

import os

os.environ.setdefault("CHOREPOINTS_DATABASE_URL", "sqlite://")
os.environ.setdefault("CHOREPOINTS_SECRET_KEY", "test-secret")
os.environ.setdefault("CHOREPOINTS_PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("CHOREPOINTS_TIMEZONE", "UTC")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from chorepoints.api.deps import get_storage
from chorepoints.db.base import Base
from chorepoints.db.session import make_engine
from chorepoints.main import app
from chorepoints.models.user import UserRole
from chorepoints.services.security import create_access_token, hash_password
from chorepoints.storage import MemStorage, SqlStorage

PASSWORD = "secret123"


class Backend:
    """Hands out storages for one test, plus the matching FastAPI override."""

    def __init__(self, kind: str):
        self.kind = kind
        self._sessions = []
        if kind == "sql":
            self.engine = make_engine("sqlite://", poolclass=StaticPool)
            Base.metadata.create_all(self.engine)
            self._session_factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        else:
            self._mem = MemStorage()

    def open(self):
        """A storage with a fresh view of the data."""
        if self.kind == "memory":
            return self._mem
        session = self._session_factory()
        self._sessions.append(session)
        return SqlStorage(session)

    def override(self):
        if self.kind == "memory":
            yield self._mem
            return
        session = self._session_factory()
        try:
            yield SqlStorage(session)
        finally:
            session.close()

    def close(self):
        for s in self._sessions:
            s.close()
        if self.kind == "sql":
            self.engine.dispose()


@pytest.fixture(params=["sql", "memory"])
def backend(request):
    b = Backend(request.param)
    yield b
    b.close()


@pytest.fixture
def store(backend):
    return backend.open


@pytest.fixture
def client(backend):
    app.dependency_overrides[get_storage] = backend.override
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(scope="session")
def password_hash():
    return hash_password(PASSWORD)


def auth(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def family(store, password_hash):
    """Two families: Smiths (head, parent, two children) and Joneses (head, child)."""
    s = store()
    head = s.create_family_with_head(family_name="Smiths", username="mom", hashed_password=password_hash,
                                     name="Mom Smith", email="mom@example.com")
    fid = head.family_id
    parent = s.create_user(username="dad", hashed_password=password_hash, name="Dad Smith", email=None,
                           role=UserRole.PARENT, family_id=fid)
    child = s.create_user(username="kid", hashed_password=password_hash, name="Kid Smith", email=None,
                          role=UserRole.CHILD, family_id=fid)
    child2 = s.create_user(username="kid2", hashed_password=password_hash, name="Kid Two", email=None,
                           role=UserRole.CHILD, family_id=fid)
    other_head = s.create_family_with_head(family_name="Joneses", username="otherhead",
                                           hashed_password=password_hash, name="Other Head", email=None)
    other_child = s.create_user(username="otherkid", hashed_password=password_hash, name="Other Kid",
                                email=None, role=UserRole.CHILD, family_id=other_head.family_id)
    users = dict(head=head, parent=parent, child=child, child2=child2,
                 other_head=other_head, other_child=other_child)
    return SimpleNamespace(
        family_id=fid,
        other_family_id=other_head.family_id,
        **users,
        h=SimpleNamespace(**{k: auth(u) for k, u in users.items()}),
    )


@pytest.fixture
def template(store, family):
    return store().create_action_template(family_id=family.family_id, name="Clean room", points=5,
                                          description=None, created_by=family.head.id)


@pytest.fixture
def other_template(store, family):
    return store().create_action_template(family_id=family.other_family_id, name="Walk dog", points=2,
                                          description=None, created_by=family.other_head.id)
