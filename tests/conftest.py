import os
import tempfile

# configure before the app modules read their settings
_tmpdir = tempfile.mkdtemp(prefix="carquest-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ["SECRET_KEY"] = "carquest-test-signing-secret-0123456789"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.pop("RANK_THRESHOLDS", None)

import pytest
from fastapi.testclient import TestClient

from db import Base, SessionLocal, engine
from logic import auth, progression
from main import app


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make_user(name=None, email=None, password="password123", xp=0):
        counter["n"] += 1
        user = auth.register(
            db_session,
            name or f"user{counter['n']}",
            email or f"user{counter['n']}@example.com",
            password,
        )
        if xp:
            progression.grant_xp(db_session, user.id, xp)
            db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        return {"Authorization": f"Bearer {auth.issue_token(user)}"}

    return _auth_headers
