from datetime import datetime, timedelta, timezone

import jwt
import pytest

from config import settings
from logic import auth, progression
from logic.errors import AuthError, ConflictError, ForbiddenError, ValidationError
from models.user import User


def test_register_stores_hash_and_starting_progress(make_user, db_session):
    user = make_user(name="Laia", email="laia@example.com", password="correct horse")
    assert user.password_hash != "correct horse"
    assert auth.verify_password("correct horse", user.password_hash)
    assert (user.xp, user.level, user.rank) == (0, 1, progression.rank_for_xp(0))


def test_register_duplicate_email_keeps_original(make_user, db_session):
    original = make_user(email="laia@example.com", password="first-pass")
    original_hash = original.password_hash
    with pytest.raises(ConflictError):
        auth.register(db_session, "Other", "laia@example.com", "second-pass")
    assert db_session.query(User).filter_by(email="laia@example.com").count() == 1
    db_session.refresh(original)
    assert original.password_hash == original_hash


def test_emails_are_case_sensitive(make_user, db_session):
    make_user(email="laia@example.com")
    other = auth.register(db_session, "Laia", "Laia@example.com", "password123")
    assert other.email == "Laia@example.com"


def test_register_rejects_overlong_password(db_session):
    with pytest.raises(ValidationError):
        auth.register(db_session, "Laia", "laia@example.com", "x" * 73)


def test_authenticate(make_user, db_session):
    user = make_user(email="laia@example.com", password="password123")
    assert auth.authenticate(db_session, "laia@example.com", "password123").id == user.id


@pytest.mark.parametrize("email, password", [
    ("laia@example.com", "wrong-password"),
    ("nobody@example.com", "password123"),
    ("LAIA@example.com", "password123"),
    ("laia@example.com", "p" * 100),
])
def test_authenticate_rejects(make_user, db_session, email, password):
    make_user(email="laia@example.com", password="password123")
    with pytest.raises(AuthError, match="Invalid email or password"):
        auth.authenticate(db_session, email, password)


def test_verify_password_with_garbage_hash():
    assert auth.verify_password("password123", "not-a-hash") is False


def test_token_roundtrip_and_expiry(make_user):
    user = make_user(email="laia@example.com")
    token = auth.issue_token(user)
    assert auth.verify_token(token) == {"id": user.id, "email": "laia@example.com"}

    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert payload["exp"] - payload["iat"] == 7 * 24 * 3600


def test_expired_token_is_forbidden(make_user):
    user = make_user()
    token = auth.issue_token(user, now=datetime.now(timezone.utc) - timedelta(days=8))
    with pytest.raises(ForbiddenError, match="expired"):
        auth.verify_token(token)


@pytest.mark.parametrize("token", [
    "not.a.token",
    jwt.encode({"id": 1, "email": "a@b.c", "exp": datetime.now(timezone.utc) + timedelta(days=1)}, "another-signing-secret-0123456789abcdef", algorithm="HS256"),
    jwt.encode({"id": 1, "email": "a@b.c"}, settings.SECRET_KEY, algorithm="HS256"),
])
def test_invalid_tokens_are_forbidden(token):
    with pytest.raises(ForbiddenError):
        auth.verify_token(token)


@pytest.mark.parametrize("token", [None, ""])
def test_missing_token(token):
    with pytest.raises(AuthError):
        auth.verify_token(token)
