"""
Credentials and session tokens.

Passwords are stored as bcrypt hashes. Sessions are stateless JWTs carrying the
user's id and email; the server keeps no record of issued tokens, so a token
stays valid until it expires and logout only happens on the client.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from config import settings
from logic import store
from logic.errors import AuthError, ForbiddenError, ValidationError
from logic.progression import rank_for_xp
from models.user import User

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    raw = password.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(raw, password_hash.encode("utf-8"))
    except ValueError:
        # stored value is not a bcrypt hash
        return False


def register(db: Session, name: str, email: str, password: str) -> User:
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

    user = store.create_user(db, name, email, hash_password(password), rank=rank_for_xp(0))
    logger.info("Registered user %s", user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """
    Return the user owning ``email`` if ``password`` matches.

    Unknown emails and wrong passwords fail with the same ``AuthError``.
    """
    user = store.find_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt")
        raise AuthError("Invalid email or password")
    logger.info("User %s logged in", user.id)
    return user


def issue_token(user: User, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    payload = {
        "id": user.id,
        "email": user.email,
        "iat": now,
        "exp": now + timedelta(days=settings.TOKEN_EXPIRE_DAYS),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: Optional[str]) -> Dict:
    """
    Decode a session token into ``{"id": ..., "email": ...}``.

    Raises ``AuthError`` when no token is given and ``ForbiddenError`` when it
    is malformed, wrongly signed or expired.
    """
    if not token:
        raise AuthError("Token required")
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require": ["exp", "id", "email"]},
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Rejected expired token")
        raise ForbiddenError("Token expired")
    except jwt.InvalidTokenError:
        logger.warning("Rejected invalid token")
        raise ForbiddenError("Invalid token")
    return {"id": payload["id"], "email": payload["email"]}


def current_user_claims(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Dict:
    """FastAPI dependency for routes that require a bearer token."""
    return verify_token(credentials.credentials if credentials else None)
