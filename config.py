# backend/config.py
from typing import List, Tuple

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables or a `.env` file.
    """

    DATABASE_URL: str = "sqlite:///./carquest.db"
    """SQLAlchemy URL of the user store (PostgreSQL in production)."""

    SECRET_KEY: str
    """Secret used to sign session tokens."""

    ALGORITHM: str = "HS256"
    """JWT signing algorithm."""

    TOKEN_EXPIRE_DAYS: int = 7
    """Lifetime of an issued session token, in days."""

    BCRYPT_ROUNDS: int = 12
    """bcrypt cost factor used when hashing new passwords."""

    RANK_THRESHOLDS: List[Tuple[int, str]] = [
        (0, "Aprenent"),
        (1000, "Conductor"),
        (3000, "Pilot"),
        (6000, "Expert"),
        (10000, "Mestre"),
    ]
    """Sorted (min_xp, label) pairs; set as JSON, e.g. `[[0, "Aprenent"], [1000, "Pilot"]]`."""

    RANKING_SIZE: int = 10
    """Number of users returned by the public ranking."""

    CORS_ORIGINS: List[str] = ["*"]
    """Origins allowed to call the API from a browser."""

    PORT: int = 3000
    """Port the API server listens on."""

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()
