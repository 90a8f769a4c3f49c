"""Service configuration read from environment variables (.env)."""

import os
import logging
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

INSECURE_DEFAULT_SECRET = "insecure-development-secret-change-me"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./database.db"
    page_size: int = 4
    jwt_secret_key: str = INSECURE_DEFAULT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    bcrypt_rounds: int = 10
    seed_demo_data: bool = True
    frontend_url: str = "http://localhost:5173"
    log_level: str = "INFO"

    def __post_init__(self):
        if self.page_size < 1:
            raise ValueError("USERS_PAGE_SIZE must be at least 1")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")

    @classmethod
    def from_env(cls) -> "Settings":
        """Builds the settings from the process environment, loading .env first."""
        load_dotenv()

        secret = os.getenv("JWT_SECRET_KEY")
        if not secret:
            logger.warning("JWT_SECRET_KEY is not set. Using an insecure default key for development.")
            secret = INSECURE_DEFAULT_SECRET

        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            page_size=_int_env("USERS_PAGE_SIZE", cls.page_size),
            jwt_secret_key=secret,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            access_token_expire_minutes=_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", cls.access_token_expire_minutes),
            bcrypt_rounds=_int_env("BCRYPT_ROUNDS", cls.bcrypt_rounds),
            seed_demo_data=_bool_env("SEED_DEMO_DATA", cls.seed_demo_data),
            frontend_url=os.getenv("FRONTEND_URL", cls.frontend_url),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
