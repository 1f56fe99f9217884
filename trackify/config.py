"""Runtime settings for the Trackify API."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

DEV_JWT_SECRET = "dev-only-secret"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


@dataclass(frozen=True)
class Settings:
    """Configuration handed to the app factory and the services it builds."""

    mongodb_uri: str = "mongodb://localhost:27017/"
    mongodb_database: str = "trackify"
    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    session_ttl_seconds: int = 60 * 60
    code_ttl_minutes: int = 10
    bcrypt_rounds: int = 10
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    cookie_secure: bool = False
    emailjs_api_url: str = "https://api.emailjs.com/api/v1.0/email/send"
    email_timeout_seconds: int = 10
    verify_link_base: str = "http://localhost:8000/auth/verify"
    log_level: str = "INFO"

    @property
    def uses_dev_secret(self) -> bool:
        return self.jwt_secret == DEV_JWT_SECRET

    @classmethod
    def from_env(cls, overrides: Optional[dict] = None) -> "Settings":
        """Build settings from environment variables, then apply ``overrides``."""
        origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")
        values = dict(
            mongodb_uri=os.getenv("MONGODB_URI", cls.mongodb_uri),
            mongodb_database=os.getenv("MONGODB_DATABASE", cls.mongodb_database),
            jwt_secret=os.getenv("JWT_SECRET") or DEV_JWT_SECRET,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            session_ttl_seconds=_env_int("SESSION_TTL_SECONDS", cls.session_ttl_seconds),
            code_ttl_minutes=_env_int("CODE_TTL_MINUTES", cls.code_ttl_minutes),
            bcrypt_rounds=_env_int("BCRYPT_ROUNDS", cls.bcrypt_rounds),
            cors_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
            cookie_secure=_env_bool("COOKIE_SECURE", False),
            emailjs_api_url=os.getenv("EMAILJS_API_URL", cls.emailjs_api_url),
            email_timeout_seconds=_env_int("EMAIL_TIMEOUT_SECONDS", cls.email_timeout_seconds),
            verify_link_base=os.getenv("VERIFY_LINK_BASE", cls.verify_link_base),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
        if overrides:
            values.update(overrides)
        return cls(**values)
