from __future__ import annotations

import os
from dataclasses import dataclass
from typing import FrozenSet, Optional

DEFAULT_REGISTRATION_ROLES = "provider,scribe,biller"


def _csv(value: str) -> FrozenSet[str]:
    return frozenset(item.strip().lower() for item in value.split(",") if item.strip())


@dataclass
class Settings:
    """Centralized application settings.

    Environment variables are read once, when this module is imported. Tests
    and embedding code can build their own ``Settings(...)`` and hand it to
    ``create_app`` instead of patching the environment.
    """

    # Session token signing. The fallback secret only exists so local
    # development does not crash; set JWT_SECRET everywhere else. HS256 keys
    # should be at least 32 bytes.
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-only-insecure-jwt-secret-change-me")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    token_ttl_seconds: int = int(os.getenv("TOKEN_TTL_SECONDS", str(2 * 60 * 60)))

    # bcrypt work factor (4..31). Tests drop this to 4.
    bcrypt_rounds: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Optional database configuration for SQL-backed repositories.
    database_url: Optional[str] = os.getenv("DATABASE_URL")
    use_sql_repos: bool = os.getenv("USE_SQL_REPOS", "false").lower() == "true"

    # Roles a caller may pick for themselves on the public registration
    # endpoint (comma-separated). Admin accounts are created by another admin
    # unless "admin" is listed here explicitly.
    registration_roles: FrozenSet[str] = _csv(os.getenv("REGISTRATION_ROLES", DEFAULT_REGISTRATION_ROLES))

    # CORS configuration: comma-separated origins. Default is "*" which is
    # acceptable for local development only.
    cors_allow_origins: str = os.getenv("CORS_ALLOW_ORIGINS", "*")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Bind address for `python -m src.clinic.main`.
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))


settings = Settings()
