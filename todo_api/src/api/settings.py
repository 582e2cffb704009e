from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass, field
from typing import List

from argon2 import PasswordHasher

logger = logging.getLogger(__name__)

DEFAULT_JWT_EXPIRATION_SECONDS = 3600
DEFAULT_JWT_ISSUER = "todo-api"
DEFAULT_HASH_TIME_COST = 2
DEFAULT_HASH_MEMORY_COST = 19456
# Argon2 needs at least 8 KiB of memory per lane
MIN_HASH_MEMORY_COST = 8 * PasswordHasher().parallelism


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - JWT_SECRET: HMAC signing secret (>= 32 bytes). A random per-process secret is used when unset.
    - JWT_EXPIRATION_SECONDS: access token lifetime in seconds. Default 3600
    - JWT_ISSUER: issuer claim written into and required from tokens. Default 'todo-api'
    - PASSWORD_HASH_TIME_COST: Argon2 time cost (iterations). Default 2
    - PASSWORD_HASH_MEMORY_COST: Argon2 memory cost in KiB (>= 8 per lane). Default 19456
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: root log level name. Default 'INFO'
    """

    jwt_secret: str
    jwt_expiration_seconds: int = DEFAULT_JWT_EXPIRATION_SECONDS
    jwt_issuer: str = DEFAULT_JWT_ISSUER
    password_hash_time_cost: int = DEFAULT_HASH_TIME_COST
    password_hash_memory_cost: int = DEFAULT_HASH_MEMORY_COST
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_positive_int(value: str, default: int, minimum: int = 1) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


def _parse_log_level(value: str) -> str:
    name = value.strip().upper()
    if name not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        return "INFO"
    return name


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    secret = os.getenv("JWT_SECRET")
    if not secret:
        # Tokens signed with an ephemeral secret stop verifying after a restart.
        logger.warning("JWT_SECRET is not set; using a random per-process signing secret")
        secret = secrets.token_urlsafe(48)

    return Settings(
        jwt_secret=secret,
        jwt_expiration_seconds=_parse_positive_int(
            _get_env("JWT_EXPIRATION_SECONDS", str(DEFAULT_JWT_EXPIRATION_SECONDS)),
            DEFAULT_JWT_EXPIRATION_SECONDS,
        ),
        jwt_issuer=_get_env("JWT_ISSUER", DEFAULT_JWT_ISSUER).strip(),
        password_hash_time_cost=_parse_positive_int(
            _get_env("PASSWORD_HASH_TIME_COST", str(DEFAULT_HASH_TIME_COST)),
            DEFAULT_HASH_TIME_COST,
        ),
        password_hash_memory_cost=_parse_positive_int(
            _get_env("PASSWORD_HASH_MEMORY_COST", str(DEFAULT_HASH_MEMORY_COST)),
            DEFAULT_HASH_MEMORY_COST,
            minimum=MIN_HASH_MEMORY_COST,
        ),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_parse_log_level(_get_env("LOG_LEVEL", "INFO")),
    )
