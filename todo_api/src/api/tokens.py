from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt
from fastapi import Request

from .models import UserEntity

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
MIN_SECRET_BYTES = 32

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of an access token."""

    user_id: int
    username: Optional[str]
    issuer: str
    issued_at: datetime
    expires_at: datetime


# PUBLIC_INTERFACE
class TokenService:
    """
    Issues and verifies stateless HS256 access tokens.

    Tokens carry the user id as `sub`, the configured issuer as `iss`, `iat`/`exp`
    timestamps and a `username` claim. Nothing is stored server-side, so expiry is
    the only bound on a token's lifetime.
    """

    def __init__(
        self,
        secret: str,
        lifetime_seconds: int,
        issuer: str,
        clock: Optional[Clock] = None,
    ) -> None:
        key = secret.encode("utf-8")
        if len(key) < MIN_SECRET_BYTES:
            raise ValueError(f"JWT secret must be at least {MIN_SECRET_BYTES} bytes long")
        if lifetime_seconds <= 0:
            raise ValueError("Token lifetime must be positive")
        self._key = key
        self._lifetime = timedelta(seconds=lifetime_seconds)
        self._issuer = issuer
        self._clock = clock or _utcnow

    @property
    def lifetime_seconds(self) -> int:
        return int(self._lifetime.total_seconds())

    def issue(self, user: UserEntity) -> str:
        """Return a signed token for the given user."""
        now = self._clock()
        payload = {
            "sub": str(user["id"]),
            "iss": self._issuer,
            "iat": int(now.timestamp()),
            "exp": int((now + self._lifetime).timestamp()),
            "username": user["username"],
        }
        return jwt.encode(payload, self._key, algorithm=JWT_ALGORITHM)

    def claims(self, token: str) -> Optional[TokenClaims]:
        """
        Verify a token and return its claims, or None when it is malformed, signed with
        another key, issued by someone else, or expired.
        """
        try:
            # Time-based claims are checked against our own clock below.
            payload = jwt.decode(
                token,
                self._key,
                algorithms=[JWT_ALGORITHM],
                issuer=self._issuer,
                options={"require": ["sub", "iss", "iat", "exp"], "verify_exp": False, "verify_iat": False},
            )
            user_id = int(payload["sub"])
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
        except (jwt.InvalidTokenError, ValueError, TypeError, OverflowError, OSError) as exc:
            logger.debug("Token rejected: %s", exc.__class__.__name__)
            return None

        if expires_at <= self._clock():
            logger.debug("Token rejected: expired")
            return None

        username = payload.get("username")
        return TokenClaims(
            user_id=user_id,
            username=username if isinstance(username, str) else None,
            issuer=payload["iss"],
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def verify(self, token: str) -> Optional[int]:
        """Return the user id carried by a valid token, otherwise None."""
        claims = self.claims(token)
        return None if claims is None else claims.user_id

    def is_valid(self, token: str) -> bool:
        return self.verify(token) is not None


# PUBLIC_INTERFACE
def get_token_service(request: Request) -> TokenService:
    """Return the token service owned by the running application."""
    return request.app.state.token_service
