from __future__ import annotations

import logging
from threading import RLock
from typing import Dict, Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from fastapi import Request

from .models import UserEntity

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class UserStore:
    """
    In-memory credential store.

    Users are indexed by id and by username. The username uniqueness check and the
    insertion run under the same lock, so concurrent registrations of one username
    produce exactly one user. Passwords are kept only as Argon2 hashes.
    """

    def __init__(self, password_hasher: Optional[PasswordHasher] = None) -> None:
        self._lock = RLock()
        self._users: Dict[int, UserEntity] = {}
        self._by_username: Dict[str, UserEntity] = {}
        self._next_id = 1
        self._hasher = password_hasher or PasswordHasher()

    def _allocate_id(self) -> int:
        with self._lock:
            i = self._next_id
            self._next_id += 1
            return i

    def register(self, username: str, raw_password: str, email: str) -> Optional[UserEntity]:
        """
        Register a new user and return it, or None when the username is already taken.
        """
        # Hashing stays outside the lock.
        password_hash = self._hasher.hash(raw_password)
        with self._lock:
            if username in self._by_username:
                logger.info("Registration rejected: username already taken")
                return None
            user: UserEntity = {
                "id": self._allocate_id(),
                "username": username,
                "password": password_hash,
                "email": email,
            }
            self._users[user["id"]] = user
            self._by_username[username] = user
        logger.info("Registered user %s", user["id"])
        return user.copy()

    def find_by_username(self, username: str) -> Optional[UserEntity]:
        with self._lock:
            user = self._by_username.get(username)
            return None if user is None else user.copy()

    def find_by_id(self, user_id: int) -> Optional[UserEntity]:
        with self._lock:
            user = self._users.get(user_id)
            return None if user is None else user.copy()

    def exists_by_username(self, username: str) -> bool:
        with self._lock:
            return username in self._by_username

    def verify_password(self, user: UserEntity, raw_password: str) -> bool:
        """Check a raw password against the user's stored hash."""
        try:
            return self._hasher.verify(user["password"], raw_password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    def authenticate(self, username: str, raw_password: str) -> Optional[UserEntity]:
        """
        Return the user for valid credentials. Unknown usernames and wrong passwords
        both yield None so callers cannot tell them apart.
        """
        user = self.find_by_username(username)
        if user is None or not self.verify_password(user, raw_password):
            return None
        return user


# PUBLIC_INTERFACE
def build_password_hasher(time_cost: int, memory_cost: int) -> PasswordHasher:
    """
    Return an Argon2 hasher with the configured cost parameters.

    Raises ValueError when memory_cost is below 8 KiB per lane, which Argon2 would
    otherwise only reject on the first hash.
    """
    hasher = PasswordHasher(time_cost=time_cost, memory_cost=memory_cost)
    if time_cost < 1 or memory_cost < 8 * hasher.parallelism:
        raise ValueError(
            f"Argon2 needs time_cost >= 1 and memory_cost >= {8 * hasher.parallelism} KiB"
        )
    return hasher


# PUBLIC_INTERFACE
def get_user_store(request: Request) -> UserStore:
    """Return the credential store owned by the running application."""
    return request.app.state.user_store
