from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A lightweight domain model representing a Todo item held by the in-memory store.

    Fields:
    - id: Unique integer identifier, never reused
    - title: Short title (1..200 chars, trimmed on input via schemas)
    - description: Optional detailed description
    - due_date: Optional due date
    - done: Completion flag
    - created_at: Local creation timestamp, immutable
    - updated_at: Local last update timestamp, strictly increasing per mutation
    """

    id: int
    title: str
    description: Optional[str]
    due_date: Optional[date]
    done: bool
    created_at: datetime
    updated_at: datetime


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """
    A registered user. `password` holds the Argon2 hash, never the raw secret.
    """

    id: int
    username: str
    password: str
    email: str


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class AuthenticatedIdentity:
    """Identity resolved from a verified bearer token for the duration of one request."""

    user_id: int
    token: str
