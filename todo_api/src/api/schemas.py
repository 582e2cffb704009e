from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

# Shared type for incoming due_date which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]

T = TypeVar("T")


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[date]:
    """
    Internal helper to normalize due_date input into a date.
    - If value is a string, accept an ISO date or an ISO datetime (time part is dropped).
    - If value is a datetime, keep its date part.
    - If value is a date, return as-is.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        s = value.strip()
        try:
            return date.fromisoformat(s)
        except ValueError:
            try:
                return datetime.fromisoformat(s).date()
            except ValueError as e:
                raise ValueError(
                    "Invalid due_date format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e

    raise ValueError("Invalid type for due_date; expected date, datetime, or ISO8601 string.")


def _clean_title(v: str) -> str:
    s = v.strip()
    if not (1 <= len(s) <= 200):
        raise ValueError("title length must be between 1 and 200 characters")
    return s


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Schema for creating a new Todo item. New items always start with done=false.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "due_date": "2025-02-01",
            }
        }
    )

    title: str = Field(..., description="Short title for the todo item", min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, description="Optional detailed description", max_length=2000)
    due_date: Optional[date] = Field(
        default=None,
        description="Due date of the todo item. Accepts ISO8601 date or datetime; the time part is dropped",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        return _clean_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[date]:
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TodoUpdate(BaseModel):
    """
    Schema for replacing an existing Todo item.

    Title, description and due_date are always overwritten (omitted optional fields become null).
    `done` is only applied when supplied.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries and supplies",
                "description": "Milk, eggs, bread, and paper towels",
                "due_date": "2025-02-02",
                "done": True,
            }
        }
    )

    title: str = Field(..., description="Short title for the todo item", min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, description="Optional detailed description", max_length=2000)
    due_date: Optional[date] = Field(default=None, description="Due date of the todo item")
    done: Optional[bool] = Field(default=None, description="Completion flag; left unchanged when omitted")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[date]:
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item.
    """

    id: int = Field(..., description="Unique identifier of the todo item")
    title: str = Field(..., description="Short title for the todo item")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    due_date: Optional[date] = Field(default=None, description="Due date of the todo item")
    done: bool = Field(..., description="Completion status flag")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


# PUBLIC_INTERFACE
class RegisterRequest(BaseModel):
    """Schema for registering a new user."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"username": "alice", "password": "s3cret-pass", "email": "alice@example.com"}
        }
    )

    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(..., min_length=8, max_length=128)
    email: EmailStr


# PUBLIC_INTERFACE
class LoginRequest(BaseModel):
    """Schema for exchanging credentials for an access token."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


# PUBLIC_INTERFACE
class UserOut(BaseModel):
    """Public view of a user; the password hash is never exposed."""

    id: int
    username: str
    email: str


# PUBLIC_INTERFACE
class TokenOut(BaseModel):
    """Access token issued on login."""

    token: str
    token_type: str = "Bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user_id: int
    username: str


class DeletedCount(BaseModel):
    deleted_count: int
    message: str


class TodoList(BaseModel):
    items: List[TodoOut]
    total: int


class Meta(BaseModel):
    request_id: str
    served_at: datetime


# PUBLIC_INTERFACE
class ApiResponse(BaseModel, Generic[T]):
    """
    Success envelope shared by every endpoint: payload, request metadata and navigation links.
    """

    data: T
    meta: Meta
    links: Dict[str, str] = Field(default_factory=dict)


# PUBLIC_INTERFACE
class ProblemDetail(BaseModel):
    """
    Error body following RFC 9457 (Problem Details for HTTP APIs).
    """

    type: str = "about:blank"
    title: str
    status: int
    detail: str
    instance: Optional[str] = None
    request_id: Optional[str] = None
    errors: Optional[Dict[str, Any]] = None
