from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from threading import RLock
from typing import Dict, List, Optional, Sequence

from fastapi import Request

from .models import TodoEntity
from .schemas import TodoCreate, TodoUpdate

logger = logging.getLogger(__name__)


class CompletionStatus(str, Enum):
    COMPLETED = "completed"
    NOT_FOUND = "not_found"
    ALREADY_DONE = "already_done"


@dataclass(frozen=True)
class CompletionResult:
    """
    Outcome of a completion attempt. `todo` is set only when status is COMPLETED.
    """
    status: CompletionStatus
    todo: Optional[TodoEntity] = None


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for todo storage backends."""

    @abstractmethod
    def create(self, data: TodoCreate) -> TodoEntity:
        """Create and return a new TodoEntity with done=False."""

    @abstractmethod
    def create_batch(self, items: Sequence[TodoCreate]) -> List[TodoEntity]:
        """Create one TodoEntity per input, preserving input order."""

    @abstractmethod
    def find_all(self) -> List[TodoEntity]:
        """Return every TodoEntity in insertion order."""

    @abstractmethod
    def find_by_id(self, todo_id: int) -> Optional[TodoEntity]:
        """Return a TodoEntity by id, or None if not found."""

    @abstractmethod
    def exists_by_id(self, todo_id: int) -> bool:
        """Return True if a TodoEntity with this id exists."""

    @abstractmethod
    def update(self, todo_id: int, data: TodoUpdate) -> Optional[TodoEntity]:
        """Replace the mutable fields of a TodoEntity. Return it, or None if not found."""

    @abstractmethod
    def try_complete(self, todo_id: int) -> CompletionResult:
        """Mark a TodoEntity done, reporting whether it was missing or already done."""

    @abstractmethod
    def is_completed(self, todo_id: int) -> bool:
        """Return True only if the TodoEntity exists and is done."""

    @abstractmethod
    def delete(self, todo_id: int) -> bool:
        """Delete a TodoEntity by id. Return True if deleted, False if not found."""

    @abstractmethod
    def delete_completed(self) -> int:
        """Delete every done TodoEntity and return how many were removed."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of stored TodoEntities."""

    def complete(self, todo_id: int) -> Optional[TodoEntity]:
        """
        Mark a TodoEntity done. Returns None both when the id is unknown and when the
        item is already done; use try_complete, or exists_by_id/is_completed beforehand,
        to tell the two apart.
        """
        result = self.try_complete(todo_id)
        return result.todo if result.status is CompletionStatus.COMPLETED else None


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository. One re-entrant lock guards the items, the id
    counter and the timestamp clock, so every operation is a single critical section.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[int, TodoEntity] = {}
        self._next_id = 1
        self._last_timestamp: Optional[datetime] = None

    def _now(self) -> datetime:
        # Callers hold the lock; consecutive mutations never share a timestamp.
        now = datetime.now()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _allocate_id(self) -> int:
        with self._lock:
            i = self._next_id
            self._next_id += 1
            return i

    def _insert(self, data: TodoCreate) -> TodoEntity:
        now = self._now()
        entity: TodoEntity = {
            "id": self._allocate_id(),
            "title": data.title,
            "description": data.description,
            "due_date": data.due_date,
            "done": False,
            "created_at": now,
            "updated_at": now,
        }
        self._items[entity["id"]] = entity
        return entity.copy()

    def create(self, data: TodoCreate) -> TodoEntity:
        with self._lock:
            created = self._insert(data)
        logger.debug("Created todo %s", created["id"])
        return created

    def create_batch(self, items: Sequence[TodoCreate]) -> List[TodoEntity]:
        with self._lock:
            created = [self._insert(data) for data in items]
        logger.debug("Created %d todos in batch", len(created))
        return created

    def find_all(self) -> List[TodoEntity]:
        with self._lock:
            return [t.copy() for t in self._items.values()]

    def find_by_id(self, todo_id: int) -> Optional[TodoEntity]:
        with self._lock:
            item = self._items.get(todo_id)
            return None if item is None else item.copy()

    def exists_by_id(self, todo_id: int) -> bool:
        with self._lock:
            return todo_id in self._items

    def update(self, todo_id: int, data: TodoUpdate) -> Optional[TodoEntity]:
        with self._lock:
            existing = self._items.get(todo_id)
            if existing is None:
                return None

            # Full replacement; done is the one field left alone when omitted
            updated = existing.copy()
            updated["title"] = data.title
            updated["description"] = data.description
            updated["due_date"] = data.due_date
            if data.done is not None:
                updated["done"] = data.done
            updated["updated_at"] = self._now()

            self._items[todo_id] = updated
            return updated.copy()

    def try_complete(self, todo_id: int) -> CompletionResult:
        with self._lock:
            existing = self._items.get(todo_id)
            if existing is None:
                return CompletionResult(CompletionStatus.NOT_FOUND)
            if existing["done"]:
                return CompletionResult(CompletionStatus.ALREADY_DONE)

            existing["done"] = True
            existing["updated_at"] = self._now()
            return CompletionResult(CompletionStatus.COMPLETED, existing.copy())

    def is_completed(self, todo_id: int) -> bool:
        with self._lock:
            item = self._items.get(todo_id)
            return item is not None and item["done"]

    def delete(self, todo_id: int) -> bool:
        with self._lock:
            return self._items.pop(todo_id, None) is not None

    def delete_completed(self) -> int:
        with self._lock:
            completed_ids = [todo_id for todo_id, t in self._items.items() if t["done"]]
            for todo_id in completed_ids:
                del self._items[todo_id]
        logger.info("Deleted %d completed todos", len(completed_ids))
        return len(completed_ids)

    def count(self) -> int:
        with self._lock:
            return len(self._items)


# PUBLIC_INTERFACE
def get_repository(request: Request) -> Repository:
    """Return the todo repository owned by the running application."""
    return request.app.state.todo_repository
