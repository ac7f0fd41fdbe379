from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .models import TodoEntity
from .schemas import TodoCreate, TodoUpdate
from .store import TodoStore

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


@dataclass(frozen=True)
class PaginationParams:
    """
    Query parameters for the paginated listing. Missing values fall back to
    page=1, limit=10.
    """
    page: Optional[int] = None
    limit: Optional[int] = None


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for todo storage."""

    @abstractmethod
    def get_all(self) -> List[TodoEntity]:
        """Return every todo in insertion order."""

    @abstractmethod
    def get_by_id(self, todo_id: int) -> Optional[TodoEntity]:
        """Return a TodoEntity by id, or None if not found."""

    @abstractmethod
    def create(self, data: TodoCreate) -> TodoEntity:
        """Create and return a new, not yet completed TodoEntity."""

    @abstractmethod
    def update(self, todo_id: int, data: TodoUpdate) -> Optional[TodoEntity]:
        """Update fields of an existing TodoEntity. Return updated entity or None if not found."""

    @abstractmethod
    def delete(self, todo_id: int) -> bool:
        """Delete a TodoEntity by id. Return True if deleted, False if not found."""

    @abstractmethod
    def paginate(self, params: PaginationParams) -> Tuple[List[TodoEntity], int]:
        """Return one page of TodoEntities and the total count."""

    @abstractmethod
    def get_stats(self) -> Dict[str, int]:
        """Return total, completed and pending counts."""


class TodoRepository(Repository):
    """
    Repository over the JSON file store. Holds no state of its own.
    """

    def __init__(self, store: TodoStore) -> None:
        self._store = store

    def get_all(self) -> List[TodoEntity]:
        return self._store.find_all()

    def get_by_id(self, todo_id: int) -> Optional[TodoEntity]:
        return self._store.find_by_id(todo_id)

    def create(self, data: TodoCreate) -> TodoEntity:
        return self._store.create({"title": data.title, "body": data.body, "completed": False})

    def update(self, todo_id: int, data: TodoUpdate) -> Optional[TodoEntity]:
        # Only fields that were sent with a value take part in the merge
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        return self._store.update(todo_id, changes)

    def delete(self, todo_id: int) -> bool:
        return self._store.delete(todo_id)

    def paginate(self, params: PaginationParams) -> Tuple[List[TodoEntity], int]:
        page = params.page or DEFAULT_PAGE
        limit = params.limit or DEFAULT_LIMIT
        return self._store.paginate(page, limit)

    def get_stats(self) -> Dict[str, int]:
        return self._store.stats()
