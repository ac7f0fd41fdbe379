from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from .errors import PersistenceError
from .models import TodoEntity

logger = logging.getLogger(__name__)

# Fields an update is allowed to touch; id and createdAt are immutable.
MUTABLE_FIELDS = ("title", "body", "completed")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
class TodoStore:
    """
    File-backed todo collection.

    The whole collection lives in memory and is mirrored to a single JSON file
    (a pretty-printed array). Every mutation rewrites the entire file. Each
    operation holds a re-entrant lock across the in-memory change and the
    matching write, so writes reach disk in mutation order.

    The store is not safe for several processes sharing the same file.
    """

    def __init__(
        self,
        path: Union[str, Path],
        *,
        atomic_writes: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._path = Path(path)
        self._atomic_writes = atomic_writes
        self._clock = clock
        self._lock = RLock()
        self._items: List[TodoEntity] = []
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._loaded

    def _now(self) -> str:
        return self._clock().isoformat()

    # Lifecycle

    def open(self) -> None:
        """Load the collection from disk, creating the file if needed."""
        self.ensure_loaded()

    def close(self) -> None:
        """Forget the in-memory collection; the next access reloads from disk."""
        with self._lock:
            self._items = []
            self._loaded = False

    def ensure_loaded(self) -> None:
        """
        Idempotent initialization.

        A missing or unreadable file (bad JSON, not an array of records, I/O error) counts
        as an empty collection, and an empty array is written straight away.
        """
        with self._lock:
            if self._loaded:
                return
            try:
                with open(self._path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if not isinstance(data, list):
                    raise ValueError("expected a JSON array of todos")
                if not all(isinstance(item, dict) and "id" in item for item in data):
                    raise ValueError("every todo must be an object with an id")
                self._items = data
                logger.info("Loaded %d todos from %s", len(self._items), self._path)
            except FileNotFoundError:
                logger.info("No data file at %s, starting empty", self._path)
                self._save([])
                self._items = []
            except (OSError, ValueError) as e:
                logger.warning("Could not read %s (%s), starting empty", self._path, e)
                self._save([])
                self._items = []
            self._loaded = True

    def _save(self, items: List[TodoEntity]) -> None:
        payload = json.dumps(items, indent=2, ensure_ascii=False)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            if self._atomic_writes:
                self._write_atomic(payload)
            else:
                with open(self._path, "w", encoding="utf-8") as f:
                    f.write(payload)
        except OSError as e:
            logger.error("Failed to save todos to %s: %s", self._path, e)
            raise PersistenceError(f"Failed to save data to file: {e}") from e

    def _write_atomic(self, payload: str) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self._path.parent), prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def _commit(self, items: List[TodoEntity]) -> None:
        # Memory only changes once the file write has succeeded
        self._save(items)
        self._items = items

    def _index_of(self, todo_id: int) -> int:
        for i, item in enumerate(self._items):
            if item["id"] == todo_id:
                return i
        return -1

    def _generate_id(self) -> int:
        if not self._items:
            return 1
        return max(item["id"] for item in self._items) + 1

    # Queries

    def find_all(self) -> List[TodoEntity]:
        with self._lock:
            self.ensure_loaded()
            return [item.copy() for item in self._items]

    def find_by_id(self, todo_id: int) -> Optional[TodoEntity]:
        with self._lock:
            self.ensure_loaded()
            i = self._index_of(todo_id)
            return None if i == -1 else self._items[i].copy()

    def paginate(self, page: int = 1, limit: int = 10) -> Tuple[List[TodoEntity], int]:
        """Return the ``page``-th slice of ``limit`` items and the total count."""
        with self._lock:
            self.ensure_loaded()
            start = (page - 1) * limit
            end = start + limit
            return [item.copy() for item in self._items[start:end]], len(self._items)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            self.ensure_loaded()
            total = len(self._items)
            completed = sum(1 for item in self._items if item["completed"])
            return {"total": total, "completed": completed, "pending": total - completed}

    # Mutations

    def create(self, fields: Mapping[str, Any]) -> TodoEntity:
        """
        Append a new todo built from ``fields`` (title, body, completed).

        Raises:
            PersistenceError if the file could not be written.
        """
        with self._lock:
            self.ensure_loaded()
            now = self._now()
            entity: TodoEntity = {
                "id": self._generate_id(),
                "title": fields["title"],
                "body": fields["body"],
                "completed": bool(fields.get("completed", False)),
                "createdAt": now,
                "updatedAt": now,
            }
            self._commit(self._items + [entity])
            return entity.copy()

    def update(self, todo_id: int, changes: Mapping[str, Any]) -> Optional[TodoEntity]:
        """Merge the provided mutable fields into a todo. Return None if not found."""
        with self._lock:
            self.ensure_loaded()
            i = self._index_of(todo_id)
            if i == -1:
                return None

            updated = self._items[i].copy()
            for key in MUTABLE_FIELDS:
                if key in changes:
                    updated[key] = changes[key]  # type: ignore[literal-required]
            updated["updatedAt"] = self._now()

            items = list(self._items)
            items[i] = updated
            self._commit(items)
            return updated.copy()

    def delete(self, todo_id: int) -> bool:
        with self._lock:
            self.ensure_loaded()
            i = self._index_of(todo_id)
            if i == -1:
                return False
            self._commit(self._items[:i] + self._items[i + 1 :])
            return True
