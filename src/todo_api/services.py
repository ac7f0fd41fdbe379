from __future__ import annotations

import logging
from typing import List

from .errors import PersistenceError
from .models import TodoEntity
from .repositories import DEFAULT_LIMIT, DEFAULT_PAGE, PaginationParams, Repository
from .schemas import (
    TITLE_MIN_LENGTH,
    PaginatedTodoResponse,
    PaginationInfo,
    TodoCreate,
    TodoOut,
    TodoResponse,
    TodoStats,
    TodoUpdate,
)
from .utils import pagination_meta

logger = logging.getLogger(__name__)

NOT_FOUND = "not_found"
INVALID = "invalid"
FAILED = "failed"


def _to_out(entity: TodoEntity) -> TodoOut:
    return TodoOut(**entity)  # type: ignore[arg-type]


def _to_out_list(entities: List[TodoEntity]) -> List[TodoOut]:
    return [_to_out(e) for e in entities]


def _failure(error: str, kind: str = FAILED) -> TodoResponse:
    return TodoResponse(success=False, error=error, kind=kind)


def _not_found(todo_id: int) -> TodoResponse:
    return _failure(f"Todo with ID {todo_id} not found", NOT_FOUND)


# PUBLIC_INTERFACE
class TodoService:
    """
    Business rules on top of a Repository.

    Every operation returns a TodoResponse envelope and turns store failures
    into a generic error message, except get_paginated_todos, which raises.
    """

    def __init__(self, repository: Repository) -> None:
        self._repo = repository

    def get_all_todos(self) -> TodoResponse:
        try:
            todos = self._repo.get_all()
        except PersistenceError:
            logger.exception("Failed to fetch todos")
            return _failure("Failed to fetch todos")
        return TodoResponse(success=True, data=_to_out_list(todos))

    def get_todo_by_id(self, todo_id: int) -> TodoResponse:
        try:
            todo = self._repo.get_by_id(todo_id)
        except PersistenceError:
            logger.exception("Failed to fetch todo %s", todo_id)
            return _failure("Failed to fetch todo")
        if todo is None:
            return _not_found(todo_id)
        return TodoResponse(success=True, data=_to_out(todo))

    def create_todo(self, data: TodoCreate) -> TodoResponse:
        if not data.title or not data.body:
            return _failure("Title and body are required", INVALID)
        if len(data.title) < TITLE_MIN_LENGTH:
            return _failure(
                f"Title must be at least {TITLE_MIN_LENGTH} characters long", INVALID
            )
        try:
            todo = self._repo.create(data)
        except PersistenceError:
            logger.exception("Failed to create todo")
            return _failure("Failed to create todo")
        logger.info("Created todo %s", todo["id"])
        return TodoResponse(success=True, data=_to_out(todo), message="Todo created successfully")

    def update_todo(self, todo_id: int, data: TodoUpdate) -> TodoResponse:
        try:
            # Existence check and update are separate store calls; a delete
            # landing in between surfaces as "Failed to update todo".
            if self._repo.get_by_id(todo_id) is None:
                return _not_found(todo_id)
            updated = self._repo.update(todo_id, data)
        except PersistenceError:
            logger.exception("Failed to update todo %s", todo_id)
            return _failure("Failed to update todo")
        if updated is None:
            return _failure("Failed to update todo")
        logger.info("Updated todo %s", todo_id)
        return TodoResponse(success=True, data=_to_out(updated), message="Todo updated successfully")

    def delete_todo(self, todo_id: int) -> TodoResponse:
        try:
            if self._repo.get_by_id(todo_id) is None:
                return _not_found(todo_id)
            deleted = self._repo.delete(todo_id)
        except PersistenceError:
            logger.exception("Failed to delete todo %s", todo_id)
            return _failure("Failed to delete todo")
        if not deleted:
            return _failure("Failed to delete todo")
        logger.info("Deleted todo %s", todo_id)
        return TodoResponse(success=True, message="Todo deleted successfully")

    def get_paginated_todos(self, params: PaginationParams) -> PaginatedTodoResponse:
        """
        Return one page of todos with pagination metadata.

        Raises:
            PersistenceError("Failed to fetch paginated todos") if the store fails.
        """
        try:
            todos, total = self._repo.paginate(params)
        except PersistenceError as e:
            logger.exception("Failed to fetch paginated todos")
            raise PersistenceError("Failed to fetch paginated todos") from e
        page = params.page or DEFAULT_PAGE
        limit = params.limit or DEFAULT_LIMIT
        return PaginatedTodoResponse(
            success=True,
            data=_to_out_list(todos),
            pagination=PaginationInfo(**pagination_meta(page, limit, total)),
        )

    def get_todo_stats(self) -> TodoResponse:
        try:
            stats = self._repo.get_stats()
        except PersistenceError:
            logger.exception("Failed to fetch todo statistics")
            return _failure("Failed to fetch todo statistics")
        return TodoResponse(success=True, data=TodoStats(**stats))
