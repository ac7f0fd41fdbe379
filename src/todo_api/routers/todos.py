from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, Request, status

from ..errors import NotFoundError, TodoError, ValidationError
from ..repositories import PaginationParams, TodoRepository
from ..schemas import PaginatedTodoResponse, TodoCreate, TodoResponse, TodoUpdate
from ..services import INVALID, NOT_FOUND, TodoService

router = APIRouter(
    prefix="/api/todos",
    tags=["todos"],
)

# Failure bodies are rendered by the TodoError handler registered in main.
_ENVELOPE_ROUTE = {
    "response_model": TodoResponse,
    "response_model_exclude_none": True,
}

TodoId = Annotated[int, Path(gt=0, description="The todo id (positive integer)")]


def _get_service(request: Request) -> TodoService:
    """
    Dependency building the service over the application's store.
    """
    return TodoService(TodoRepository(request.app.state.store))


def _ensure_success(response: TodoResponse) -> TodoResponse:
    """
    Raise the matching TodoError for a failed envelope, pass successes through.
    """
    if response.success:
        return response
    message = response.error or "Request failed"
    if response.kind == NOT_FOUND:
        raise NotFoundError(message)
    if response.kind == INVALID:
        raise ValidationError(message)
    raise TodoError(message)


# PUBLIC_INTERFACE
@router.get(
    "",
    summary="List Todos",
    description="Return every todo in insertion order.",
    responses={
        200: {"description": "The list of all todos"},
        400: {"description": "Todos could not be read"},
    },
    **_ENVELOPE_ROUTE,
)
def get_todos(service: TodoService = Depends(_get_service)) -> TodoResponse:
    """
    List all todos.
    """
    return _ensure_success(service.get_all_todos())


# PUBLIC_INTERFACE
@router.get(
    "/paginated",
    response_model=PaginatedTodoResponse,
    summary="List Todos (paginated)",
    description=(
        "Return one page of todos.\n\n"
        "Query parameters:\n"
        "- page: page number, starting at 1 (default 1)\n"
        "- limit: items per page, 1..100 (default 10)\n\n"
        "Returns the page plus page, limit, total and totalPages."
    ),
    responses={
        200: {"description": "Paginated todos"},
        400: {"description": "Invalid page or limit"},
    },
)
def get_paginated_todos(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Number of items per page"),
    service: TodoService = Depends(_get_service),
) -> PaginatedTodoResponse:
    """
    Paginated listing. Store failures propagate to the application error handler.
    """
    return service.get_paginated_todos(PaginationParams(page=page, limit=limit))


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    summary="Todo Statistics",
    description="Return total, completed and pending counts.",
    responses={
        200: {"description": "Todo statistics"},
        400: {"description": "Statistics could not be computed"},
    },
    **_ENVELOPE_ROUTE,
)
def get_stats(service: TodoService = Depends(_get_service)) -> TodoResponse:
    return _ensure_success(service.get_todo_stats())


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses={
        200: {"description": "Todo found"},
        400: {"description": "Invalid todo ID"},
        404: {"description": "Todo not found"},
    },
    **_ENVELOPE_ROUTE,
)
def get_todo(
    todo_id: TodoId,
    service: TodoService = Depends(_get_service),
) -> TodoResponse:
    """
    Retrieve a single Todo item by its ID.
    """
    return _ensure_success(service.get_todo_by_id(todo_id))


# PUBLIC_INTERFACE
@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item and return the created resource.",
    responses={
        201: {"description": "Todo created successfully"},
        400: {"description": "Validation error"},
    },
    **_ENVELOPE_ROUTE,
)
def create_todo(
    payload: TodoCreate,
    service: TodoService = Depends(_get_service),
) -> TodoResponse:
    """
    Create a new Todo. New todos always start as not completed.
    """
    return _ensure_success(service.create_todo(payload))


def _update(todo_id: int, payload: Optional[TodoUpdate], service: TodoService) -> TodoResponse:
    return _ensure_success(service.update_todo(todo_id, payload or TodoUpdate()))


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    summary="Update Todo",
    description=(
        "Update a Todo item. Same partial semantics as PATCH: only the fields "
        "present in the body are changed."
    ),
    responses={
        200: {"description": "Todo updated"},
        400: {"description": "Validation error"},
        404: {"description": "Todo not found"},
    },
    **_ENVELOPE_ROUTE,
)
def put_todo(
    todo_id: TodoId,
    payload: Optional[TodoUpdate] = Body(default=None),
    service: TodoService = Depends(_get_service),
) -> TodoResponse:
    return _update(todo_id, payload, service)


# PUBLIC_INTERFACE
@router.patch(
    "/{todo_id}",
    summary="Partially Update Todo",
    description="Partially update fields of a Todo item.",
    responses={
        200: {"description": "Todo updated"},
        400: {"description": "Validation error"},
        404: {"description": "Todo not found"},
    },
    **_ENVELOPE_ROUTE,
)
def patch_todo(
    todo_id: TodoId,
    payload: Optional[TodoUpdate] = Body(default=None),
    service: TodoService = Depends(_get_service),
) -> TodoResponse:
    """
    Partial update of a Todo item.
    """
    return _update(todo_id, payload, service)


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    summary="Delete Todo",
    description="Delete a Todo item by ID.",
    responses={
        200: {"description": "Todo deleted"},
        400: {"description": "Invalid todo ID"},
        404: {"description": "Todo not found"},
    },
    **_ENVELOPE_ROUTE,
)
def delete_todo(
    todo_id: TodoId,
    service: TodoService = Depends(_get_service),
) -> TodoResponse:
    """
    Delete a Todo. Returns 200 with a message on success, 404 if not found.
    """
    return _ensure_success(service.delete_todo(todo_id))
