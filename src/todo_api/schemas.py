from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_core import PydanticCustomError

TITLE_MIN_LENGTH = 3


def _title_too_short() -> PydanticCustomError:
    return PydanticCustomError(
        "title_too_short", f"Title must be at least {TITLE_MIN_LENGTH} characters long"
    )


def _body_empty() -> PydanticCustomError:
    return PydanticCustomError("body_empty", "Body cannot be empty")


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Schema for creating a new Todo item.

    Title and body are trimmed; the trimmed values are what gets stored.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Learn FastAPI",
                "body": "Build a small CRUD service backed by a JSON file",
            }
        }
    )

    title: str = Field(..., description="Short title for the todo item (at least 3 characters)")
    body: str = Field(..., description="Body/description of the todo item")

    @model_validator(mode="before")
    @classmethod
    def check_title_and_body(cls, data: Any) -> Any:
        """
        Apply the create rules in order: both present, both strings,
        title >= 3 chars trimmed, body non-empty trimmed.
        """
        if not isinstance(data, dict):
            return data
        title, body = data.get("title"), data.get("body")
        if not title or not body:
            raise PydanticCustomError("missing_fields", "Title and body are required")
        if not isinstance(title, str) or not isinstance(body, str):
            raise PydanticCustomError("not_strings", "Title and body must be strings")
        if len(title.strip()) < TITLE_MIN_LENGTH:
            raise _title_too_short()
        if not body.strip():
            raise _body_empty()
        return {**data, "title": title.strip(), "body": body.strip()}


# PUBLIC_INTERFACE
class TodoUpdate(BaseModel):
    """
    Schema for updating an existing Todo item.
    All fields are optional; only provided fields will be updated.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Learn FastAPI properly",
                "completed": True,
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Short title for the todo item")
    body: Optional[str] = Field(default=None, description="Body/description of the todo item")
    completed: Optional[bool] = Field(default=None, description="Completion status flag")

    @model_validator(mode="before")
    @classmethod
    def check_provided_fields(cls, data: Any) -> Any:
        """
        Validate and trim whichever of title/body/completed were sent.
        """
        if not isinstance(data, dict):
            return data
        cleaned = dict(data)
        if "title" in data:
            title = data["title"]
            if not isinstance(title, str) or len(title.strip()) < TITLE_MIN_LENGTH:
                raise _title_too_short()
            cleaned["title"] = title.strip()
        if "body" in data:
            body = data["body"]
            if not isinstance(body, str) or not body.strip():
                raise _body_empty()
            cleaned["body"] = body.strip()
        if "completed" in data and not isinstance(data["completed"], bool):
            raise PydanticCustomError("completed_not_bool", "Completed must be a boolean")
        return cleaned


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "Learn FastAPI",
                "body": "Build a small CRUD service backed by a JSON file",
                "completed": False,
                "createdAt": "2025-01-20T10:30:00.000000Z",
                "updatedAt": "2025-01-20T10:30:00.000000Z",
            }
        },
    )

    id: int = Field(..., description="Unique identifier of the todo item")
    title: str = Field(..., description="Short title for the todo item")
    body: str = Field(..., description="Body/description of the todo item")
    completed: bool = Field(..., description="Completion status flag")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp")
    updated_at: Optional[datetime] = Field(
        default=None, alias="updatedAt", description="Last update timestamp"
    )


class TodoStats(BaseModel):
    total: int = Field(..., description="Number of todos")
    completed: int = Field(..., description="Number of completed todos")
    pending: int = Field(..., description="Number of todos not yet completed")


TodoData = Union[TodoOut, List[TodoOut], TodoStats]


# PUBLIC_INTERFACE
class TodoResponse(BaseModel):
    """
    Uniform envelope returned by every service operation.

    ``kind`` classifies failures ("not_found", "invalid", "failed") for the HTTP
    layer and is never serialized.
    """

    success: bool
    data: Optional[TodoData] = None
    message: Optional[str] = None
    error: Optional[str] = None
    kind: Optional[str] = Field(default=None, exclude=True)


class PaginationInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int = Field(..., description="Current page (1-based)")
    limit: int = Field(..., description="Page size")
    total: int = Field(..., description="Total number of todos")
    total_pages: int = Field(..., alias="totalPages", description="ceil(total / limit)")


class PaginatedTodoResponse(BaseModel):
    """
    Envelope for paginated list responses.
    """

    success: bool = True
    data: List[TodoOut] = Field(..., description="Todos on the requested page")
    pagination: PaginationInfo


class HealthOut(BaseModel):
    success: bool = True
    message: str
    timestamp: str = Field(..., description="Current server time, ISO-8601")
    uptime: float = Field(..., description="Seconds since the application started")
