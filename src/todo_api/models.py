from __future__ import annotations

from typing import TypedDict


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A Todo record exactly as it is kept in memory and written to the JSON file.

    Keys mirror the on-disk format, hence the camelCase timestamps.

    Fields:
    - id: Unique positive integer, assigned by the store (max id + 1)
    - title: Short title (>= 3 chars, trimmed on input via schemas)
    - body: Free text body (non-empty, trimmed on input via schemas)
    - completed: Boolean completion flag
    - createdAt: ISO-8601 UTC creation timestamp, never changes
    - updatedAt: ISO-8601 UTC timestamp of the last mutation
    """

    id: int
    title: str
    body: str
    completed: bool
    createdAt: str
    updatedAt: str
