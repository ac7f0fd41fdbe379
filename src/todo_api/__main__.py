"""
Run the API with uvicorn.

Usage:
    python -m todo_api

HOST, PORT and LOG_LEVEL come from the environment (see settings.py).
"""
from __future__ import annotations

import uvicorn

from .settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "todo_api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
