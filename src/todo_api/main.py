from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Mapping, Optional, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import TodoError
from .routers import todos as todos_router
from .schemas import HealthOut
from .settings import Settings, get_settings
from .store import TodoStore

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "CRUD operations for Todo items, pagination and statistics.",
    },
]

# Messages for request parameters rejected by FastAPI's own validation
_PARAM_ERRORS = {
    ("path", "todo_id"): "Invalid todo ID",
    ("query", "page"): "Page must be greater than 0",
    ("query", "limit"): "Limit must be between 1 and 100",
}


def _error(
    status_code: int, message: str, headers: Optional[Mapping[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "error": message}, headers=headers
    )


def _validation_message(errors: Sequence[Dict[str, Any]]) -> str:
    """
    Pick a client-facing message for the first validation error.
    """
    if not errors:
        return "Request validation failed"
    first = errors[0]
    loc = tuple(first.get("loc", ()))
    if loc in _PARAM_ERRORS:
        return _PARAM_ERRORS[loc]
    if loc == ("body",) and first.get("type") == "missing":
        return "Title and body are required"
    return str(first.get("msg") or "Request validation failed")


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a 400 envelope for request validation errors.

        Response format:
            {"success": false, "error": "<first problem, human readable>"}
        """
        return _error(400, _validation_message(exc.errors()))

    @app.exception_handler(TodoError)
    async def todo_error_handler(request: Request, exc: TodoError) -> JSONResponse:
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return _error(404, "Route not found")
        # Keep headers such as Allow on 405 responses
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error")


# PUBLIC_INTERFACE
def create_app(
    settings: Optional[Settings] = None, store: Optional[TodoStore] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    The app owns one TodoStore, exposed as ``app.state.store``. It is opened on
    startup (creating the data file if missing) and closed on shutdown. A
    prebuilt ``store`` replaces the one configured from ``settings``.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if store is None:
        store = TodoStore(settings.db_path, atomic_writes=settings.atomic_writes)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        store.open()
        logger.info("Todo API started in %s mode, data file %s", settings.app_env, store.path)
        try:
            yield
        finally:
            store.close()
            logger.info("Todo API stopped")

    app = FastAPI(
        title="Todo API",
        description="CRUD API for todos, persisted to a single JSON file.",
        version="1.0.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.started_at = time.monotonic()

    # Configure CORS based on settings (CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms", request.method, request.url.path, response.status_code, elapsed_ms
        )
        return response

    _register_exception_handlers(app)

    # PUBLIC_INTERFACE
    @app.get("/health", response_model=HealthOut, summary="Health Check", tags=["health"])
    def health_check() -> HealthOut:
        """
        Health check endpoint.

        Returns:
            Server status, current time and seconds since startup.
        """
        return HealthOut(
            success=True,
            message="Server is healthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
            uptime=time.monotonic() - app.state.started_at,
        )

    @app.get("/", summary="Welcome", tags=["health"])
    def welcome() -> Dict[str, Any]:
        return {
            "success": True,
            "message": "Welcome to Todo API",
            "documentation": "/docs",
            "endpoints": {"todos": "/api/todos", "health": "/health"},
        }

    app.include_router(todos_router.router)
    return app


app = create_app()
