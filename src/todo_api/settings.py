from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - TODO_DB_PATH: path to the JSON file holding all todos. Default 'db/todo.json'
    - TODO_ATOMIC_WRITES: 'true' to write via temp file + rename (default: false)
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: root log level name (default: INFO)
    - APP_ENV: deployment environment label (default: development)
    - HOST / PORT: bind address used by `python -m todo_api` (default: 0.0.0.0:5000)
    """

    db_path: str
    atomic_writes: bool = False
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    app_env: str = "development"
    host: str = "0.0.0.0"
    port: int = 5000


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


def _parse_port(value: str, default: int) -> int:
    try:
        port = int(value)
    except ValueError:
        return default
    return port if 0 < port < 65536 else default


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
        log_level = "INFO"

    return Settings(
        db_path=_get_env("TODO_DB_PATH", "db/todo.json").strip(),
        atomic_writes=_parse_bool(_get_env("TODO_ATOMIC_WRITES", "false"), False),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=log_level,
        app_env=_get_env("APP_ENV", "development").strip().lower(),
        host=_get_env("HOST", "0.0.0.0").strip(),
        port=_parse_port(_get_env("PORT", "5000"), 5000),
    )
