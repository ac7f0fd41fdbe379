"""
Todo API package.

A FastAPI service exposing CRUD endpoints for todos, persisted to a single
JSON file. Build an application with ``todo_api.main.create_app`` or use the
module-level ``todo_api.main.app``.
"""

__version__ = "1.0.0"
