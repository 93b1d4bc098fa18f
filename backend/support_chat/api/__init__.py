"""API module - FastAPI route handlers."""

from . import chat_routes, inbox_routes

__all__ = ["chat_routes", "inbox_routes"]
