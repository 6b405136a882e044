"""Core application components."""

from .config import Settings, settings
from .database import Database, create_engine, session_scope

__all__ = [
    "settings",
    "Settings",
    "Database",
    "create_engine",
    "session_scope",
]
