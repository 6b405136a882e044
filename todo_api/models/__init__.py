"""SQLAlchemy models for the todo application."""

from .base import Base, IdMixin, TimestampMixin
from .tag import Tag
from .todo import Todo
from .todo_tag import todo_tags

__all__ = [
    "Base",
    "IdMixin",
    "TimestampMixin",
    "Tag",
    "Todo",
    "todo_tags",
]
