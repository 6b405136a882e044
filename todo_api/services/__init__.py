"""Service layer with business logic."""

from .tag import TagService
from .todo import TodoService

__all__ = [
    "TagService",
    "TodoService",
]
