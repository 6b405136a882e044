"""Repository layer for data access."""

from .base import BaseRepository
from .filters import TagsMode, TodoFilter
from .tag import TagRepository
from .todo import TodoRepository

__all__ = [
    "BaseRepository",
    "TagRepository",
    "TodoRepository",
    "TodoFilter",
    "TagsMode",
]
