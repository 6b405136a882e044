"""Todo model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IdMixin, TimestampMixin
from .todo_tag import todo_tags

TITLE_MAX_LENGTH = 100


class Todo(Base, IdMixin, TimestampMixin):
    """Todo item; tagged through the todo_tags association table."""

    __tablename__ = "todos"
    # Список задач всегда сортируется по created_at
    __table_args__ = (Index("ix_todos_created_at", "created_at"),)

    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Tags relationship (many-to-many), в порядке добавления к задаче.
    # Две параллельные привязки могут получить одну position, тогда порядок по created_at
    # viewonly: связи создаются и удаляются только через TodoRepository,
    # ON DELETE CASCADE в todo_tags убирает их при удалении задачи
    tags: Mapped[list["Tag"]] = relationship(
        "Tag",
        secondary=todo_tags,
        order_by=[todo_tags.c.position, todo_tags.c.created_at],
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<Todo(id={self.id}, title='{self.title}', completed={self.completed})>"
