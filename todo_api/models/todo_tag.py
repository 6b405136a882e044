"""Todo-Tag junction table."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Table

from .base import ID_LENGTH, Base, utc_now

# Many-to-many junction table for todos and tags
# Удаление задачи или тега удаляет связь (CASCADE), но не второй объект
todo_tags = Table(
    "todo_tags",
    Base.metadata,
    Column(
        "todo_id",
        String(ID_LENGTH),
        ForeignKey("todos.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        String(ID_LENGTH),
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    # Порядок тега внутри задачи (0, 1, 2, ...)
    Column("position", Integer, nullable=False, default=0),
    Column("created_at", DateTime, default=utc_now, nullable=False),
    Index("ix_todo_tags_tag_id", "tag_id"),
)
