"""Tag model."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, IdMixin, utc_now

NAME_MAX_LENGTH = 20


class Tag(Base, IdMixin):
    """Tag model; name is stored in canonical form (trimmed, lowercase)."""

    __tablename__ = "tags"

    # unique=True - источник истины для find-or-create при гонках
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name='{self.name}')>"
