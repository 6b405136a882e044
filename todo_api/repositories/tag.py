"""Tag repository with specific queries."""

from sqlalchemy import delete, exists, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError
from ..core.logging import get_logger
from ..models import Tag, todo_tags
from .base import BaseRepository

logger = get_logger(__name__)

# Сколько раз пытаться вставить тег, прежде чем сдаться с ConflictError
TAG_CREATE_ATTEMPTS = 3


class TagRepository(BaseRepository[Tag]):
    """
    Репозиторий для работы с тегами.

    Все методы принимают УЖЕ нормализованные имена (см. core/tags.py).
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Tag, db)

    async def get_by_name(self, name: str) -> Tag | None:
        """
        Получить тег по каноническому имени.

        SQL эквивалент:
            SELECT * FROM tags WHERE name = {name};
        """
        result = await self.db.execute(select(Tag).where(Tag.name == name))
        return result.scalar_one_or_none()

    async def find_or_create(self, name: str) -> tuple[Tag, bool]:
        """
        Получить тег по имени или создать, если не существует.

        Args:
            name: Каноническое имя тега

        Returns:
            (тег, created) - created=True, если тег создан этим вызовом

        Гонка двух запросов, создающих один и тот же тег:
            A: SELECT → нет            B: SELECT → нет
            A: INSERT → ok             B: INSERT → IntegrityError (UNIQUE name)
                                       B: ROLLBACK TO SAVEPOINT, SELECT → тег A

        INSERT выполняется внутри SAVEPOINT (begin_nested), поэтому
        проигравший откатывает только свою вставку, а не всю транзакцию
        запроса. Уникальный индекс на name - единственный источник истины,
        блокировок нет.
        """
        for attempt in range(1, TAG_CREATE_ATTEMPTS + 1):
            tag = await self.get_by_name(name)
            if tag is not None:
                return tag, False

            tag = Tag(name=name)
            try:
                async with self.db.begin_nested():
                    self.db.add(tag)
            except IntegrityError:
                logger.info(
                    "Tag insert lost a race, re-fetching",
                    extra={"tag_name": name, "attempt": attempt},
                )
                continue

            return tag, True

        raise ConflictError(f"Could not create tag '{name}' after {TAG_CREATE_ATTEMPTS} attempts")

    async def list_with_counts(self) -> list[tuple[Tag, int]]:
        """
        Все теги с количеством задач, отсортированные по имени.

        Returns:
            Список кортежей (тег, количество_задач); неиспользуемые теги - с 0

        SQL эквивалент:
            SELECT tags.*, COUNT(todo_tags.todo_id) AS usage_count
            FROM tags
            LEFT JOIN todo_tags ON tags.id = todo_tags.tag_id
            GROUP BY tags.id
            ORDER BY tags.name ASC;
        """
        usage_count = func.count(todo_tags.c.todo_id).label("usage_count")
        result = await self.db.execute(
            select(Tag, usage_count)
            .outerjoin(todo_tags, Tag.id == todo_tags.c.tag_id)
            .group_by(Tag.id)
            .order_by(Tag.name.asc())
        )
        return [(row[0], row[1]) for row in result.all()]

    async def delete_if_unused(self, tag_id: str) -> bool:
        """
        Удалить тег, только если он не привязан ни к одной задаче.

        Проверка и удаление - один SQL запрос, поэтому тег, к которому
        параллельно привязали задачу, не удалится.

        SQL эквивалент:
            DELETE FROM tags
            WHERE id = {tag_id}
              AND NOT EXISTS (SELECT 1 FROM todo_tags WHERE tag_id = {tag_id});

        Returns:
            True если тег удалён
        """
        in_use = exists().where(todo_tags.c.tag_id == tag_id)
        result = await self.db.execute(delete(Tag).where(Tag.id == tag_id, ~in_use))
        return result.rowcount > 0

