"""Todo repository with specific queries."""

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models import Todo, todo_tags
from .base import BaseRepository
from .filters import TodoFilter, apply_filter


class TodoRepository(BaseRepository[Todo]):
    """
    Репозиторий для работы с задачами.

    Включает методы для:
    - Загрузки задачи вместе с тегами
    - Фильтрации (см. filters.py)
    - Управления связями todo_tags

    Связи пишутся напрямую в таблицу todo_tags (Core insert/delete),
    а Todo.tags - read-only relationship, поэтому после изменения тегов
    задачу нужно перечитать через get_by_id_full().
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Todo, db)

    async def get_by_id_full(self, id: str) -> Todo | None:
        """
        Получить задачу вместе с тегами (eager loading).

        populate_existing - перезаписать уже загруженный в сессию объект,
        иначе после изменения todo_tags вернётся устаревший список тегов.

        Использование:
            todo = await repo.get_by_id_full(todo_id)
            print([tag.name for tag in todo.tags])  # без дополнительного запроса
        """
        result = await self.db.execute(
            select(Todo)
            .options(selectinload(Todo.tags))
            .where(Todo.id == id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_filtered(self, filters: TodoFilter) -> list[Todo]:
        """
        Получить задачи с фильтрами и пагинацией.

        Все фильтры комбинируются через AND, сортировка - сначала новые.

        Пример:
            todos = await repo.get_filtered(
                TodoFilter(tags=["urgent", "work"], tags_mode=TagsMode.AND, limit=10)
            )
        """
        query = apply_filter(
            select(Todo).options(selectinload(Todo.tags)).execution_options(populate_existing=True),
            filters,
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def has_tag(self, todo_id: str, tag_id: str) -> bool:
        """Есть ли связь задача-тег."""
        query = (
            select(todo_tags.c.todo_id)
            .where(todo_tags.c.todo_id == todo_id, todo_tags.c.tag_id == tag_id)
            .exists()
        )
        result = await self.db.execute(select(query))
        return bool(result.scalar())

    async def _next_position(self, todo_id: str) -> int:
        """Позиция для следующего тега задачи (0 для первого)."""
        result = await self.db.execute(
            select(func.coalesce(func.max(todo_tags.c.position) + 1, 0)).where(
                todo_tags.c.todo_id == todo_id
            )
        )
        return result.scalar_one()

    async def add_tag(self, todo_id: str, tag_id: str) -> bool:
        """
        Привязать тег к задаче (идемпотентно).

        Returns:
            True если связь создана, False если она уже была

        Повторная привязка того же тега - не ошибка. Если параллельный
        запрос успел создать связь между проверкой и INSERT, составной
        первичный ключ (todo_id, tag_id) отклонит вставку, SAVEPOINT
        откатится и результат будет тем же: одна связь.
        """
        if await self.has_tag(todo_id, tag_id):
            return False

        position = await self._next_position(todo_id)
        try:
            async with self.db.begin_nested():
                await self.db.execute(
                    insert(todo_tags).values(todo_id=todo_id, tag_id=tag_id, position=position)
                )
        except IntegrityError:
            # Не дубликат (например, задачу удалили) - пробрасываем
            if not await self.has_tag(todo_id, tag_id):
                raise
            return False

        return True

    async def remove_tag(self, todo_id: str, tag_id: str) -> bool:
        """
        Отвязать тег от задачи. Сам тег не удаляется.

        Returns:
            True если связь была и удалена

        SQL эквивалент:
            DELETE FROM todo_tags WHERE todo_id = {todo_id} AND tag_id = {tag_id};
        """
        result = await self.db.execute(
            delete(todo_tags).where(todo_tags.c.todo_id == todo_id, todo_tags.c.tag_id == tag_id)
        )
        return result.rowcount > 0

    async def clear_tags(self, todo_id: str) -> int:
        """
        Отвязать все теги от задачи.

        Returns:
            Количество удалённых связей
        """
        result = await self.db.execute(delete(todo_tags).where(todo_tags.c.todo_id == todo_id))
        return result.rowcount
