"""Base repository with common CRUD operations."""

from typing import Any, Generic, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import Base

# TypeVar для Generic класса - позволяет работать с любой моделью
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Базовый репозиторий с CRUD операциями.

    Generic[ModelType] означает, что этот класс работает с любой моделью,
    наследующейся от Base и имеющей строковый id.

    Репозиторий НЕ делает commit: транзакцией управляет вызывающий код
    (get_db dependency в API, тест - в тестах).

    Пример использования:
        todo_repo = BaseRepository[Todo](Todo, db_session)
        todo = await todo_repo.get_by_id("3f2a9c1e-...")
    """

    def __init__(self, model: type[ModelType], db: AsyncSession):
        """
        Инициализация репозитория.

        Args:
            model: Класс модели SQLAlchemy (Todo, Tag)
            db: Асинхронная сессия базы данных
        """
        self.model = model
        self.db = db

    async def create(self, obj: ModelType) -> ModelType:
        """
        Создать новую запись в БД.

        Args:
            obj: Экземпляр модели для сохранения

        Returns:
            Созданный объект с заполненным id и timestamps

        Пример:
            todo = await repo.create(Todo(title="Купить молоко"))
            print(todo.id)  # "3f2a9c1e-..." (генерируется при flush)
        """
        self.db.add(obj)
        await self.db.flush()  # flush() отправляет в БД, но не commit
        await self.db.refresh(obj)  # refresh() обновляет obj данными из БД
        return obj

    async def get_by_id(self, id: str) -> ModelType | None:
        """
        Получить объект по ID.

        SQL эквивалент:
            SELECT * FROM table WHERE id = {id} LIMIT 1;
        """
        result = await self.db.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def update(self, id: str, **kwargs: Any) -> ModelType | None:
        """
        Обновить запись по ID (только переданные поля).

        Returns:
            Обновлённый объект или None, если не найден

        Пример:
            todo = await repo.update(todo_id, completed=True)
        """
        obj = await self.get_by_id(id)
        if not obj:
            return None

        for key, value in kwargs.items():
            if hasattr(obj, key):
                setattr(obj, key, value)

        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def delete(self, id: str) -> bool:
        """
        Удалить запись по ID.

        Returns:
            True если удалено, False если не найдено

        SQL эквивалент:
            DELETE FROM table WHERE id={id};
        """
        result = await self.db.execute(delete(self.model).where(self.model.id == id))
        return result.rowcount > 0  # rowcount - количество затронутых строк

    async def exists(self, id: str) -> bool:
        """
        Проверить существование записи.

        SQL эквивалент:
            SELECT EXISTS(SELECT 1 FROM table WHERE id={id});
        """
        query = select(self.model.id).where(self.model.id == id).exists()
        result = await self.db.execute(select(query))
        return bool(result.scalar())
