"""Todo service with business logic."""

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError, ValidationError_
from ..core.logging import get_logger
from ..core.tags import unique_tag_names
from ..models import Todo
from ..models.base import utc_now
from ..models.todo import TITLE_MAX_LENGTH
from ..repositories import TagRepository, TodoFilter, TodoRepository

logger = get_logger(__name__)

# Поля задачи, которые можно менять через update_todo()
UPDATABLE_FIELDS = frozenset({"title", "description", "due_date", "completed"})


class TodoService:
    """
    Сервис для работы с задачами и их тегами.

    Теги задаются именами: сервис нормализует их, находит или создаёт
    теги и управляет связями todo_tags. Повторы в списке имён
    (в том числе "Urgent" и "urgent") схлопываются в один тег.
    """

    def __init__(self, db: AsyncSession, prune_unused_tags: bool = False):
        """
        Инициализация сервиса с несколькими репозиториями.

        Args:
            db: Сессия БД
            prune_unused_tags: Удалять тег, когда от него отвязана последняя задача
        """
        self.db = db
        self.todo_repo = TodoRepository(db)
        self.tag_repo = TagRepository(db)
        self.prune_unused_tags = prune_unused_tags

    async def create_todo(
        self,
        title: str,
        description: str | None = None,
        due_date: datetime | None = None,
        completed: bool = False,
        tag_names: list[str] | None = None,
    ) -> Todo:
        """
        Создать новую задачу с тегами.

        Args:
            title: Название задачи (1-100 символов)
            description: Описание
            due_date: Дедлайн
            completed: Выполнена ли задача
            tag_names: Имена тегов; отсутствующие теги создаются

        Returns:
            Созданная задача с тегами в порядке tag_names

        Raises:
            ValidationError_: Если название пустое
            TagNameError: Если имя тега недопустимо

        Все имена тегов проверяются ДО вставки задачи, чтобы при ошибке
        в БД ничего не осталось.
        """
        self._validate_title(title)
        names = unique_tag_names(tag_names or [])

        todo = Todo(
            title=title,
            description=description,
            due_date=due_date,
            completed=completed,
        )
        todo = await self.todo_repo.create(todo)

        await self._attach_tags(todo.id, names)

        logger.info("Todo created", extra={"todo_id": todo.id, "tags": names})
        return await self.get_todo(todo.id)

    async def get_todo(self, todo_id: str) -> Todo:
        """
        Получить задачу с тегами.

        Raises:
            NotFoundError: Если задача не найдена
        """
        todo = await self.todo_repo.get_by_id_full(todo_id)
        if not todo:
            raise NotFoundError("Todo", todo_id)
        return todo

    async def list_todos(self, filters: TodoFilter) -> list[Todo]:
        """
        Получить задачи по фильтру (см. repositories/filters.py).

        Сначала новые; limit/offset применяются после фильтрации.
        """
        return await self.todo_repo.get_filtered(filters)

    async def update_todo(self, todo_id: str, changes: dict[str, Any]) -> Todo:
        """
        Частичное обновление задачи.

        Args:
            todo_id: ID задачи
            changes: Только переданные клиентом поля (PATCH семантика).
                Ключ "tags" (список имён) ЗАМЕНЯЕТ весь набор тегов,
                пустой список снимает все теги. Без ключа "tags"
                теги не трогаются.

        Raises:
            NotFoundError: Если задача не найдена
            ValidationError_: Если title пустой или null
            TagNameError: Если имя тега недопустимо
        """
        if not await self.todo_repo.exists(todo_id):
            raise NotFoundError("Todo", todo_id)

        fields = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
        if "title" in fields:
            self._validate_title(fields["title"])
        if "completed" in fields and fields["completed"] is None:
            raise ValidationError_(
                "Completed flag cannot be null",
                details=[{"field": "completed", "message": "Completed flag cannot be null"}],
            )

        names = None
        if "tags" in changes:
            if changes["tags"] is None:
                raise ValidationError_(
                    "Tags must be an array",
                    details=[{"field": "tags", "message": "Tags must be an array"}],
                )
            names = unique_tag_names(changes["tags"])

        fields["updated_at"] = utc_now()
        await self.todo_repo.update(todo_id, **fields)

        if names is not None:
            await self._replace_tags(todo_id, names)

        return await self.get_todo(todo_id)

    async def delete_todo(self, todo_id: str) -> None:
        """
        Удалить задачу.

        Связи с тегами удаляются каскадно, сами теги остаются
        (даже если больше не используются).

        Raises:
            NotFoundError: Если задача не найдена
        """
        deleted = await self.todo_repo.delete(todo_id)
        if not deleted:
            raise NotFoundError("Todo", todo_id)

        logger.info("Todo deleted", extra={"todo_id": todo_id})

    async def add_tags(self, todo_id: str, tag_names: list[str]) -> Todo:
        """
        Добавить теги к задаче, не трогая существующие.

        Идемпотентно: уже привязанный тег не дублируется и не вызывает ошибку.

        Raises:
            NotFoundError: Если задача не найдена
            ValidationError_: Если список пуст
            TagNameError: Если имя тега недопустимо
        """
        if not tag_names:
            raise ValidationError_(
                "At least one tag name is required",
                details=[{"field": "tagNames", "message": "At least one tag name is required"}],
            )

        names = unique_tag_names(tag_names, field="tagNames")

        if not await self.todo_repo.exists(todo_id):
            raise NotFoundError("Todo", todo_id)

        await self._attach_tags(todo_id, names)
        return await self.get_todo(todo_id)

    async def remove_tag(self, todo_id: str, tag_id: str) -> None:
        """
        Отвязать тег от задачи.

        Три разные причины 404 (для клиента одинаковые):
        1. Задача не найдена
        2. Тег не найден
        3. Тег не привязан к задаче

        Если включён prune_unused_tags, тег без задач удаляется.
        """
        if not await self.todo_repo.exists(todo_id):
            raise NotFoundError("Todo", todo_id)

        if not await self.tag_repo.exists(tag_id):
            raise NotFoundError("Tag", tag_id)

        removed = await self.todo_repo.remove_tag(todo_id, tag_id)
        if not removed:
            raise NotFoundError(
                "Tag association",
                message=f"Tag {tag_id} is not attached to todo {todo_id}",
            )

        if self.prune_unused_tags and await self.tag_repo.delete_if_unused(tag_id):
            logger.info("Unused tag pruned", extra={"tag_id": tag_id})

    # Вспомогательные методы (private)

    async def _attach_tags(self, todo_id: str, names: Iterable[str]) -> None:
        """Найти или создать теги и привязать их к задаче по порядку."""
        for name in names:
            tag, created = await self.tag_repo.find_or_create(name)
            if created:
                logger.debug("Tag created", extra={"tag_id": tag.id, "tag_name": name})
            await self.todo_repo.add_tag(todo_id, tag.id)

    async def _replace_tags(self, todo_id: str, names: list[str]) -> None:
        """
        Заменить весь набор тегов задачи.

        Удаление старых связей и создание новых - в одном SAVEPOINT:
        при ошибке откатываются оба шага, и снаружи никто не увидит
        задачу без тегов.
        """
        async with self.db.begin_nested():
            await self.todo_repo.clear_tags(todo_id)
            await self._attach_tags(todo_id, names)

    @staticmethod
    def _validate_title(title: str | None) -> None:
        """Название обязательно и не длиннее TITLE_MAX_LENGTH."""
        if title is None or not title.strip():
            raise ValidationError_(
                "Title cannot be empty",
                details=[{"field": "title", "message": "Title cannot be empty"}],
            )
        if len(title) > TITLE_MAX_LENGTH:
            raise ValidationError_(
                f"Title must be at most {TITLE_MAX_LENGTH} characters",
                details=[
                    {
                        "field": "title",
                        "message": f"Title must be at most {TITLE_MAX_LENGTH} characters",
                    }
                ],
            )
