"""Tag service with business logic."""

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError
from ..core.logging import get_logger
from ..core.tags import canonical_tag_name
from ..models import Tag
from ..repositories import TagRepository

logger = get_logger(__name__)


class TagService:
    """
    Сервис для работы с тегами.

    Бизнес-правила:
    1. Имя тега хранится в каноническом виде (trim + lowercase)
    2. Имя уникально: "Urgent" и "  urgent " - один и тот же тег
    3. Допустимы только латиница, цифры, японские символы, "-" и "_"
    4. Длина имени 1-20 символов
    """

    def __init__(self, db: AsyncSession):
        """Инициализация сервиса."""
        self.db = db
        self.tag_repo = TagRepository(db)

    async def create_tag(self, name: str) -> tuple[Tag, bool]:
        """
        Создать тег или вернуть существующий с тем же каноническим именем.

        Args:
            name: Название тега в любом регистре, с пробелами по краям

        Returns:
            (тег, created) - created=False, если такой тег уже был

        Raises:
            TagNameError: Если имя недопустимо
        """
        normalized_name = canonical_tag_name(name)

        tag, created = await self.tag_repo.find_or_create(normalized_name)
        if created:
            logger.info("Tag created", extra={"tag_id": tag.id, "tag_name": tag.name})

        return tag, created

    async def get_tag(self, tag_id: str) -> Tag:
        """
        Получить тег по ID.

        Raises:
            NotFoundError: Если тег не найден
        """
        tag = await self.tag_repo.get_by_id(tag_id)
        if not tag:
            raise NotFoundError("Tag", tag_id)
        return tag

    async def get_tags_with_counts(self) -> list[tuple[Tag, int]]:
        """
        Все теги с количеством задач, по алфавиту.

        Пример:
            [(Tag('urgent'), 3), (Tag('work'), 0), (Tag('重要'), 1)]
        """
        return await self.tag_repo.list_with_counts()

    async def delete_tag(self, tag_id: str) -> None:
        """
        Удалить тег.

        Связи с задачами удаляются каскадно (ON DELETE CASCADE),
        сами задачи остаются.

        Raises:
            NotFoundError: Если тег не найден
        """
        tag = await self.get_tag(tag_id)
        await self.tag_repo.delete(tag_id)
        logger.info("Tag deleted", extra={"tag_id": tag_id, "tag_name": tag.name})
