"""
API endpoints для работы с тегами.

Имена тегов нормализуются (trim + lowercase), поэтому
"Urgent", "URGENT" и "  urgent " - один и тот же тег.
"""

from fastapi import APIRouter, Depends, Response, status

from ..services import TagService
from .dependencies import get_tag_service
from .schemas import ErrorResponse, TagCreate, TagResponse, TagWithCount

router = APIRouter(prefix="/tags", tags=["tags"])


# ============================================================================
# GET ALL TAGS
# ============================================================================


@router.get(
    "",
    response_model=list[TagWithCount],
    summary="Получить все теги",
    description="Все теги с количеством задач, по алфавиту.",
)
async def get_tags(service: TagService = Depends(get_tag_service)) -> list[TagWithCount]:
    """
    Пример ответа:
    ```json
    [
        {"id": "...", "name": "urgent", "count": 3},
        {"id": "...", "name": "work", "count": 0}
    ]
    ```
    """
    rows = await service.get_tags_with_counts()
    return [TagWithCount(id=tag.id, name=tag.name, count=count) for tag, count in rows]


# ============================================================================
# CREATE TAG
# ============================================================================


@router.post(
    "",
    response_model=TagResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Создать тег",
    description="""
    Создать тег или вернуть существующий.

    - 201: тег создан
    - 200: тег с таким же нормализованным именем уже был, возвращаем его
    """,
    responses={
        200: {"model": TagResponse, "description": "Тег уже существовал"},
        400: {"model": ErrorResponse, "description": "Недопустимое имя тега"},
    },
)
async def create_tag(
    data: TagCreate,
    response: Response,
    service: TagService = Depends(get_tag_service),
) -> TagResponse:
    """
    Пример запроса:
    ```json
    {"name": "重要"}
    ```
    """
    tag, created = await service.create_tag(data.name)
    if not created:
        response.status_code = status.HTTP_200_OK
    return TagResponse.model_validate(tag)


# ============================================================================
# DELETE TAG
# ============================================================================


@router.delete(
    "/{tag_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Удалить тег",
    description="Удалить тег. Связи с задачами удаляются, сами задачи остаются.",
    responses={404: {"model": ErrorResponse, "description": "Тег не найден"}},
)
async def delete_tag(tag_id: str, service: TagService = Depends(get_tag_service)) -> None:
    await service.delete_tag(tag_id)
