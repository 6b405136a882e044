"""
API endpoints для работы с задачами.

- CRUD операции
- Фильтрация по статусу, тексту и тегам (AND/OR)
- Управление тегами задачи
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query, Response, status

from ..repositories import TagsMode, TodoFilter
from ..services import TodoService
from .dependencies import get_todo_service
from .schemas import (
    AddTagsRequest,
    ErrorResponse,
    MessageResponse,
    TodoCreate,
    TodoResponse,
    TodoUpdate,
)

router = APIRouter(prefix="/todos", tags=["todos"])

NOT_FOUND_RESPONSE = {404: {"model": ErrorResponse, "description": "Задача не найдена"}}
VALIDATION_RESPONSE = {400: {"model": ErrorResponse, "description": "Ошибка валидации"}}


# ============================================================================
# GET ALL TODOS (с фильтрацией и пагинацией)
# ============================================================================


@router.get(
    "",
    response_model=list[TodoResponse],
    summary="Получить задачи с фильтрами",
    description="""
    **Фильтры** (комбинируются через AND):
    - completed: true / false
    - q: подстрока в названии или описании (без учёта регистра)
    - tags: имена тегов через запятую
    - tagsMode: and (все теги) / or (хотя бы один), по умолчанию or

    **Пагинация:** limit, offset.
    Сортировка: сначала новые.
    """,
    responses=VALIDATION_RESPONSE,
)
async def get_todos(
    completed: Literal["true", "false"] | None = Query(
        None, description="Фильтр по выполненности: true / false"
    ),
    q: str | None = Query(None, description="Поиск по названию и описанию"),
    tags: str | None = Query(None, description="Теги через запятую: urgent,work"),
    tags_mode: TagsMode = Query(TagsMode.OR, alias="tagsMode", description="and / or"),
    limit: int | None = Query(None, ge=0, description="Максимум записей"),
    offset: int = Query(0, ge=0, description="Пропустить N записей"),
    service: TodoService = Depends(get_todo_service),
) -> list[TodoResponse]:
    """
    Примеры запросов:
    ```
    GET /api/todos?completed=false
    GET /api/todos?tags=urgent,work&tagsMode=and
    GET /api/todos?q=отчёт&limit=10&offset=10
    ```
    """
    filters = TodoFilter.from_query(
        completed=None if completed is None else completed == "true",
        q=q,
        tags=tags,
        tags_mode=tags_mode,
        limit=limit,
        offset=offset,
    )
    todos = await service.list_todos(filters)
    return [TodoResponse.model_validate(t) for t in todos]


# ============================================================================
# CREATE TODO
# ============================================================================


@router.post(
    "",
    response_model=TodoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Создать задачу",
    description="Создать задачу. Отсутствующие теги создаются автоматически.",
    responses=VALIDATION_RESPONSE,
)
async def create_todo(
    data: TodoCreate, service: TodoService = Depends(get_todo_service)
) -> TodoResponse:
    """
    Пример запроса:
    ```json
    {
        "title": "Подготовить отчёт",
        "dueDate": "2026-11-01T09:00:00Z",
        "tags": ["Work", "urgent"]
    }
    ```
    """
    todo = await service.create_todo(
        title=data.title,
        description=data.description,
        due_date=data.due_date,
        completed=data.completed,
        tag_names=data.tags,
    )
    return TodoResponse.model_validate(todo)


# ============================================================================
# GET TODO BY ID
# ============================================================================


@router.get(
    "/{todo_id}",
    response_model=TodoResponse,
    summary="Получить задачу по ID",
    responses=NOT_FOUND_RESPONSE,
)
async def get_todo(todo_id: str, service: TodoService = Depends(get_todo_service)) -> TodoResponse:
    todo = await service.get_todo(todo_id)
    return TodoResponse.model_validate(todo)


# ============================================================================
# UPDATE TODO
# ============================================================================


@router.patch(
    "/{todo_id}",
    response_model=TodoResponse,
    summary="Обновить задачу",
    description="""
    Частичное обновление: меняются только переданные поля.

    "tags" заменяет весь набор тегов, [] снимает все теги.
    """,
    responses={**NOT_FOUND_RESPONSE, **VALIDATION_RESPONSE},
)
async def update_todo(
    todo_id: str,
    data: TodoUpdate,
    service: TodoService = Depends(get_todo_service),
) -> TodoResponse:
    """
    Пример запроса:
    ```json
    {"completed": true, "tags": ["done"]}
    ```
    """
    todo = await service.update_todo(todo_id, data.model_dump(exclude_unset=True))
    return TodoResponse.model_validate(todo)


# ============================================================================
# DELETE TODO
# ============================================================================


@router.delete(
    "/{todo_id}",
    response_model=MessageResponse,
    summary="Удалить задачу",
    description="Удалить задачу. Теги остаются.",
    responses=NOT_FOUND_RESPONSE,
)
async def delete_todo(
    todo_id: str, service: TodoService = Depends(get_todo_service)
) -> MessageResponse:
    await service.delete_todo(todo_id)
    return MessageResponse(message="Todo deleted successfully")


# ============================================================================
# TODO TAGS
# ============================================================================


@router.post(
    "/{todo_id}/tags",
    response_model=TodoResponse,
    summary="Добавить теги к задаче",
    description="Добавить теги по именам. Уже привязанные теги пропускаются.",
    responses={**NOT_FOUND_RESPONSE, **VALIDATION_RESPONSE},
)
async def add_tags(
    todo_id: str,
    data: AddTagsRequest,
    service: TodoService = Depends(get_todo_service),
) -> TodoResponse:
    """
    Пример запроса:
    ```json
    {"tagNames": ["urgent", "ユニークタグ"]}
    ```
    """
    todo = await service.add_tags(todo_id, data.tag_names)
    return TodoResponse.model_validate(todo)


@router.delete(
    "/{todo_id}/tags/{tag_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Отвязать тег от задачи",
    responses={404: {"model": ErrorResponse, "description": "Задача, тег или связь не найдены"}},
)
async def remove_tag(
    todo_id: str, tag_id: str, service: TodoService = Depends(get_todo_service)
) -> None:
    await service.remove_tag(todo_id, tag_id)
