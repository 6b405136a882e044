"""
Pydantic схемы для API.

DTOs (Data Transfer Objects) - объекты для передачи данных через HTTP.

JSON поля в camelCase (dueDate, createdAt, tagNames) - этого ждёт
веб-клиент. В Python коде поля в snake_case, связь через alias.
populate_by_name=True - можно передавать и snake_case имя поля,
from_attributes=True - схему можно создать из SQLAlchemy модели:
    TodoResponse.model_validate(todo)
"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.todo import TITLE_MAX_LENGTH


def _to_naive_utc(value: datetime | None) -> datetime | None:
    """Даты с часовым поясом приводим к UTC без tzinfo (так хранится в БД)."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


def _reject_null_tags(value: list[str] | None) -> list[str] | None:
    """
    "tags": null - ошибка. Поле можно не передавать, но если оно есть,
    это должен быть массив. Валидатор вызывается только для переданного
    значения, default None сюда не попадает.
    """
    if value is None:
        raise ValueError("Tags must be an array")
    return value


class APIModel(BaseModel):
    """Базовая схема: camelCase alias + чтение из ORM объектов."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ============================================================================
# TAG SCHEMAS
# ============================================================================


class TagCreate(BaseModel):
    """
    Схема для создания тега (POST /api/tags).

    Пример:
    {
        "name": "  Important  "
    }

    Будет нормализовано в: "important"
    Длина и допустимые символы проверяются ПОСЛЕ нормализации в сервисе.
    """

    name: str = Field(..., description="Название тега")


class TagResponse(APIModel):
    """
    Схема для тега в ответе.

    Используется в POST /api/tags и внутри TodoResponse.
    """

    id: str
    name: str
    created_at: datetime = Field(alias="createdAt")


class TagWithCount(BaseModel):
    """
    Тег с количеством задач.

    Используется для GET /api/tags
    """

    id: str
    name: str
    count: int = Field(..., description="Количество задач с этим тегом")


# ============================================================================
# TODO SCHEMAS
# ============================================================================


class TodoCreate(APIModel):
    """
    Схема для создания задачи (POST /api/todos).

    Пример запроса:
    {
        "title": "Подготовить отчёт",
        "description": "Квартальный отчёт для отдела",
        "dueDate": "2026-11-01T09:00:00Z",
        "tags": ["Work", "urgent"]
    }
    """

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH, description="Название")
    description: str | None = Field(None, description="Описание задачи")
    due_date: datetime | None = Field(
        None, alias="dueDate", description="Дедлайн"
    )
    completed: bool = Field(False, description="Выполнена ли задача")
    tags: list[str] | None = Field(None, description="Список названий тегов")

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value: datetime | None) -> datetime | None:
        return _to_naive_utc(value)

    @field_validator("tags")
    @classmethod
    def tags_not_null(cls, value: list[str] | None) -> list[str] | None:
        return _reject_null_tags(value)


class TodoUpdate(APIModel):
    """
    Схема для обновления задачи (PATCH /api/todos/{id}).

    Все поля опциональные, меняются только переданные.
    Переданный "tags" ЗАМЕНЯЕТ все теги задачи ([] - снять все).
    """

    title: str | None = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = None
    due_date: datetime | None = Field(None, alias="dueDate")
    completed: bool | None = None
    tags: list[str] | None = None

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value: datetime | None) -> datetime | None:
        return _to_naive_utc(value)

    @field_validator("tags")
    @classmethod
    def tags_not_null(cls, value: list[str] | None) -> list[str] | None:
        return _reject_null_tags(value)


class AddTagsRequest(APIModel):
    """
    Схема для добавления тегов к задаче (POST /api/todos/{id}/tags).

    Пример:
    {
        "tagNames": ["urgent", "ユニークタグ"]
    }
    """

    tag_names: list[str] = Field(
        ...,
        min_length=1,
        alias="tagNames",
        description="Названия тегов (минимум одно)",
    )


class TodoResponse(APIModel):
    """
    Схема для ответа API (GET /api/todos/{id}).

    Пример ответа:
    {
        "id": "3f2a9c1e-...",
        "title": "Подготовить отчёт",
        "description": null,
        "dueDate": "2026-11-01T09:00:00",
        "completed": false,
        "createdAt": "2026-10-17T12:00:00",
        "updatedAt": "2026-10-17T12:00:00",
        "tags": [{"id": "...", "name": "work", "createdAt": "..."}]
    }
    """

    id: str
    title: str
    description: str | None
    due_date: datetime | None = Field(alias="dueDate")
    completed: bool
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    # Теги в порядке добавления к задаче
    tags: list[TagResponse] = []


# ============================================================================
# COMMON SCHEMAS
# ============================================================================


class ErrorDetail(BaseModel):
    """
    Детали ошибки для конкретного поля.

    Пример:
    {
        "field": "name",
        "message": "Tag name must be at most 20 characters",
        "reason": "too_long"
    }
    """

    field: str = Field(..., description="Название поля с ошибкой")
    message: str = Field(..., description="Описание ошибки")
    reason: str | None = Field(default=None, description="Машиночитаемая причина")


class ErrorBody(BaseModel):
    """
    Тело ошибки с кодом и деталями.

    Примеры кодов:
    - VALIDATION_ERROR: ошибка валидации полей
    - INVALID_TAG_NAME: недопустимое имя тега
    - NOT_FOUND: ресурс не найден
    - CONFLICT: нарушение уникальности
    - INTERNAL_ERROR: внутренняя ошибка сервера
    """

    code: str = Field(..., description="Код ошибки (VALIDATION_ERROR, NOT_FOUND, etc.)")
    message: str = Field(..., description="Человекочитаемое сообщение")
    details: list[ErrorDetail] | None = Field(
        default=None, description="Список ошибок по полям (для валидации)"
    )


class ErrorResponse(BaseModel):
    """
    Единый формат ответа для всех ошибок API.

    Пример ошибки "не найдено":
    {
        "error": {
            "code": "NOT_FOUND",
            "message": "Todo with id=... not found",
            "details": null
        }
    }
    """

    error: ErrorBody


class MessageResponse(BaseModel):
    """
    Схема для успешных операций без возврата данных.

    Пример:
    {
        "message": "Todo deleted successfully"
    }
    """

    message: str
