"""
Доменные исключения приложения.

Сервисы выбрасывают эти исключения, а обработчики из api/errors.py
превращают их в HTTP ответы единого формата:

    {"error": {"code": "NOT_FOUND", "message": "...", "details": null}}

Иерархия:
    APIError
    ├── NotFoundError        404  задача / тег / связь не найдены
    ├── ConflictError        409  нарушение уникальности, которое не удалось разрешить
    └── ValidationError_     400  некорректные входные данные
        └── TagNameError     400  недопустимое имя тега (с машиночитаемой причиной)
"""

from enum import Enum

from fastapi import status


class APIError(Exception):
    """
    Базовый класс для всех API ошибок.

    Использование:
        raise APIError(
            code="NOT_FOUND",
            message="Todo not found",
            status_code=404
        )
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: list[dict] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class NotFoundError(APIError):
    """
    Ресурс не найден (404).

    Использование:
        raise NotFoundError("Todo", "3f2a...")
        # Сообщение: "Todo with id=3f2a... not found"
    """

    def __init__(self, resource: str, resource_id: str | None = None, message: str | None = None):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            code="NOT_FOUND",
            message=message or f"{resource} with id={resource_id} not found",
            status_code=status.HTTP_404_NOT_FOUND,
        )


class ConflictError(APIError):
    """Нарушение уникальности, которое не удалось разрешить повтором (409)."""

    def __init__(self, message: str, details: list[dict] | None = None):
        super().__init__(
            code="CONFLICT",
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
        )


class ValidationError_(APIError):
    """
    Ошибка валидации бизнес-логики (400).

    Подчёркивание в имени - чтобы не путать с pydantic.ValidationError.

    Использование:
        raise ValidationError_("Title cannot be empty", details=[{"field": "title", ...}])
    """

    def __init__(
        self, message: str, details: list[dict] | None = None, code: str = "VALIDATION_ERROR"
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class TagNameReason(str, Enum):
    """Машиночитаемая причина, по которой имя тега отклонено."""

    EMPTY = "empty"
    TOO_LONG = "too_long"
    INVALID_CHARACTERS = "invalid_characters"


class TagNameError(ValidationError_):
    """
    Недопустимое имя тега (400).

    Атрибуты:
        name: нормализованное имя, которое не прошло проверку
        reason: TagNameReason - что именно не так
    """

    def __init__(self, name: str, reason: TagNameReason, message: str, field: str = "name"):
        self.name = name
        self.reason = reason
        super().__init__(
            message=message,
            code="INVALID_TAG_NAME",
            details=[{"field": field, "message": message, "reason": reason.value}],
        )
