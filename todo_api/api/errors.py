"""
Обработчики ошибок (Exception Handlers) для API.

Зачем нужны exception handlers?
1. Единый формат ошибок для всего API
2. Перехват ошибок Pydantic и преобразование в наш формат (400, а не 422)
3. Логирование ошибок
4. Скрытие внутренних деталей от клиента

Сами исключения живут в core/exceptions.py - их выбрасывают сервисы.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.exceptions import APIError
from ..core.logging import get_logger
from .schemas import ErrorBody, ErrorDetail, ErrorResponse

logger = get_logger(__name__)

# Коды для ошибок, которые FastAPI/Starlette выбрасывают сами
_HTTP_ERROR_CODES = {
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}

# Первый элемент loc у ошибок FastAPI - откуда пришло значение
_LOCATION_PREFIXES = {"body", "query", "path", "header"}


def error_response(
    status_code: int, code: str, message: str, details: list[ErrorDetail] | None = None
) -> JSONResponse:
    """Собрать JSONResponse в формате ErrorResponse."""
    body = ErrorResponse(error=ErrorBody(code=code, message=message, details=details))
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """
    Обработчик для доменных ошибок (APIError и наследники).

    NotFoundError -> 404, ConflictError -> 409, ValidationError_ -> 400.
    """
    logger.warning(
        "API error",
        extra={"code": exc.code, "error_message": exc.message, "path": request.url.path},
    )

    details = None
    if exc.details:
        details = [
            ErrorDetail(field=d["field"], message=d["message"], reason=d.get("reason"))
            for d in exc.details
        ]

    return error_response(exc.status_code, exc.code, exc.message, details)


def _field_name(loc: tuple | list) -> str:
    """
    ("body", "tags", 0) -> "tags.0"
    ("query", "tagsMode") -> "tagsMode"
    """
    parts = list(loc)
    if len(parts) > 1 and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(str(p) for p in parts) if parts else "unknown"


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Обработчик для ошибок валидации запроса.

    Pydantic возвращает ошибки в своём формате:
    [{"type": "string_too_long", "loc": ["body", "title"], "msg": "..."}]

    Мы преобразуем это в наш формат:
    {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": [{"field": "title", "message": "...", "reason": "string_too_long"}]
        }
    }
    """
    errors = exc.errors()
    logger.warning("Validation error", extra={"path": request.url.path, "errors": len(errors)})

    details = [
        ErrorDetail(
            field=_field_name(error.get("loc", ())),
            message=error.get("msg", "Invalid value"),
            reason=error.get("type"),
        )
        for error in errors
    ]

    return error_response(
        status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "Request validation failed", details
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """HTTPException (401 от verify_api_key, 404 неизвестного пути) в едином формате."""
    code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    response = error_response(exc.status_code, code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Нарушение ограничения БД, которое не обработал сервис (409)."""
    logger.warning(
        "Integrity error", extra={"path": request.url.path, "error": str(exc.orig)}
    )
    return error_response(
        status.HTTP_409_CONFLICT, "CONFLICT", "Request conflicts with existing data"
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Обработчик для всех остальных ошибок (500).

    Клиент не видит stack trace: детали только в логе.
    """
    logger.error(
        f"Internal Error: {type(exc).__name__}: {exc}",
        extra={"path": request.url.path},
        exc_info=exc,
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "Internal server error"
    )


def register_error_handlers(app: FastAPI) -> None:
    """
    Регистрирует все error handlers в приложении FastAPI.

    Вызывается из main.py:
        from .api.errors import register_error_handlers
        register_error_handlers(app)
    """
    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_error_handler)

    logger.debug("Error handlers registered")
