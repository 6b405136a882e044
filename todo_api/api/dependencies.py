"""
Dependencies для FastAPI endpoints.

Вместо того чтобы создавать сервисы вручную в каждом endpoint:
    async def create_todo(...):
        async with db.session() as session:
            service = TodoService(session)
            ...

Мы используем FastAPI Depends():
    async def create_todo(
        service: TodoService = Depends(get_todo_service)
    ):
        ...

Цепочка зависимостей:
    get_todo_service -> get_db -> request.app.state.db (создаётся в lifespan)

В тестах get_db подменяется через app.dependency_overrides.
"""

from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import Database, session_scope
from ..services import TagService, TodoService

# ============================================================================
# API KEY AUTHENTICATION
# ============================================================================

api_key_header = APIKeyHeader(
    name="X-API-Key",
    auto_error=False,  # ошибку формируем сами
    description="API ключ. Нужен только если задан API_KEY в настройках",
)


async def verify_api_key(api_key: str | None = Depends(api_key_header)) -> str | None:
    """
    Проверка API ключа из заголовка X-API-Key.

    Если API_KEY в настройках не задан - авторизация выключена
    и запрос проходит без заголовка.

    Пример запроса:
        curl -H "X-API-Key: your-secret-key" http://localhost:8787/api/todos
    """
    if settings.API_KEY is None:
        return None

    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key is missing. Add header: X-API-Key: your-key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if api_key != settings.API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return api_key


# ============================================================================
# DATABASE SESSION DEPENDENCY
# ============================================================================


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Сессия БД на время запроса.

    Один запрос = одна транзакция: commit при успехе,
    rollback при любой ошибке (ничего не остаётся наполовину).
    """
    database: Database = request.app.state.db
    async with session_scope(database) as session:
        yield session


# ============================================================================
# SERVICE DEPENDENCIES
# ============================================================================


async def get_tag_service(db: AsyncSession = Depends(get_db)) -> TagService:
    """Dependency для TagService."""
    return TagService(db)


async def get_todo_service(db: AsyncSession = Depends(get_db)) -> TodoService:
    """
    Dependency для TodoService.

    PRUNE_UNUSED_TAGS берётся из настроек.
    """
    return TodoService(db, prune_unused_tags=settings.PRUNE_UNUSED_TAGS)
