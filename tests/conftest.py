"""
Pytest fixtures для тестов.

Предоставляет:
- test_database: изолированная SQLite in-memory БД для каждого теста
- test_db: сессия для тестов репозиториев и сервисов
- test_client: HTTP клиент для тестирования API endpoints
"""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from todo_api.api.dependencies import get_db
from todo_api.core.database import Database, session_scope
from todo_api.main import app

# Test database URL (SQLite in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_database():
    """
    Database поверх SQLite in-memory.

    Database сам выбирает StaticPool (одно соединение на всё время теста,
    иначе in-memory данные теряются) и включает foreign_keys + SAVEPOINT.
    Таблицы создаются заново для каждого теста.
    """
    database = Database(TEST_DATABASE_URL)
    await database.create_all()

    yield database

    await database.drop_all()
    await database.dispose()


@pytest_asyncio.fixture
async def test_db(test_database):
    """
    Async session для тестов репозиториев и сервисов.

    Изменения откатываются после теста.
    """
    async with test_database.session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def test_client(test_database):
    """
    HTTP клиент поверх приложения с тестовой БД.

    ASGITransport не запускает lifespan, поэтому get_db подменяется:
    каждый запрос получает свою сессию с commit/rollback, как в production.
    """

    async def override_get_db():
        async with session_scope(test_database) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
