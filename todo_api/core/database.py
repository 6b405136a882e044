"""Database connection and session management."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from .logging import get_logger

logger = get_logger(__name__)


def configure_sqlite(engine: AsyncEngine) -> None:
    """
    Настроить SQLite соединения для корректной работы.

    - PRAGMA foreign_keys=ON: без неё SQLite игнорирует ON DELETE CASCADE
    - Ручной BEGIN: драйвер sqlite3 сам управляет транзакциями и ломает
      SAVEPOINT (begin_nested), поэтому отключаем его логику и
      начинаем транзакцию сами.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    Создать async engine для указанной БД.

    For SQLite, use StaticPool to avoid greenlet issues
    For PostgreSQL, use NullPool
    """
    if url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            echo=echo,
            poolclass=StaticPool,  # SQLite requires StaticPool for async
            connect_args={"check_same_thread": False},  # Allow multi-threaded access
        )
        configure_sqlite(engine)
        return engine

    return create_async_engine(
        url,
        echo=echo,
        poolclass=NullPool,  # Disable connection pooling for PostgreSQL
    )


class Database:
    """
    Подключение к БД: engine + фабрика сессий.

    Создаётся в lifespan приложения и хранится в app.state.db,
    поэтому в тестах легко подменить на in-memory SQLite.

    Пример:
        db = Database("sqlite+aiosqlite:///:memory:")
        await db.create_all()
        async with db.session() as session:
            ...
        await db.dispose()
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = create_engine(url, echo=echo)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    def session(self) -> AsyncSession:
        """Открыть новую сессию (использовать как async context manager)."""
        return self.session_factory()

    async def create_all(self) -> None:
        """Initialize database (create all tables)."""
        from ..models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")

    async def drop_all(self) -> None:
        """Drop all tables (use with caution!)."""
        from ..models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.warning("Database tables dropped")

    async def dispose(self) -> None:
        """Закрыть все соединения (при остановке приложения)."""
        await self.engine.dispose()


@asynccontextmanager
async def session_scope(database: Database) -> AsyncIterator[AsyncSession]:
    """
    Сессия с автоматическим commit/rollback.

        async with session_scope(database) as session:
            ...

    1. Создаёт сессию
    2. Делает commit() при успехе
    3. Делает rollback() при ошибке и пробрасывает исключение
    4. Закрывает сессию
    """
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
