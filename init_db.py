"""
Скрипт для инициализации базы данных.

Создаёт все таблицы напрямую через SQLAlchemy (без Alembic).
Удобно для локальной SQLite базы:

    python init_db.py
    DATABASE_URL=sqlite+aiosqlite:///./dev.db python init_db.py
"""

import asyncio

from todo_api.core.config import settings
from todo_api.core.database import Database


async def main():
    """Создать все таблицы."""
    print(f"Создание таблиц в {settings.DATABASE_URL} ...")
    database = Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    try:
        await database.create_all()
    finally:
        await database.dispose()
    print("✓ Таблицы созданы успешно!")


if __name__ == "__main__":
    asyncio.run(main())
