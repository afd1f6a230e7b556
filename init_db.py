"""
Скрипт для инициализации базы данных (backend "sql").

Создаёт таблицы tasks и comments по DATABASE_URL из настроек и,
если включён SEED_SAMPLE_DATA, добавляет демо-задачи.
"""

import asyncio

from taskflow.core.config import settings
from taskflow.repositories import SqlStorage
from taskflow.services import seed_sample_data


async def main():
    """Создать все таблицы."""
    storage = SqlStorage(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    try:
        print(f"Создание таблиц в {storage.engine.url.render_as_string()}...")
        await storage.initialize()
        if settings.SEED_SAMPLE_DATA and await seed_sample_data(storage):
            print("✓ Демо-данные добавлены")
        print("✓ Таблицы созданы успешно!")
    finally:
        await storage.close()


if __name__ == "__main__":
    asyncio.run(main())
