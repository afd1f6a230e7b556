"""Storage backend selection."""

from ..core.config import Settings
from .base import Storage
from .json_file import JsonFileStorage
from .memory import MemoryStorage
from .sql import SqlStorage

BACKENDS = ("memory", "json", "sql")


def create_storage(settings: Settings) -> Storage:
    """
    Создать хранилище по настройке STORAGE_BACKEND.

    Raises:
        ValueError: Неизвестный backend
    """
    backend = settings.STORAGE_BACKEND.lower()

    if backend == "memory":
        return MemoryStorage()
    if backend == "json":
        return JsonFileStorage(settings.DATA_DIR)
    if backend == "sql":
        return SqlStorage(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

    raise ValueError(
        f"Unknown STORAGE_BACKEND '{settings.STORAGE_BACKEND}', expected one of: {', '.join(BACKENDS)}"
    )
