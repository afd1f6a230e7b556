"""Repository layer: storage contract and its backends."""

from .base import CommentRepository, Storage, TaskRepository
from .factory import create_storage
from .json_file import JsonFileStorage
from .memory import MemoryStorage
from .sql import SqlStorage

__all__ = [
    "Storage",
    "TaskRepository",
    "CommentRepository",
    "MemoryStorage",
    "JsonFileStorage",
    "SqlStorage",
    "create_storage",
]
