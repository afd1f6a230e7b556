"""Core application components."""

from .config import Settings, settings
from .database import create_engine, create_session_factory, init_db
from .exceptions import StorageError

__all__ = [
    "settings",
    "Settings",
    "StorageError",
    "create_engine",
    "create_session_factory",
    "init_db",
]
