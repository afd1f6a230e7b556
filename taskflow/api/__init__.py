"""API layer - FastAPI endpoints."""

from .comments import router as comments_router
from .tasks import router as tasks_router

__all__ = [
    "tasks_router",
    "comments_router",
]
