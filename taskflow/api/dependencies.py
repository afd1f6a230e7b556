"""
Dependencies для FastAPI endpoints.

Хранилище создаётся один раз в lifespan (main.py) и лежит в
app.state.storage. Сервисы получают его через Depends(get_storage),
поэтому в тестах достаточно подменить get_storage:

    app.dependency_overrides[get_storage] = lambda: MemoryStorage()
"""

from fastapi import Depends, Header, Request

from ..core.config import settings
from ..repositories import Storage
from ..services import CommentService, TaskService


def get_storage(request: Request) -> Storage:
    """Хранилище приложения (создано в lifespan)."""
    return request.app.state.storage


async def get_current_user(
    x_user_name: str | None = Header(
        None,
        max_length=200,
        description="Имя текущего пользователя (без проверки, только для подписи)",
    ),
) -> str:
    """
    Текущий пользователь для полей added_by/updated_by/author.

    Аутентификации нет: значение заголовка X-User-Name принимается как есть,
    без заголовка используется DEFAULT_USER.
    """
    if x_user_name and x_user_name.strip():
        return x_user_name.strip()
    return settings.DEFAULT_USER


async def get_task_service(storage: Storage = Depends(get_storage)) -> TaskService:
    """
    Dependency для TaskService.

    Использование:
        @router.post("/tasks")
        async def create_task(service: TaskService = Depends(get_task_service)):
            ...
    """
    return TaskService(storage)


async def get_comment_service(storage: Storage = Depends(get_storage)) -> CommentService:
    """Dependency для CommentService."""
    return CommentService(storage)
