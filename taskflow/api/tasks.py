"""
API endpoints для работы с задачами.

URL структура:
- GET    /tasks                        - список задач (опционально ?status=)
- GET    /tasks/counts                 - количество задач по статусам
- POST   /tasks                        - создать задачу
- GET    /tasks/{id}                   - одна задача
- PUT    /tasks/{id}                   - частично обновить (PATCH тоже)
- POST   /tasks/{id}/status            - сменить статус + комментарий о смене
- DELETE /tasks/{id}                   - удалить вместе с комментариями
- GET    /tasks/{id}/comments          - комментарии (хронологически)
- GET    /tasks/{id}/comments/thread   - комментарии, сгруппированные в треды
- POST   /tasks/{id}/comments          - добавить комментарий / ответ
"""

from fastapi import APIRouter, Depends, Query, Response, status

from ..models import TaskStatus
from ..services import CommentService, TaskService
from .dependencies import get_comment_service, get_current_user, get_task_service
from .errors import NotFoundError, ValidationError_
from .schemas import (
    CommentCreate,
    CommentResponse,
    CommentThreadResponse,
    ErrorResponse,
    StatusChangeRequest,
    StatusChangeResponse,
    StatusCountsResponse,
    TaskCreate,
    TaskResponse,
    TaskUpdate,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])


# ============================================================================
# LIST TASKS
# ============================================================================


@router.get(
    "",
    response_model=list[TaskResponse],
    summary="Получить задачи",
    description="""
    Все задачи, сначала последние изменённые. Без пагинации.

    **Фильтр:**
    - status: pending, work-in-process, on-hold, completed
    """,
)
async def get_tasks(
    status: TaskStatus | None = Query(None, description="Фильтр по статусу"),
    service: TaskService = Depends(get_task_service),
) -> list[TaskResponse]:
    tasks = await service.get_tasks(status=status)
    return [TaskResponse.model_validate(t) for t in tasks]


@router.get(
    "/counts",
    response_model=StatusCountsResponse,
    summary="Количество задач по статусам",
)
async def get_status_counts(
    service: TaskService = Depends(get_task_service),
) -> StatusCountsResponse:
    """
    Пример ответа:
    ```json
    {"all": 3, "pending": 1, "work-in-process": 1, "on-hold": 0, "completed": 1}
    ```
    """
    return StatusCountsResponse.model_validate(await service.get_status_counts())


# ============================================================================
# CREATE TASK
# ============================================================================


@router.post(
    "",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Создать задачу",
    responses={
        201: {"description": "Задача создана"},
        400: {"model": ErrorResponse, "description": "Пустое название"},
        422: {"model": ErrorResponse, "description": "Ошибка валидации"},
    },
)
async def create_task(
    data: TaskCreate,
    current_user: str = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    """
    Создать новую задачу.

    Пример запроса:
    ```json
    {
        "title": "Database Migration Scripts",
        "description": "Create migration scripts for user tables",
        "status": "pending"
    }
    ```
    """
    added_by = data.added_by or current_user
    try:
        task = await service.create_task(
            title=data.title,
            added_by=added_by,
            description=data.description,
            status=data.status,
            updated_by=data.updated_by or added_by,
        )
    except ValueError as e:
        raise ValidationError_(str(e), field="title")
    return TaskResponse.model_validate(task)


# ============================================================================
# GET TASK BY ID
# ============================================================================


@router.get(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Получить задачу по ID",
    responses={404: {"model": ErrorResponse, "description": "Задача не найдена"}},
)
async def get_task(
    task_id: int,
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    task = await service.get_task(task_id)
    if task is None:
        raise NotFoundError("Task", task_id)
    return TaskResponse.model_validate(task)


# ============================================================================
# UPDATE TASK
# ============================================================================


@router.put(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Обновить задачу",
    description="""
    Частичное обновление: меняются только переданные поля.
    updated_at обновляется всегда, updated_by по умолчанию - текущий пользователь.

    Статус лучше менять через POST /tasks/{id}/status: тогда появится
    комментарий о смене статуса.
    """,
    responses={
        400: {"model": ErrorResponse, "description": "Ошибка валидации"},
        404: {"model": ErrorResponse, "description": "Задача не найдена"},
    },
)
@router.patch(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Обновить задачу (PATCH)",
    include_in_schema=False,
)
async def update_task(
    task_id: int,
    data: TaskUpdate,
    current_user: str = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    """
    Обновить задачу.

    Пример запроса:
    ```json
    {
        "title": "New title",
        "description": ""
    }
    ```
    """
    changes = data.model_dump(exclude_unset=True)
    if not changes.get("updated_by"):
        changes["updated_by"] = current_user

    try:
        task = await service.update_task(task_id, **changes)
    except ValueError as e:
        raise ValidationError_(str(e), field="title")

    if task is None:
        raise NotFoundError("Task", task_id)
    return TaskResponse.model_validate(task)


# ============================================================================
# CHANGE STATUS
# ============================================================================


@router.post(
    "/{task_id}/status",
    response_model=StatusChangeResponse,
    summary="Сменить статус задачи",
    description="""
    Составная операция:
    1. Обновить статус задачи (и updated_by)
    2. Создать комментарий о смене статуса (старый и новый статус, текст)

    Если шаг 2 не удался, статус всё равно остаётся изменённым:
    в ответе comment = null и заполнен comment_error.
    Смена на тот же статус допустима ("still pending, adding a note").
    """,
    responses={404: {"model": ErrorResponse, "description": "Задача не найдена"}},
)
async def change_task_status(
    task_id: int,
    data: StatusChangeRequest,
    current_user: str = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> StatusChangeResponse:
    """
    Пример запроса:
    ```json
    {"status": "work-in-process", "content": "starting work"}
    ```
    """
    result = await service.change_status(
        task_id,
        new_status=data.status,
        updated_by=data.updated_by or current_user,
        content=data.content,
    )
    if result is None:
        raise NotFoundError("Task", task_id)
    return StatusChangeResponse.model_validate(result)


# ============================================================================
# DELETE TASK
# ============================================================================


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить задачу",
    description="Удалить задачу и ВСЕ её комментарии (включая ответы).",
    responses={
        204: {"description": "Задача удалена"},
        404: {"model": ErrorResponse, "description": "Задача не найдена"},
    },
)
async def delete_task(
    task_id: int,
    service: TaskService = Depends(get_task_service),
) -> Response:
    if not await service.delete_task(task_id):
        raise NotFoundError("Task", task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# COMMENTS
# ============================================================================


@router.get(
    "/{task_id}/comments",
    response_model=list[CommentResponse],
    summary="Комментарии задачи",
    description="Все комментарии задачи по времени создания (сначала старые).",
)
async def get_task_comments(
    task_id: int,
    service: CommentService = Depends(get_comment_service),
) -> list[CommentResponse]:
    comments = await service.get_comments(task_id)
    return [CommentResponse.model_validate(c) for c in comments]


@router.get(
    "/{task_id}/comments/thread",
    response_model=list[CommentThreadResponse],
    summary="Комментарии задачи в виде тредов",
    description="Комментарии верхнего уровня, у каждого - список ответов.",
)
async def get_task_comment_thread(
    task_id: int,
    service: CommentService = Depends(get_comment_service),
) -> list[CommentThreadResponse]:
    threads = await service.get_thread(task_id)
    return [CommentThreadResponse.model_validate(t) for t in threads]


@router.post(
    "/{task_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Добавить комментарий",
    responses={
        201: {"description": "Комментарий добавлен"},
        400: {"model": ErrorResponse, "description": "Комментарий пустой или неверный parent_id"},
        404: {"model": ErrorResponse, "description": "Задача не найдена"},
    },
)
async def add_comment(
    task_id: int,
    data: CommentCreate,
    current_user: str = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
) -> CommentResponse:
    """
    Добавить комментарий к задаче.

    Пример запроса (ответ на комментарий 2):
    ```json
    {
        "content": "Good point! I'll also add Redis for session management.",
        "parent_id": 2
    }
    ```
    """
    try:
        comment = await service.add_comment(
            task_id,
            content=data.content,
            author=data.author or current_user,
            parent_id=data.parent_id,
            is_status_change=data.is_status_change,
            old_status=data.old_status,
            new_status=data.new_status,
        )
    except ValueError as e:
        raise ValidationError_(str(e))

    if comment is None:
        raise NotFoundError("Task", task_id)
    return CommentResponse.model_validate(comment)
