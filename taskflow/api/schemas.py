"""
Pydantic схемы для API.

DTOs (Data Transfer Objects) - объекты для передачи данных через HTTP.
Записи хранилища (dataclass Task/Comment) превращаются в ответы через
model_validate(..., from_attributes=True).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..models import TaskStatus

# ============================================================================
# TASK SCHEMAS
# ============================================================================


class TaskBase(BaseModel):
    """Базовые поля задачи."""

    title: str = Field(..., min_length=1, max_length=300, description="Название задачи")
    description: str | None = Field(None, description="Описание задачи (пустое = нет описания)")


class TaskCreate(TaskBase):
    """
    Схема для создания задачи (POST /tasks).

    added_by/updated_by по умолчанию берутся из X-User-Name (или DEFAULT_USER).

    Пример запроса:
    {
        "title": "API Documentation Update",
        "description": "Include request/response examples",
        "status": "pending"
    }
    """

    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Статус задачи")
    added_by: str | None = Field(None, max_length=200, description="Кто создал")
    updated_by: str | None = Field(None, max_length=200, description="Кто последний менял")


class TaskUpdate(BaseModel):
    """
    Схема для обновления задачи (PUT/PATCH /tasks/{id}).

    Все поля опциональные: применяются только переданные.
    "description": "" или null очищает описание.
    """

    title: str | None = Field(None, min_length=1, max_length=300)
    description: str | None = None
    status: TaskStatus | None = None
    added_by: str | None = Field(None, max_length=200)
    updated_by: str | None = Field(None, max_length=200)


class TaskResponse(TaskBase):
    """
    Схема задачи в ответе API.

    Пример ответа:
    {
        "id": 1,
        "title": "Implement User Authentication",
        "description": "Set up JWT authentication...",
        "status": "work-in-process",
        "added_by": "Sarah Chen",
        "updated_by": "Mike Johnson",
        "created_at": "2024-12-15T14:30:00",
        "updated_at": "2024-12-16T09:15:00"
    }
    """

    id: int
    status: TaskStatus
    added_by: str
    updated_by: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StatusCountsResponse(BaseModel):
    """Количество задач по статусам (для вкладок)."""

    all: int
    pending: int
    work_in_process: int = Field(..., alias="work-in-process")
    on_hold: int = Field(..., alias="on-hold")
    completed: int

    model_config = ConfigDict(populate_by_name=True)


# ============================================================================
# COMMENT SCHEMAS
# ============================================================================


class CommentCreate(BaseModel):
    """
    Схема для создания комментария (POST /tasks/{task_id}/comments).

    Пример (ответ на комментарий 2):
    {
        "content": "Good point! I'll also add Redis for session management.",
        "parent_id": 2
    }
    """

    content: str = Field(..., min_length=1, description="Текст комментария")
    author: str | None = Field(None, max_length=200, description="Автор (по умолчанию текущий)")
    parent_id: int | None = Field(None, description="ID комментария, на который это ответ")
    is_status_change: bool = Field(default=False, description="Комментарий о смене статуса")
    old_status: TaskStatus | None = None
    new_status: TaskStatus | None = None


class CommentResponse(BaseModel):
    """Схема комментария в ответе."""

    id: int
    task_id: int
    parent_id: int | None
    content: str
    author: str
    created_at: datetime
    is_status_change: bool
    old_status: TaskStatus | None
    new_status: TaskStatus | None

    model_config = ConfigDict(from_attributes=True)


class CommentThreadResponse(BaseModel):
    """Комментарий верхнего уровня с ответами."""

    comment: CommentResponse
    replies: list[CommentResponse] = []

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# STATUS CHANGE SCHEMAS
# ============================================================================


class StatusChangeRequest(BaseModel):
    """
    Схема для смены статуса (POST /tasks/{id}/status).

    Пример:
    {
        "status": "work-in-process",
        "content": "starting work"
    }
    """

    status: TaskStatus = Field(..., description="Новый статус")
    content: str | None = Field(None, description="Комментарий к смене статуса")
    updated_by: str | None = Field(None, max_length=200)


class StatusChangeResponse(BaseModel):
    """
    Результат смены статуса.

    comment = null и comment_error заполнен, если статус изменён, но
    комментарий о смене статуса сохранить не удалось.
    """

    task: TaskResponse
    old_status: TaskStatus
    comment: CommentResponse | None = None
    comment_error: str | None = None

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# COMMON SCHEMAS
# ============================================================================


class ErrorDetail(BaseModel):
    """
    Детали ошибки для конкретного поля.

    Пример:
    {
        "field": "title",
        "message": "String should have at least 1 character"
    }
    """

    field: str = Field(..., description="Название поля с ошибкой")
    message: str = Field(..., description="Описание ошибки")


class ErrorBody(BaseModel):
    """
    Тело ошибки с кодом и деталями.

    Коды:
    - VALIDATION_ERROR: ошибка валидации полей
    - NOT_FOUND: ресурс не найден
    - STORAGE_ERROR: хранилище недоступно
    - RATE_LIMIT_EXCEEDED: превышен лимит запросов
    """

    code: str = Field(..., description="Код ошибки")
    message: str = Field(..., description="Сообщение для пользователя")
    details: list[ErrorDetail] | None = Field(None, description="Детали по полям")


class ErrorResponse(BaseModel):
    """
    Единый формат ошибки API.

    {
        "error": {
            "code": "NOT_FOUND",
            "message": "Task with id=999 not found",
            "details": null
        }
    }
    """

    error: ErrorBody
