"""
Обработчики ошибок (Exception Handlers) для API.

Все ошибки отдаются в едином формате ErrorResponse:
- APIError (и наследники) -> свой status_code
- RequestValidationError (Pydantic) -> 422
- StorageError (носитель недоступен) -> 503
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..core.exceptions import StorageError
from .schemas import ErrorBody, ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


# =============================================================================
# CUSTOM EXCEPTIONS
# =============================================================================


class APIError(Exception):
    """
    Базовый класс для всех API ошибок.

    Использование:
        raise APIError(code="NOT_FOUND", message="Task not found", status_code=404)
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: list[dict] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class NotFoundError(APIError):
    """
    Ресурс не найден (404).

    Использование:
        raise NotFoundError("Task", 123)
        # Сообщение: "Task with id=123 not found"
    """

    def __init__(self, resource: str, resource_id: int | str):
        super().__init__(
            code="NOT_FOUND",
            message=f"{resource} with id={resource_id} not found",
            status_code=status.HTTP_404_NOT_FOUND,
        )


class ValidationError_(APIError):
    """
    Ошибка валидации бизнес-логики (400).

    Использование:
        raise ValidationError_("Task title cannot be empty", field="title")
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=[{"field": field, "message": message}] if field else None,
        )


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================


def _error_json(status_code: int, body: ErrorBody) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=body).model_dump())


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Преобразует APIError в единый формат ErrorResponse."""
    logger.warning(f"API Error: {exc.code} - {exc.message}")

    details = None
    if exc.details:
        details = [ErrorDetail(field=d["field"], message=d["message"]) for d in exc.details]

    return _error_json(
        exc.status_code, ErrorBody(code=exc.code, message=exc.message, details=details)
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Обработчик для ошибок валидации Pydantic (422).

    Pydantic:  {"detail": [{"loc": ["body", "title"], "msg": "..."}]}
    Наш формат: {"error": {"code": "VALIDATION_ERROR", "details": [{"field": "title", ...}]}}
    """
    logger.warning(f"Validation Error: {exc.errors()}")

    details = []
    for error in exc.errors():
        # loc - путь к полю, например ["body", "title"] или ["query", "status"]
        field_path = error.get("loc", [])
        field_name = field_path[-1] if field_path else "unknown"

        if len(field_path) > 1 and field_path[0] == "body":
            field_name = ".".join(str(p) for p in field_path[1:])

        details.append(
            ErrorDetail(field=str(field_name), message=error.get("msg", "Validation error"))
        )

    return _error_json(
        422,
        ErrorBody(code="VALIDATION_ERROR", message="Request validation failed", details=details),
    )


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    """
    Хранилище не смогло прочитать или записать данные (503).

    Детали носителя клиенту не показываются, только в лог.
    """
    logger.error(f"Storage Error: {exc}", exc_info=exc)

    return _error_json(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        ErrorBody(code="STORAGE_ERROR", message="Storage is temporarily unavailable"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Регистрирует все error handlers в приложении FastAPI."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StorageError, storage_error_handler)

    logger.info("Error handlers registered")
