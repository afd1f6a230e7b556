"""
Главный файл FastAPI приложения Taskflow.

Запуск:
    uvicorn taskflow.main:app --reload

API документация:
    http://localhost:8000/docs       - Swagger UI
    http://localhost:8000/redoc      - ReDoc

Хранилище выбирается настройкой STORAGE_BACKEND (memory, json, sql),
создаётся один раз при старте в lifespan и закрывается при остановке.
"""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .api import comments_router, tasks_router
from .api.dependencies import get_storage
from .api.errors import register_error_handlers
from .api.middleware import RequestLoggingMiddleware
from .core.config import settings
from .core.exceptions import StorageError
from .core.logging import get_logger, setup_logging
from .repositories import Storage, create_storage
from .services import seed_sample_data

setup_logging(
    log_level=settings.LOG_LEVEL,
    log_format=settings.LOG_FORMAT,
    sql_echo=settings.DATABASE_ECHO,
)

logger = get_logger(__name__)

# ============================================================================
# APPLICATION METADATA
# ============================================================================

APP_VERSION = "1.0.0"
APP_START_TIME: float = 0.0  # Will be set on startup

# ============================================================================
# RATE LIMITER SETUP
# ============================================================================

# Группировка запросов по IP адресу клиента
limiter = Limiter(key_func=get_remote_address)


def custom_rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Превышение лимита запросов в едином формате ErrorResponse."""
    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMIT_EXCEEDED",
                "message": f"Too many requests. Limit: {exc.detail}",
                "details": [{"field": "rate_limit", "message": str(exc.detail)}],
            }
        },
    )


# ============================================================================
# LIFESPAN EVENT HANDLER
# ============================================================================


async def start_storage(storage: Storage) -> None:
    """
    Подготовить хранилище к работе.

    1. initialize() - загрузить файлы / создать таблицы
    2. reconcile() - удалить комментарии удалённых задач (остаются после падения
       посреди каскадного удаления)
    3. Демо-данные, если включены и хранилище пустое
    """
    await storage.initialize()

    orphans = await storage.reconcile()
    if orphans:
        logger.warning(
            "Removed orphaned comments", extra={"count": orphans, "backend": storage.backend}
        )

    if settings.SEED_SAMPLE_DATA:
        await seed_sample_data(storage)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: создать и подготовить хранилище
    Shutdown: закрыть хранилище
    """
    global APP_START_TIME
    APP_START_TIME = time.time()

    storage = create_storage(settings)
    try:
        await start_storage(storage)
    except Exception:
        logger.error(
            "Storage startup failed", extra={"storage_backend": storage.backend}, exc_info=True
        )
        await storage.close()
        raise
    app.state.storage = storage

    logger.info(
        "Application started",
        extra={
            "app_name": settings.APP_NAME,
            "version": APP_VERSION,
            "debug": settings.DEBUG,
            "storage_backend": storage.backend,
            "log_level": settings.LOG_LEVEL,
        },
    )

    try:
        yield
    finally:
        await storage.close()
        uptime = int(time.time() - APP_START_TIME)
        logger.info("Application stopped", extra={"uptime_seconds": uptime})


# ============================================================================
# CREATE APPLICATION
# ============================================================================

app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    description="""
    Трекер задач с комментариями.

    ## Возможности

    * **Задачи** - создание, редактирование, удаление (вместе с комментариями)
    * **Статусы** - pending → work-in-process → on-hold → completed (любые переходы)
    * **Комментарии** - с ответами (один уровень вложенности)
    * **Смена статуса** - автоматический комментарий со старым и новым статусом

    ## Архитектура

    ```
    API Layer (FastAPI) → Service Layer → Repository Layer (memory | json | sql)
    ```
    """,
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.state.limiter = limiter
# slowapi handler имеет специфичный тип, но работает корректно
app.add_exception_handler(RateLimitExceeded, custom_rate_limit_exceeded_handler)  # type: ignore[arg-type]

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# ============================================================================
# API VERSIONING
# ============================================================================

api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(tasks_router)
api_v1_router.include_router(comments_router)

app.include_router(api_v1_router)

register_error_handlers(app)


# ============================================================================
# ROOT ENDPOINT
# ============================================================================


@app.get("/", tags=["root"], summary="Root endpoint", description="Информация о API")
@limiter.limit(settings.RATE_LIMIT)
async def root(request: Request):
    return {
        "name": settings.APP_NAME,
        "version": APP_VERSION,
        "api_version": "v1",
        "docs": "/docs",
        "redoc": "/redoc",
        "openapi": "/openapi.json",
        "endpoints": {
            "tasks": "/api/v1/tasks",
            "comments": "/api/v1/comments",
        },
        "rate_limit": settings.RATE_LIMIT,
    }


# ============================================================================
# HEALTH CHECK
# ============================================================================


@app.get(
    "/health", tags=["health"], summary="Health check", description="Проверка работоспособности API"
)
@limiter.limit(settings.RATE_LIMIT)
async def health_check(request: Request, storage: Storage = Depends(get_storage)):
    """
    Health check endpoint.

    Пример ответа (200 OK):
    ```json
    {
        "status": "ok",
        "checks": {"storage": "connected", "backend": "sql", "version": "1.0.0", "uptime_seconds": 3600},
        "timestamp": "2026-01-22T12:00:00Z"
    }
    ```

    Если хранилище недоступно - 503 и "storage": "disconnected".
    """
    uptime_seconds = int(time.time() - APP_START_TIME) if APP_START_TIME > 0 else 0

    try:
        await storage.ping()
        storage_status = "connected"
    except StorageError:
        logger.warning("Health check: storage unavailable", exc_info=True)
        storage_status = "disconnected"

    overall_status = "ok" if storage_status == "connected" else "error"

    return JSONResponse(
        status_code=200 if overall_status == "ok" else 503,
        content={
            "status": overall_status,
            "checks": {
                "storage": storage_status,
                "backend": storage.backend,
                "version": APP_VERSION,
                "uptime_seconds": uptime_seconds,
            },
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )
