"""HTTP middleware for request logging and tracing."""

import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.logging import generate_request_id, get_logger, request_id_var

logger = get_logger("taskflow.requests")

# Paths not worth a log line per request
QUIET_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware для логирования HTTP запросов.

    Логирует метод, путь, статус, время выполнения (мс) и IP клиента.
    Каждому запросу выдаётся Request ID: он попадает во все логи запроса
    и возвращается клиенту в заголовке X-Request-ID. Если клиент прислал
    свой X-Request-ID, используется он.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        token = request_id_var.set(request_id)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        log_extra = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": client_ip,
        }

        try:
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    "Request failed",
                    extra={
                        **log_extra,
                        "duration_ms": int((time.perf_counter() - start_time) * 1000),
                        "error": str(e),
                    },
                    exc_info=True,
                )
                raise

            duration_ms = int((time.perf_counter() - start_time) * 1000)
            response.headers["X-Request-ID"] = request_id

            if request.url.path not in QUIET_PATHS:
                log = logger.info if response.status_code < 400 else logger.warning
                log(
                    "Request completed",
                    extra={**log_extra, "status": response.status_code, "duration_ms": duration_ms},
                )

            return response
        finally:
            request_id_var.reset(token)
