"""
Structured logging configuration
JSON log lines for the API, request logging middleware and performance helpers
"""
import functools
import inspect
import json
import logging
import logging.config
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from interview_coach.core.config import settings

# Extra attributes copied from `extra={...}` into the JSON record when present
_CONTEXT_FIELDS = (
    "request_id",
    "session_id",
    "mock_id",
    "user_id",
    "endpoint",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "client_ip",
    "provider",
    "state",
    "question_index",
    "operation",
    "success",
)


class CustomJSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging
    """

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "application": "interview-coach-api",
            "environment": settings.environment,
        }

        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


def setup_logging(level: Optional[str] = None):
    """
    Configure root and library loggers
    """
    app_level = level or ("DEBUG" if settings.debug else "INFO")

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": CustomJSONFormatter,
            },
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG",
                "formatter": "standard" if settings.debug else "json",
                "stream": sys.stdout,
            },
        },
        "loggers": {
            "": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
            "interview_coach": {
                "handlers": ["console"],
                "level": app_level,
                "propagate": False,
            },
            "api.requests": {
                "handlers": ["console"],
                "level": "INFO",
                "propagate": False,
            },
            "performance": {
                "handlers": ["console"],
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
            "sqlalchemy": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(logging_config)


class RequestLoggingMiddleware:
    """
    ASGI middleware logging every HTTP request with a request id and duration
    """

    def __init__(self, app):
        self.app = app
        self.logger = logging.getLogger("api.requests")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        start_time = time.time()
        method = scope.get("method", "")
        path = scope.get("path", "")
        client_ip = self._get_client_ip(scope)

        self.logger.debug(
            "HTTP request started",
            extra={"request_id": request_id, "method": method, "path": path, "client_ip": client_ip},
        )

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                status_code = message["status"]
                duration_ms = round((time.time() - start_time) * 1000, 2)

                log_level = logging.INFO
                if status_code >= 500:
                    log_level = logging.ERROR
                elif status_code >= 400:
                    log_level = logging.WARNING

                self.logger.log(
                    log_level,
                    "HTTP request completed",
                    extra={
                        "request_id": request_id,
                        "method": method,
                        "path": path,
                        "status_code": status_code,
                        "duration_ms": duration_ms,
                        "client_ip": client_ip,
                    },
                )
                headers = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode()))
                message = {**message, "headers": headers}

            await send(message)

        await self.app(scope, receive, send_wrapper)

    def _get_client_ip(self, scope) -> str:
        for header_name, header_value in scope.get("headers", []):
            if header_name == b"x-forwarded-for":
                return header_value.decode().split(",")[0].strip()
            if header_name == b"x-real-ip":
                return header_value.decode()
        if scope.get("client"):
            return scope["client"][0]
        return "unknown"


class PerformanceLogger:
    """
    Log timings of calls to external services
    """

    def __init__(self):
        self.logger = logging.getLogger("performance")

    def log_external_api_call(self, service: str, endpoint: str, duration_ms: float, status_code: int):
        self.logger.info(
            "External API call completed",
            extra={
                "provider": service,
                "endpoint": endpoint,
                "duration_ms": duration_ms,
                "status_code": status_code,
            },
        )

    def log_ai_processing(self, provider: str, model: str, duration_ms: float, success: bool = True):
        self.logger.info(
            "AI processing completed",
            extra={
                "provider": provider,
                "endpoint": model,
                "duration_ms": duration_ms,
                "success": success,
            },
        )


performance_logger = PerformanceLogger()


def log_performance(operation_name: str):
    """Decorator logging duration and outcome of a sync or async callable"""

    def decorator(func):
        def _log(start_time: float, success: bool, error: Optional[BaseException] = None):
            duration_ms = round((time.time() - start_time) * 1000, 2)
            extra = {"operation": operation_name, "duration_ms": duration_ms, "success": success}
            if success:
                performance_logger.logger.info(f"Operation completed: {operation_name}", extra=extra)
            else:
                performance_logger.logger.error(f"Operation failed: {operation_name}: {error}", extra=extra)

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _log(start_time, False, e)
                raise
            _log(start_time, True)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _log(start_time, False, e)
                raise
            _log(start_time, True)
            return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def setup_production_logging():
    """
    Complete logging setup used at application start
    """
    setup_logging()

    logger = logging.getLogger("interview_coach.startup")
    logger.info(
        "Application logging initialized",
        extra={"operation": "logging_initialized"},
    )
