import json
import logging
import logging.config
import time
import uuid
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from epimetheus.core.config import VERSION

LOG_FORMATS = {"json", "term"}
LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class RequestIdFilter(logging.Filter):
    """Attach request_id to log records if present in record.extra, else '-'."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "request_id"):
            record.request_id = "-"  # type: ignore[attr-defined]
        return True


class SimpleConsoleFormatter(logging.Formatter):
    """Minimal, readable console format for terminal use."""

    default_time_format = "%Y-%m-%d %H:%M:%S"
    default_msec_format = "%s.%03d"

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        record.message = record.getMessage()
        asctime = self.formatTime(record, self.datefmt)
        rid = getattr(record, "request_id", "-")
        line = f"{asctime} | {record.levelname} | {record.name} | {record.message} | rid={rid}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, suitable for log shippers."""

    default_time_format = "%Y-%m-%dT%H:%M:%S"
    default_msec_format = "%s.%03d"

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "version": VERSION,
        }
        rid = getattr(record, "request_id", "-")
        if rid != "-":
            payload["request_id"] = rid
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(log_format: str = "json", log_level: str = "info") -> None:
    """Configure process-wide logging.

    ``log_format`` is ``json`` or ``term``; anything else falls back to json.
    ``log_level`` accepts the usual level names in any case.
    """

    fmt = (log_format or "json").lower()
    fallback = fmt not in LOG_FORMATS
    if fallback:
        fmt = "json"
    level = str(log_level or "info").upper()
    if level == "WARN":
        level = "WARNING"
    if level not in LOG_LEVELS:
        level = "INFO"

    dict_config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_id": {"()": RequestIdFilter},
        },
        "formatters": {
            "term": {"()": SimpleConsoleFormatter},
            "json": {"()": JsonLineFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "level": level,
                "formatter": fmt,
                "filters": ["request_id"],
            },
        },
        "loggers": {
            "": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn.error": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn.access": {"handlers": ["console"], "level": "WARNING", "propagate": False},
            # Quiet noisy libraries
            "httpx": {"handlers": ["console"], "level": "WARNING", "propagate": False},
            "httpcore": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        },
    }

    logging.config.dictConfig(dict_config)
    if fallback:
        logging.getLogger(__name__).warning(
            "invalid log format=%s; defaulting to json", log_format
        )


def install_request_logging(app: FastAPI) -> None:
    """Add request/response logging middleware with request ids."""

    @app.middleware("http")
    async def log_requests(request: Request, call_next):  # type: ignore[override]
        logger = logging.getLogger("http")
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "HTTP %s %s error status=500 err=%s",
                request.method,
                request.url.path,
                exc,
                extra={"request_id": request_id},
            )
            return JSONResponse({"detail": "Internal Server Error"}, status_code=500)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "HTTP %s %s %s %.2fms",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            extra={"request_id": request_id},
        )
        response.headers["x-request-id"] = request_id
        return response


def install_error_handler(app: FastAPI) -> None:
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):  # type: ignore[override]
        logger = logging.getLogger("epimetheus.errors")
        request_id = request.headers.get("x-request-id") or "-"
        logger.error(
            "unhandled exception path=%s err=%s",
            request.url.path,
            exc,
            extra={"request_id": request_id},
            exc_info=exc,
        )
        return JSONResponse({"detail": "Internal Server Error"}, status_code=500)
