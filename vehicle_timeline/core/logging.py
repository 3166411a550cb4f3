"""Structured logging for the timeline service.

structlog renders every record, including those emitted through the stdlib
``logging`` module by uvicorn and SQLAlchemy, so the console (development)
and JSON (everything else) outputs carry the same fields.

Usage:
    from vehicle_timeline.core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("timeline_aggregated", vehicle_id="veh-1", total_events=42)
"""

import logging
import re
import sys
import time
import uuid
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from vehicle_timeline.config import Settings

REQUEST_ID_HEADER = "x-request-id"
LOG_FILE_NAME = "timeline.log"

QUIET_LOGGERS = (
    "uvicorn.access",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "aiosqlite",
    "asyncpg",
    "httpx",
    "httpcore",
    "asyncio",
)

_VEHICLE_PATH = re.compile(r"/vehicles/(?P<vehicle_id>[^/]+)/activity/?$")

_PRE_CHAIN: list[Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]


def resolve_level(name: str) -> int:
    """Map a level name to its stdlib constant, INFO when unknown."""
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def wants_json(log_format: str, is_development: bool) -> bool:
    if log_format == "auto":
        return not is_development
    return log_format == "json"


def _formatter(json_output: bool) -> structlog.stdlib.ProcessorFormatter:
    if json_output:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=_PRE_CHAIN,
    )


def setup_logging(settings: "Settings") -> None:
    """Route stdlib and structlog records through one set of handlers."""
    level = resolve_level(settings.log_level)

    structlog.configure(
        processors=_PRE_CHAIN + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers = []
    root.setLevel(level)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_formatter(wants_json(settings.log_format, settings.is_development)))
    root.addHandler(console)

    if settings.log_to_file:
        # Files are always JSON; they are read by machines
        logs_dir = Path(settings.logs_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            logs_dir / LOG_FILE_NAME,
            maxBytes=settings.log_file_max_bytes,
            backupCount=settings.log_file_backup_count,
            encoding="utf-8",
        )
        rotating.setFormatter(_formatter(json_output=True))
        root.addHandler(rotating)

    quiet_level = max(logging.WARNING, level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.stdlib.get_logger(name)


def vehicle_id_from_path(path: str) -> str | None:
    """Extract the vehicle id from an activity timeline URL, if it is one."""
    match = _VEHICLE_PATH.search(path)
    return match.group("vehicle_id") if match else None


class LoggingMiddleware:
    """
    ASGI middleware that logs one ``request_completed`` event per request.

    The request id is taken from the ``X-Request-ID`` header when the caller
    sends one, generated otherwise, and echoed back on the response. Timeline
    requests also bind ``vehicle_id`` so aggregator events can be correlated
    without repeating it. Health probes are not logged.
    """

    SKIP_PATHS = {"/health"}

    def __init__(self, app: Any) -> None:
        self.app = app
        self.logger = get_logger("http")

    async def __call__(self, scope: dict, receive: Any, send: Any) -> None:
        path = scope.get("path", "")
        if scope["type"] != "http" or path in self.SKIP_PATHS:
            await self.app(scope, receive, send)
            return

        request_id = self._incoming_request_id(scope) or uuid.uuid4().hex[:12]
        context: dict[str, Any] = {
            "request_id": request_id,
            "method": scope.get("method", ""),
            "path": path,
        }
        vehicle_id = vehicle_id_from_path(path)
        if vehicle_id:
            context["vehicle_id"] = vehicle_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(**context)

        status_code = 500
        started = time.perf_counter()

        async def send_with_request_id(message: dict) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
                headers = list(message.get("headers", []))
                headers.append((REQUEST_ID_HEADER.encode(), request_id.encode()))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            log = self.logger.info if status_code < 400 else self.logger.warning
            log(
                "request_completed",
                status_code=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            structlog.contextvars.clear_contextvars()

    @staticmethod
    def _incoming_request_id(scope: dict) -> str | None:
        for name, value in scope.get("headers", []):
            if name.lower() == REQUEST_ID_HEADER.encode():
                return value.decode("latin-1")[:64] or None
        return None
