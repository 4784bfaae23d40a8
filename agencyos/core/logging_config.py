# agencyos/core/logging_config.py

import contextvars
import logging
import sys
import time
import uuid

from fastapi import Request
from loguru import logger

from agencyos.core.config import settings

trace_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("trace_id", default="-")

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[trace_id]: <16.16}</magenta> | "
    "<cyan>{name}:{line}</cyan> - <level>{message}</level>"
)

# Third-party loggers that are too chatty below WARNING
QUIET_LOGGERS = ("httpx", "httpcore", "pymongo", "multipart")

logger.configure(extra={"trace_id": "-"})


class InterceptHandler(logging.Handler):
    """Forwards stdlib records (uvicorn, celery, httpx) to loguru with the current trace id."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.bind(trace_id=trace_id_var.get()).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(level: str | None = None) -> None:
    level = (level or settings.LOG_LEVEL).upper()
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=LOG_FORMAT,
        enqueue=True,
        backtrace=True,
        diagnose=level == "DEBUG",
    )
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logger.debug(f"Logging ready at level {level}.")


async def add_trace_id_middleware(request: Request, call_next):
    """Tags each request with a trace id (taken from `X-Request-ID` when sent) and logs its duration."""
    trace_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:16]
    token = trace_id_var.set(trace_id)
    started = time.perf_counter()
    route = f"{request.method} {request.url.path}"
    try:
        with logger.contextualize(trace_id=trace_id):
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(f"{route} crashed after {(time.perf_counter() - started) * 1000:.1f}ms")
                raise
            logger.info(f"{route} -> {response.status_code} in {(time.perf_counter() - started) * 1000:.1f}ms")
        response.headers["X-Trace-ID"] = trace_id
        return response
    finally:
        trace_id_var.reset(token)
