"""
Utility functions for the application
"""

import sys
import time
import logging
import orjson
import structlog
from fastuuid import uuid4
from structlog import contextvars as struct_context
from contextlib import contextmanager
from .config import settings


def configure_structlog():
    """Configure structlog according to LOG_LEVEL"""
    processors = [
        struct_context.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=False),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.LOG_LEVEL == "debug":
        processors.append(structlog.dev.ConsoleRenderer())
        log_level = logging.DEBUG
    elif settings.LOG_LEVEL == "info":
        processors.append(structlog.dev.ConsoleRenderer())
        log_level = logging.INFO
    else:  # false
        # only fatal output gets through
        processors.append(structlog.processors.JSONRenderer())
        log_level = logging.CRITICAL

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


configure_structlog()

_logger = structlog.get_logger()


def generate_uuid() -> str:
    """UUID v4 string (fastuuid)"""
    return str(uuid4())


class JSONEncoder:
    """json-module style facade over orjson"""

    @staticmethod
    def dumps(obj, **kwargs) -> str:
        # orjson returns bytes
        return orjson.dumps(obj).decode("utf-8")

    @staticmethod
    def loads(s, **kwargs):
        return orjson.loads(s)


json_lib = JSONEncoder()


def bind_request_context(**kwargs) -> None:
    """Bind structured log context, skipping empty values."""
    filtered = {k: v for k, v in kwargs.items() if v is not None}
    if filtered:
        struct_context.bind_contextvars(**filtered)


def reset_request_context(*keys: str) -> None:
    """Drop the given context keys, or all of them when none are given."""
    if keys:
        struct_context.unbind_contextvars(*keys)
    else:
        struct_context.clear_contextvars()


def error_log(message: str, *args, **kwargs) -> None:
    """
    Error-level log, emitted at every LOG_LEVEL.

    Args:
        message: log message, %-formatted with *args when given
        **kwargs: extra structured fields
    """
    formatted_message = message % args if args else message
    _logger.error(formatted_message, **kwargs)


def info_log(message: str, *args, **kwargs) -> None:
    """Info-level log, emitted for LOG_LEVEL info and debug."""
    if settings.LOG_LEVEL in ["info", "debug"]:
        formatted_message = message % args if args else message
        _logger.info(formatted_message, **kwargs)


def debug_log(message: str, *args, **kwargs) -> None:
    """Debug-level log, emitted for LOG_LEVEL debug only."""
    if settings.LOG_LEVEL == "debug":
        formatted_message = message % args if args else message
        _logger.debug(formatted_message, **kwargs)


def request_stage_log(stage: str, message: str, **kwargs) -> None:
    """
    Log info-level request stage transitions without dumping payload data.

    Args:
        stage: Logical stage identifier (e.g. "received", "upstream_request").
        message: Human readable description for terminal viewers.
        **kwargs: Extra structured fields to enrich the log.
    """
    normalized_stage = (stage or "unknown").strip().lower().replace(" ", "_")
    info_log(f"[REQUEST] {message}", stage=normalized_stage, **kwargs)


@contextmanager
def perf_timer(operation_name: str, log_result: bool = True, threshold_ms: float = 0):
    """
    Time the enclosed block.

    Yields a dict whose elapsed_ms / elapsed_s keys are filled in on exit.

    Example:
        with perf_timer("load_code_assist") as timer:
            await discover()
    """
    timer_dict = {"elapsed_ms": 0, "elapsed_s": 0}
    start_time = time.perf_counter()

    try:
        yield timer_dict
    finally:
        elapsed_s = time.perf_counter() - start_time
        elapsed_ms = elapsed_s * 1000
        timer_dict["elapsed_ms"] = elapsed_ms
        timer_dict["elapsed_s"] = elapsed_s

        if log_result and elapsed_ms >= threshold_ms:
            debug_log(
                f"⏱️ {operation_name}",
                elapsed_ms=f"{elapsed_ms:.2f}ms",
                elapsed_s=f"{elapsed_s:.4f}s"
            )
