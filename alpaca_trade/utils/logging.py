"""Structured logging setup with structlog.

Supports two output modes:
- "json": Machine-readable JSON lines (for services and log shipping)
- "console": Human-readable colored output (for development and the CLI)

The library itself only calls ``structlog.get_logger()``; applications
call ``setup_logging`` once. Secret credentials are masked before any
renderer sees the event.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from typing import Any

import structlog

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
VALID_LOG_FORMATS = frozenset({"console", "json"})

REDACTED = "***"

_SECRET_KEYS = frozenset({"apca-api-secret-key", "secret_key"})


def _mask(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            k: REDACTED if str(k).lower() in _SECRET_KEYS else _mask(v)
            for k, v in value.items()
        }
    return value


def redact_secrets(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Mask secret key values, including inside header mappings."""
    for key, value in list(event_dict.items()):
        if key.lower() in _SECRET_KEYS:
            event_dict[key] = REDACTED
        elif isinstance(value, Mapping):
            event_dict[key] = _mask(value)
    return event_dict


def _processors_for(
    log_format: str,
) -> tuple[list[structlog.types.Processor], structlog.types.Processor]:
    """Pre-chain shared by structlog and stdlib records, plus the renderer."""
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        return pre_chain, structlog.processors.JSONRenderer()
    return pre_chain, structlog.dev.ConsoleRenderer()


def setup_logging(level: str = "INFO", log_format: str = "console") -> None:
    """Configure structlog for an application using this client.

    Safe to call again: the root handler is replaced, and loggers are not
    cached so module-level loggers pick up the new configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Output format - "json" or "console".
    """
    level = level.upper()
    if level not in VALID_LOG_LEVELS:
        raise ValueError(
            f"log level must be one of {sorted(VALID_LOG_LEVELS)}, got {level}"
        )
    if log_format not in VALID_LOG_FORMATS:
        raise ValueError(
            f"log format must be one of {sorted(VALID_LOG_FORMATS)}, got {log_format}"
        )

    pre_chain, renderer = _processors_for(log_format)
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(stderr_handler)
    root.setLevel(level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named structlog logger."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
