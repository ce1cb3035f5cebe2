"""Structured logging setup shared by the CLI and the watcher."""

from __future__ import annotations

import json
import logging
from typing import Any

import structlog

# Module-level flag to prevent multiple configuration
_logging_configured = False

_LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
_RESET = "\033[0m"


def _add_module_info(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Shorten ``echo_env.<module>`` logger names to the module part."""
    logger_name = event_dict.get("logger", "unknown")
    if logger_name.startswith("echo_env."):
        event_dict["module"] = logger_name.split(".", 1)[1]
    else:
        event_dict["module"] = logger_name
    return event_dict


def _pretty_json_renderer(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> str:
    return json.dumps(event_dict, indent=2, ensure_ascii=False, default=str)


def _console_renderer(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> str:
    """
    Human-readable single line: timestamp, coloured level, module, event and
    any extra key/value pairs.
    """
    timestamp = event_dict.get("timestamp", "")
    level = event_dict.get("level", "").upper()
    module = event_dict.get("module", "")
    event = event_dict.get("event", "")

    color = _LEVEL_COLORS.get(level, "")
    main_msg = f"{timestamp} {color}[{level}]{_RESET} {module}: {event}"

    skip_fields = {"timestamp", "level", "module", "event", "logger", "exception"}
    other_fields = [
        f"{key}={value}" for key, value in event_dict.items() if key not in skip_fields
    ]
    if other_fields:
        main_msg += f" | {', '.join(other_fields)}"

    exception = event_dict.get("exception")
    if exception:
        main_msg += f"\n{exception}"
    return main_msg


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Configure structlog on top of stdlib logging, once per process."""

    global _logging_configured

    if _logging_configured:
        return
    _logging_configured = True

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[logging.StreamHandler()],
    )

    renderer = _pretty_json_renderer if fmt == "json" else _console_renderer
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _add_module_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a logger instance, typically ``get_logger(__name__)``.

    Usage:
        logger = get_logger(__name__)
        logger.info("Sync finished", destination=".env.example", added=2)
    """
    return structlog.get_logger(name)
