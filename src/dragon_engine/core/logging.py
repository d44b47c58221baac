"""Structured logging configuration for the dragon engine.

structlog renders a console view while developing and JSON lines in
production; ``Settings.log_level`` and ``Settings.log_json`` pick which.
The game service binds ``campaign_id`` and ``action_type`` for the length
of one player action, so every line logged while resolving it carries
both.

Example:
    >>> from dragon_engine.core.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Combat round resolved", enemy_damage=7, round=2)
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger

    from dragon_engine.core.config import Settings


_SECRET_KEYS = frozenset({"api_key", "openrouter_api_key", "openai_api_key", "authorization"})
_NOISY_LIBRARIES = ("httpx", "httpcore", "openai")


def add_app_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Tag every entry with the application name."""
    event_dict["app"] = "dragon_engine"
    return event_dict


def redact_secrets(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Mask values logged under API-key-like names."""
    for key in _SECRET_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def build_processors(*, json_format: bool) -> list[Processor]:
    """Processor chain for console or JSON output."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    return processors


def configure_logging(
    *,
    level: str | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
    settings: Settings | None = None,
) -> None:
    """Configure application-wide logging.

    Arguments left as None come from settings.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        json_format: Emit JSON lines instead of console output.
        log_file: Optional file that also receives standard library logs.
        settings: Settings to read defaults from; loaded if None.

    Example:
        >>> configure_logging(level="DEBUG", json_format=False)
    """
    if level is None or json_format is None:
        if settings is None:
            from dragon_engine.core.config import get_settings

            settings = get_settings()
        level = level or settings.log_level
        json_format = settings.log_json if json_format is None else json_format

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=build_processors(json_format=json_format),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Standard library logging for the openai/httpx stack
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=numeric_level,
        stream=sys.stdout,
        force=True,
    )
    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        logging.getLogger().addHandler(file_handler)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structlog logger, typically ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind key-value pairs to every log line on the current context.

    Example:
        >>> bind_context(campaign_id=3, action_type="attack")
        >>> logger.info("Action received")  # Includes campaign_id and action_type
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop bound context so it cannot leak into the next action."""
    structlog.contextvars.clear_contextvars()


__all__ = [
    "configure_logging",
    "build_processors",
    "redact_secrets",
    "get_logger",
    "bind_context",
    "clear_context",
]
