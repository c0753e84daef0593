"""Structured logging for the LostWorld turn engine.

Every turn, effect and store mutation is logged through structlog with
key-value context. While a turn runs, ``turn_context`` binds the turn
number so each line emitted during that turn carries it. Console output
is rendered for humans; ``log_json`` switches to one JSON object per line.

Example:
    >>> from lostworld.core.logging import get_logger, turn_context
    >>> logger = get_logger(__name__)
    >>> with turn_context(4):
    ...     logger.info("Entity moved", entity_id="npc_hans_001")
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor

from lostworld.core.config import Settings, get_settings


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger


STDLIB_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

NOISY_LOGGERS = ("httpx", "httpcore", "openai")
"""Third-party loggers held at WARNING; they log every oracle request."""


def add_engine_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Tag every log entry with the engine name."""
    event_dict.setdefault("app", "lostworld")
    return event_dict


def _processors(json_format: bool) -> list[Processor]:
    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_engine_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_format:
        return [
            *shared,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [
        *shared,
        structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        ),
    ]


def configure_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, output logs in JSON format.
        log_file: Optional path that also receives standard library records.

    Example:
        >>> configure_logging(level="DEBUG", json_format=False)
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=_processors(json_format),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # openai and httpx log through the standard library
    logging.basicConfig(
        format=STDLIB_FORMAT,
        level=numeric_level,
        stream=sys.stdout,
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(STDLIB_FORMAT))
        logging.getLogger().addHandler(file_handler)


def configure_from_settings(settings: Settings | None = None) -> None:
    """Configure logging from the application settings.

    Debug mode forces DEBUG regardless of ``log_level``.

    Args:
        settings: Settings to read; the cached application settings by default.
    """
    settings = settings or get_settings()
    configure_logging(
        level="DEBUG" if settings.debug else settings.log_level,
        json_format=settings.log_json,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger, typically with ``__name__``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables included in all subsequent log entries."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove previously bound context variables."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def turn_context(turn: int, **extra: Any) -> Iterator[None]:
    """Bind the turn number (and any extra keys) for the duration of a turn.

    Args:
        turn: Turn being processed.
        **extra: Further context, e.g. the player action.
    """
    bind_context(turn=turn, **extra)
    try:
        yield
    finally:
        unbind_context("turn", *extra)


__all__ = [
    "NOISY_LOGGERS",
    "add_engine_context",
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "turn_context",
]
