"""Structlog configuration.

Every event is rendered once per handler: to stdout (JSON, or colored
console output in development) and, outside tests, to a rotating JSON file
plus an error-only file. Request context (request, user, course, video) is
merged into each event; bearer tokens are masked.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from structlog.types import EventDict, Processor

from academy_core.core.context import get_context


if TYPE_CHECKING:
    from academy_core.config.settings import Settings


MASKED_KEYS = frozenset({"authorization", "token", "access_token", "secret"})

NOISY_LOGGERS = ("uvicorn.access", "cassandra", "cassandra.cluster", "redis")


def add_request_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Merge bound context without overriding fields passed explicitly."""
    for key, value in get_context().items():
        event_dict.setdefault(key, value)
    return event_dict


def mask_secrets(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    for key in MASKED_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def _processors(settings: "Settings") -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_request_context,
        mask_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.log_include_caller_info:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            )
        )
    return processors


def _handler(
    handler: logging.Handler, level: str, renderer: Processor, chain: list[Processor]
) -> logging.Handler:
    handler.setLevel(level.upper())
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=chain)
    )
    return handler


def configure_structlog(
    settings: "Settings",
    log_dir: Path | str | None = None,
    *,
    file_output: bool = True,
) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        settings: Application settings
        log_dir: Directory for log files (default: `settings.log_dir`)
        file_output: False to log to stdout only (tests)
    """
    chain = _processors(settings)
    if settings.log_format == "console":
        console: Processor = structlog.dev.ConsoleRenderer(colors=True)
    else:
        console = structlog.processors.JSONRenderer()

    handlers = [
        _handler(logging.StreamHandler(sys.stdout), settings.log_level, console, chain)
    ]

    if file_output:
        directory = Path(log_dir or settings.log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        for filename, level in (
            (f"{settings.app_name}.log", settings.log_level),
            (f"{settings.app_name}.error.log", "ERROR"),
        ):
            rotating = RotatingFileHandler(
                directory / filename,
                maxBytes=settings.log_file_max_bytes,
                backupCount=settings.log_file_backup_count,
                encoding="utf-8",
            )
            handlers.append(
                _handler(rotating, level, structlog.processors.JSONRenderer(), chain)
            )

    root = logging.getLogger()
    root.handlers = handlers
    root.setLevel(settings.log_level.upper())
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[*chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
