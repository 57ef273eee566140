"""
Structured logging for the relational projector.

Every module logs through structlog with event-style keys::

    logger = get_logger(__name__)
    logger.info("bulk_load_completed", kind="span_equipment", rows=1234)

The worker process renders one JSON document per line when stdout is not a
terminal, with ECS field names so the lines can be shipped as-is:

    timestamp -> @timestamp      level    -> log.level
    logger    -> log.logger      position -> event.sequence

On a terminal the same entries are rendered by structlog's console renderer.

During replay and catch-up the driver scopes ``mode`` (and the worker may scope
other keys) with :class:`LogContext`, so every line written inside the block
carries them.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

DEFAULT_SERVICE = "relational-projector"

_ECS_FIELDS = {
    "timestamp": "@timestamp",
    "level": "log.level",
    "logger": "log.logger",
    "position": "event.sequence",
}


def _service_metadata(service: str) -> Processor:
    def add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", service)
        return event_dict

    return add_service


def _ecs_field_names(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for key, ecs_key in _ECS_FIELDS.items():
        if key in event_dict:
            event_dict[ecs_key] = event_dict.pop(key)
    return event_dict


def build_processors(service: str, json_format: bool) -> list[Processor]:
    """Processor chain for one output format, renderer last."""
    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _service_metadata(service),
    ]
    if json_format:
        return processors + [
            structlog.processors.format_exc_info,
            _ecs_field_names,
            structlog.processors.JSONRenderer(),
        ]
    return processors + [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = DEFAULT_SERVICE,
) -> None:
    """Configure structlog for the process.

    Args:
        level: DEBUG, INFO, WARNING or ERROR
        json_format: JSON lines when True, console when False, by tty when None
        service: value of ``service.name`` on every entry
    """
    if json_format is None:
        json_format = not sys.stdout.isatty()
    threshold = logging.getLevelName(level.upper())

    structlog.configure(
        processors=build_processors(service, json_format),
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    # psycopg logs through the standard library
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=threshold)


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


class LogContext:
    """Bind log keys for the duration of a block.

    Keys bound before the block, including ones the block shadows, have their
    previous values again once it exits.

    Example:
        with LogContext(mode="bulk"):
            logger.info("replay_started")
    """

    def __init__(self, **bindings: Any) -> None:
        self._bindings = bindings
        self._scope: Any = None

    def __enter__(self) -> LogContext:
        self._scope = structlog.contextvars.bound_contextvars(**self._bindings)
        self._scope.__enter__()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._scope.__exit__(*exc_info)
        self._scope = None


__all__ = ["DEFAULT_SERVICE", "LogContext", "build_processors", "configure_logging", "get_logger"]
