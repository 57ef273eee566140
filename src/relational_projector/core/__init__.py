"""Core primitives: errors, structured logging, settings."""

from relational_projector.core.errors import (
    CancellationRequested,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    EventSourceError,
    ProjectionModeError,
    ProjectorError,
    ReferentialIntegrityViolation,
    SinkUnavailable,
    UnknownEventTypeError,
)
from relational_projector.core.logging import LogContext, configure_logging, get_logger
from relational_projector.core.settings import ProjectorSettings, get_settings, reset_settings

__all__ = [
    "CancellationRequested",
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "EventSourceError",
    "LogContext",
    "ProjectionModeError",
    "ProjectorError",
    "ProjectorSettings",
    "ReferentialIntegrityViolation",
    "SinkUnavailable",
    "UnknownEventTypeError",
    "configure_logging",
    "get_logger",
    "get_settings",
    "reset_settings",
]
