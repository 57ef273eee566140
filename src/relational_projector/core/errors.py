"""
Structured error types for the relational projector.

The projection favors all-or-nothing correctness of its derived state over
availability: every error raised while applying an event propagates to the
processing loop and terminates it. The hierarchy exists so that the worker can
log *what kind* of failure ended the run (a stream ordering violation, an
unreachable sink, a broken event store) with enough context to act on it.

Manifesto:
    - **Typed Error Hierarchy:** One subclass per failure family
    - **Explicit Retry Semantics:** Each error states whether a restart helps
    - **Rich Context:** Errors carry entity kind/id, event type and position
    - **Error Chaining:** Driver exceptions are kept as ``cause``

Architecture:
    ::

        ┌────────────────────────────────────────────────────────────────┐
        │                        ProjectorError                          │
        │      (category, retryable, context, cause)                     │
        ├────────────────────────────────────────────────────────────────┤
        │                                                                │
        │  ReferentialIntegrityViolation   SinkUnavailable               │
        │  (STATE)                         (DATABASE, retryable)         │
        │                                                                │
        │  EventSourceError                UnknownEventTypeError         │
        │  (SOURCE, retryable)             (SOURCE)                      │
        │                                                                │
        │  ProjectionModeError             ConfigError                   │
        │  (STATE)                         (CONFIG)                      │
        │                                                                │
        │  CancellationRequested  (not a failure: orderly shutdown)      │
        └────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = ReferentialIntegrityViolation.missing("span_equipment_specification", spec_id)
    >>> error.retryable
    False
    >>> error.to_dict()["category"]
    'STATE'

Tags:
    error-handling, exception-hierarchy, error-context, projector
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID


class ErrorCategory(str, Enum):
    """Standard error categories for classification and log routing."""

    DATABASE = "DATABASE"
    SOURCE = "SOURCE"
    STATE = "STATE"
    CONFIG = "CONFIG"
    LIFECYCLE = "LIFECYCLE"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a projector error.

    Attributes:
        event_type: Type name of the event being applied when the error occurred
        position: Event-store position of that event
        entity_kind: Kind of entity involved (e.g. ``"span_equipment"``)
        entity_id: Identifier of the entity involved
        table: Sink table involved, for database errors
        metadata: Additional key-value pairs
    """

    event_type: str | None = None
    position: int | None = None
    entity_kind: str | None = None
    entity_id: str | None = None
    table: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["event_type", "position", "entity_kind", "entity_id", "table"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ProjectorError(Exception):
    """
    Base exception for all projector errors.

    Subclasses set ``default_category`` and ``default_retryable``. ``retryable``
    here means "restarting the process (which re-runs the bulk replay) may
    succeed"; the projector itself never retries an event.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ProjectorError:
        """
        Add context to this error (fluent API).

        Usage:
            raise SinkUnavailable("insert failed").with_context(table="span_equipment")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# STATE ERRORS
# =============================================================================


class ReferentialIntegrityViolation(ProjectorError):
    """
    An event references a catalog entry or entity the projection does not know.

    The event stream guarantees that specifications are added before they are
    used and that entities exist before they are mutated. When that ordering
    contract is broken the derived state can no longer be trusted, so the run
    stops.
    """

    default_category = ErrorCategory.STATE
    default_retryable = False

    @classmethod
    def missing(cls, entity_kind: str, entity_id: UUID) -> ReferentialIntegrityViolation:
        error = cls(f"Unknown {entity_kind} referenced: {entity_id}")
        return error.with_context(entity_kind=entity_kind, entity_id=str(entity_id))


class ProjectionModeError(ProjectorError):
    """Invalid transition of the projection driver's bulk/incremental state machine."""

    default_category = ErrorCategory.STATE
    default_retryable = False


# =============================================================================
# I/O ERRORS
# =============================================================================


class SinkUnavailable(ProjectorError):
    """The relational sink cannot be reached or rejected a statement."""

    default_category = ErrorCategory.DATABASE
    default_retryable = True


class EventSourceError(ProjectorError):
    """The event store could not be read."""

    default_category = ErrorCategory.SOURCE
    default_retryable = True


class UnknownEventTypeError(ProjectorError):
    """The codec was asked, in strict mode, to decode an event type it does not know."""

    default_category = ErrorCategory.SOURCE
    default_retryable = False

    def __init__(self, event_type: str, **kwargs: Any):
        super().__init__(f"Unknown event type: {event_type}", **kwargs)
        self.context.event_type = event_type


# =============================================================================
# CONFIG / LIFECYCLE
# =============================================================================


class ConfigError(ProjectorError):
    """Missing or invalid configuration."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class CancellationRequested(ProjectorError):
    """
    Cooperative shutdown was requested between two events.

    Not a failure. Raised by :func:`raise_if_cancelled` and caught by the
    worker, which then exits its loop in an orderly way.
    """

    default_category = ErrorCategory.LIFECYCLE
    default_retryable = False


def raise_if_cancelled(cancel: Any | None) -> None:
    """Raise :class:`CancellationRequested` when *cancel* (a ``threading.Event``) is set."""
    if cancel is not None and cancel.is_set():
        raise CancellationRequested("Cancellation requested")


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ProjectorError",
    "ReferentialIntegrityViolation",
    "ProjectionModeError",
    "SinkUnavailable",
    "EventSourceError",
    "UnknownEventTypeError",
    "ConfigError",
    "CancellationRequested",
    "raise_if_cancelled",
]
