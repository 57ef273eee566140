"""
Decode stored event payloads into typed event variants.

The event store keeps each event as a type name plus a JSON document. Type
names are accepted either as the class name (``SpanEquipmentMoved``) or as the
snake_case alias the store writes (``span_equipment_moved``).

Events the projection has no handler for are part of the same stream (route
network edits, user events, ...). ``decode`` returns ``None`` for them unless
``strict=True``.

Examples:
    >>> event = decode("interest_unregistered", {"interestId": str(uuid4())})
    >>> type(event).__name__
    'InterestUnregistered'
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from relational_projector.core.errors import EventSourceError, UnknownEventTypeError
from relational_projector.events import EVENT_TYPES, ProjectionEvent
from relational_projector.events.models import EventModel

_REGISTRY: dict[str, type[EventModel]] = {}
for _event_cls in EVENT_TYPES:
    _REGISTRY[_event_cls.__name__] = _event_cls
    _REGISTRY[to_snake(_event_cls.__name__)] = _event_cls


def event_class_for(event_type: str) -> type[EventModel] | None:
    """Look up the event variant for a stored type name (``None`` if not projected)."""
    # Stores may qualify the name with a namespace ("Foo.Bar.SpanEquipmentMoved")
    return _REGISTRY.get(event_type) or _REGISTRY.get(event_type.rsplit(".", 1)[-1])


def decode(
    event_type: str,
    data: dict[str, Any] | str | bytes,
    *,
    strict: bool = False,
) -> ProjectionEvent | None:
    """Decode one stored event.

    Args:
        event_type: Stored type name
        data: JSON document (already parsed, or raw text)
        strict: Raise :class:`UnknownEventTypeError` for unknown types

    Raises:
        EventSourceError: payload is not valid for its declared type
    """
    event_cls = event_class_for(event_type)
    if event_cls is None:
        if strict:
            raise UnknownEventTypeError(event_type)
        return None

    if isinstance(data, (str, bytes)):
        data = json.loads(data)

    try:
        return event_cls.model_validate(data)  # type: ignore[return-value]
    except ValidationError as e:
        raise EventSourceError(
            f"Invalid payload for {event_type}: {e.error_count()} error(s)",
            cause=e,
        ).with_context(event_type=event_type) from e


__all__ = ["decode", "event_class_for"]
