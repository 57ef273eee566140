"""
Event source protocol and the in-memory implementation.

An event source delivers events in one total order, identified by a
monotonically increasing position. Two calls are needed by the projection:

    replay_all()          every committed event, from the beginning
    read_since(position)  committed events after ``position``

Both are lazy iterators. Events of types the projection does not handle are
skipped, but ``position`` still moves past them, so a caller resuming from
``source.position`` never reads them again.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any, Protocol, runtime_checkable

from relational_projector.events import EventEnvelope, ProjectionEvent
from relational_projector.events.codec import decode


@runtime_checkable
class EventSource(Protocol):
    """Ordered, append-only stream of stored events."""

    @property
    def position(self) -> int:
        """Highest position read so far (0 before anything was read)."""
        ...

    def replay_all(self) -> Iterator[EventEnvelope]:
        ...

    def read_since(self, position: int) -> Iterator[EventEnvelope]:
        ...


class InMemoryEventSource:
    """
    Event source backed by a list. Used by tests and dry runs.

    Example:
        >>> source = InMemoryEventSource()
        >>> source.append(WorkTaskStatusChanged(work_task_id=task_id, status="Done"))
        EventEnvelope(position=1, ...)
        >>> [e.position for e in source.replay_all()]
        [1]
    """

    def __init__(self, events: Iterable[ProjectionEvent] = ()) -> None:
        self._log: list[tuple[int, ProjectionEvent | None]] = []
        self._position = 0
        for event in events:
            self.append(event)

    @property
    def position(self) -> int:
        return self._position

    def append(self, event: ProjectionEvent) -> EventEnvelope:
        position = len(self._log) + 1
        self._log.append((position, event))
        return EventEnvelope(position=position, event=event)

    def append_stored(self, event_type: str, data: dict[str, Any] | str) -> EventEnvelope | None:
        """Append an event the way the store holds it (type name + JSON document)."""
        event = decode(event_type, data)
        position = len(self._log) + 1
        self._log.append((position, event))
        return EventEnvelope(position=position, event=event) if event is not None else None

    def replay_all(self) -> Iterator[EventEnvelope]:
        return self.read_since(0)

    def read_since(self, position: int) -> Iterator[EventEnvelope]:
        for event_position, event in self._log[position:]:
            self._position = max(self._position, event_position)
            if event is not None:
                yield EventEnvelope(position=event_position, event=event)

    def __len__(self) -> int:
        return len(self._log)


__all__ = ["EventSource", "InMemoryEventSource"]
