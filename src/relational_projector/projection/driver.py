"""
Projection driver: applies events to the state stores and, once the initial
replay is exported, forwards every resulting change to the sink.

Manifesto:
    - **One thread of control:** events are applied one at a time, in
      delivery order, and every event sees the settled result of all
      previous ones
    - **Two modes, one way:** ``BULK`` while replaying history (no sink
      calls), ``INCREMENTAL`` after the single export pass
    - **Fail the run, not the event:** any error while applying an event
      propagates; there is no skipping and no dead-lettering

Architecture:
    ::

        EventSource ──► ProjectionDriver.apply(event)
                              │ match event (one handler per variant)
                              ▼
                        ProjectionState (stores)
                              │ change-set: [record, ...]
                              ▼
               BULK: discard      INCREMENTAL: NEW→insert
                                               UPDATED→update
                                               REMOVED→delete

        finish_bulk(): ensure_schema → bulk_load × entity kind → INCREMENTAL

Tags:
    projection, event-sourcing, cqrs, state-machine, driver
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import assert_never

from relational_projector.core.errors import (
    ProjectionModeError,
    ProjectorError,
    raise_if_cancelled,
)
from relational_projector.core.logging import LogContext, get_logger
from relational_projector.events import (
    EventEnvelope,
    InterestUnregistered,
    NodeContainerPlacedInRouteNetwork,
    NodeContainerRemovedFromRouteNetwork,
    NodeContainerSpecificationAdded,
    NodeContainerSpecificationChanged,
    ProjectionEvent,
    SpanEquipmentAddressInfoChanged,
    SpanEquipmentAffixedToParent,
    SpanEquipmentDetachedFromParent,
    SpanEquipmentMerged,
    SpanEquipmentMoved,
    SpanEquipmentPlacedInRouteNetwork,
    SpanEquipmentRemoved,
    SpanEquipmentSpecificationAdded,
    SpanEquipmentSpecificationChanged,
    SpanSegmentsConnectedToSimpleTerminals,
    SpanSegmentsDisconnectedFromTerminals,
    SpanStructureSpecificationAdded,
    TerminalEquipmentAddressInfoChanged,
    TerminalEquipmentNamingInfoChanged,
    TerminalEquipmentPlacedInNodeContainer,
    TerminalEquipmentRemoved,
    TerminalEquipmentSpecificationAdded,
    WalkOfInterestRegistered,
    WalkOfInterestRouteNetworkElementsModified,
    WorkTaskCreated,
    WorkTaskStatusChanged,
)
from relational_projector.events.source import EventSource
from relational_projector.sink import RelationalSink
from relational_projector.state.records import ChangeType, EntityKind, StateRecord
from relational_projector.state.store import ProjectionState

logger = get_logger(__name__)

REPLAY_PROGRESS_EVERY = 100_000


class ProjectionMode(str, Enum):
    BULK = "bulk"
    INCREMENTAL = "incremental"


@dataclass
class ProjectionStats:
    """Counters for observability."""

    events_applied: int = 0
    changes_forwarded: int = 0
    bulk_rows: dict[str, int] = field(default_factory=dict)


def _optional(record: StateRecord | None) -> list[StateRecord]:
    return [record] if record is not None else []


class ProjectionDriver:
    """
    Owns the projection state and the BULK -> INCREMENTAL mode.

    A driver is built fresh for every run (and every test); nothing about its
    mode is global.

    Example:
        >>> driver = ProjectionDriver(InMemorySink())
        >>> driver.replay(source)
        >>> driver.finish_bulk()
        >>> driver.catch_up(source)
        0
    """

    def __init__(self, sink: RelationalSink, state: ProjectionState | None = None) -> None:
        self._sink = sink
        self.state = state if state is not None else ProjectionState()
        self._mode = ProjectionMode.BULK
        self._position = 0
        self.stats = ProjectionStats()

    @property
    def sink(self) -> RelationalSink:
        return self._sink

    @property
    def mode(self) -> ProjectionMode:
        return self._mode

    @property
    def position(self) -> int:
        """Position of the last event read from a source."""
        return self._position

    # =========================================================================
    # Applying events
    # =========================================================================

    def apply(self, event: ProjectionEvent) -> list[StateRecord]:
        """Apply one event; in incremental mode its changes are written to the sink."""
        changes = self._dispatch(event)
        self.stats.events_applied += 1
        if self._mode is ProjectionMode.INCREMENTAL:
            self._forward(changes)
        return changes

    def apply_envelope(self, envelope: EventEnvelope) -> list[StateRecord]:
        try:
            changes = self.apply(envelope.event)
        except ProjectorError as e:
            e.with_context(event_type=envelope.event_type, position=envelope.position)
            raise
        self._position = max(self._position, envelope.position)
        return changes

    def replay(self, source: EventSource, cancel: threading.Event | None = None) -> int:
        """Apply the full history of *source* in bulk mode. Returns the number of events."""
        if self._mode is not ProjectionMode.BULK:
            raise ProjectionModeError("Replay is only possible before the bulk export")

        start = time.perf_counter()
        count = 0
        with LogContext(mode=self._mode.value):
            logger.info("replay_started")
            for envelope in source.replay_all():
                raise_if_cancelled(cancel)
                self.apply_envelope(envelope)
                count += 1
                if count % REPLAY_PROGRESS_EVERY == 0:
                    logger.info("replay_progress", events=count, position=envelope.position)

            self._position = max(self._position, source.position)
            logger.info(
                "replay_completed",
                events=count,
                position=self._position,
                duration_ms=round((time.perf_counter() - start) * 1000, 1),
                **self.state.stats(),
            )
        return count

    def finish_bulk(self) -> dict[EntityKind, int]:
        """Export the full state once, then switch to incremental mode.

        Returns rows written per entity kind.
        """
        if self._mode is not ProjectionMode.BULK:
            raise ProjectionModeError("Bulk export already done; the driver is incremental")

        self._sink.ensure_schema()

        rows: dict[EntityKind, int] = {}
        for kind, records in self.state.snapshot().items():
            rows[kind] = self._sink.bulk_load(kind, records)
        self.stats.bulk_rows = {kind.value: count for kind, count in rows.items()}

        self._mode = ProjectionMode.INCREMENTAL
        logger.info("projection_mode_changed", mode=self._mode.value, position=self._position)
        return rows

    def catch_up(self, source: EventSource, cancel: threading.Event | None = None) -> int:
        """Apply events committed since the last position. Returns how many were applied."""
        if self._mode is not ProjectionMode.INCREMENTAL:
            raise ProjectionModeError("Catch-up requires the bulk export to be done first")

        count = 0
        with LogContext(mode=self._mode.value):
            for envelope in source.read_since(self._position):
                raise_if_cancelled(cancel)
                self.apply_envelope(envelope)
                count += 1
            self._position = max(self._position, source.position)
        return count

    # =========================================================================
    # Sink forwarding
    # =========================================================================

    def _forward(self, changes: list[StateRecord]) -> None:
        for record in changes:
            match record.change:
                case ChangeType.NEW:
                    self._sink.insert(record.kind, record)
                case ChangeType.UPDATED:
                    self._sink.update(record.kind, record)
                case ChangeType.REMOVED:
                    self._sink.delete(record.kind, record)
            self.stats.changes_forwarded += 1

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _dispatch(self, event: ProjectionEvent) -> list[StateRecord]:
        state = self.state

        match event:
            # Interests
            case WalkOfInterestRegistered(interest=interest):
                return [state.relations.register(interest.id, interest.route_network_element_refs)]
            case WalkOfInterestRouteNetworkElementsModified():
                return [state.relations.update(event.interest_id, event.route_network_element_ids)]
            case InterestUnregistered():
                return _optional(state.relations.remove(event.interest_id))

            # Specifications
            case SpanEquipmentSpecificationAdded():
                state.catalog.add_span_equipment_specification(event.specification)
                return []
            case SpanStructureSpecificationAdded():
                state.catalog.add_span_structure_specification(event.specification)
                return []
            case NodeContainerSpecificationAdded():
                state.catalog.add_node_container_specification(event.specification)
                return []
            case TerminalEquipmentSpecificationAdded():
                state.catalog.add_terminal_equipment_specification(event.specification)
                return []

            # Span equipment
            case SpanEquipmentPlacedInRouteNetwork():
                return state.equipment.add(event.equipment)
            case SpanEquipmentMoved():
                return state.equipment.move(event.span_equipment_id, event.nodes_of_interest_ids)
            case SpanEquipmentMerged():
                return state.equipment.merge(event.span_equipment_id, event.nodes_of_interest_ids)
            case SpanEquipmentRemoved():
                return state.equipment.remove(event.span_equipment_id)
            case SpanEquipmentSpecificationChanged():
                return state.equipment.specification_changed(
                    event.span_equipment_id, event.new_specification_id
                )
            case SpanEquipmentAddressInfoChanged():
                return state.equipment.address_info_changed(
                    event.span_equipment_id, event.address_info
                )
            case SpanSegmentsConnectedToSimpleTerminals():
                return state.equipment.connect(event.span_equipment_id, event.connects)
            case SpanSegmentsDisconnectedFromTerminals():
                return state.equipment.disconnect(event.span_equipment_id, event.disconnects)
            case SpanEquipmentAffixedToParent():
                return state.equipment.affix_to_parent(
                    event.span_equipment_id, event.new_utility_hop_list
                )
            case SpanEquipmentDetachedFromParent():
                return state.equipment.detach_from_parent(event.span_equipment_id)

            # Node containers
            case NodeContainerPlacedInRouteNetwork():
                return state.place_node_container(event.container)
            case NodeContainerSpecificationChanged():
                return state.change_node_container_specification(
                    event.node_container_id, event.new_specification_id
                )
            case NodeContainerRemovedFromRouteNetwork():
                return state.remove_node_container(event.node_container_id)

            # Terminal equipment
            case TerminalEquipmentPlacedInNodeContainer():
                return _optional(state.terminations.place(event.equipment))
            case TerminalEquipmentNamingInfoChanged():
                return _optional(
                    state.terminations.naming_info_changed(
                        event.terminal_equipment_id, event.naming_info
                    )
                )
            case TerminalEquipmentAddressInfoChanged():
                return _optional(
                    state.terminations.address_info_changed(
                        event.terminal_equipment_id, event.address_info
                    )
                )
            case TerminalEquipmentRemoved():
                return _optional(state.terminations.remove(event.terminal_equipment_id))

            # Work tasks
            case WorkTaskCreated():
                return _optional(state.work_tasks.created(event.work_task_id, event.work_task))
            case WorkTaskStatusChanged():
                return _optional(state.work_tasks.status_changed(event.work_task_id, event.status))

            case _:
                assert_never(event)


__all__ = ["ProjectionDriver", "ProjectionMode", "ProjectionStats"]
