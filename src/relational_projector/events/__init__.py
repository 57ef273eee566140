"""Physical-network domain events consumed by the projection.

Why This Package Exists
-----------------------
The projection reacts to a fixed set of event variants. Modelling them as a
closed union (``ProjectionEvent``) lets the driver dispatch with one ``match``
statement and lets a type checker flag a variant without a handler.

Usage::

    from relational_projector.events import EventEnvelope, SpanEquipmentRemoved

    envelope = EventEnvelope(position=42, event=SpanEquipmentRemoved(span_equipment_id=eq_id))

Modules
-------
models      value objects carried inside events
codec       decode stored JSON payloads into event variants
source      EventSource protocol + InMemoryEventSource
postgres    PostgresEventSource -- reads the event store table
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union
from uuid import UUID

from relational_projector.events.models import (
    AddressInfo,
    EventModel,
    NamingInfo,
    NodeContainer,
    NodeContainerSpecification,
    RouteNetworkInterest,
    SpanEquipment,
    SpanEquipmentSpecification,
    SpanSegmentToSimpleTerminalConnectInfo,
    SpanSegmentToTerminalDisconnectInfo,
    SpanStructureSpecification,
    TerminalEquipment,
    TerminalEquipmentSpecification,
    UtilityNetworkHop,
    WorkTask,
)

# ── Interest events ──────────────────────────────────────────────────────


class WalkOfInterestRegistered(EventModel):
    interest: RouteNetworkInterest


class WalkOfInterestRouteNetworkElementsModified(EventModel):
    interest_id: UUID
    route_network_element_ids: tuple[UUID, ...]


class InterestUnregistered(EventModel):
    interest_id: UUID


# ── Specification events ─────────────────────────────────────────────────


class SpanEquipmentSpecificationAdded(EventModel):
    specification: SpanEquipmentSpecification


class SpanStructureSpecificationAdded(EventModel):
    specification: SpanStructureSpecification


class NodeContainerSpecificationAdded(EventModel):
    specification: NodeContainerSpecification


class TerminalEquipmentSpecificationAdded(EventModel):
    specification: TerminalEquipmentSpecification


# ── Span equipment events ────────────────────────────────────────────────


class SpanEquipmentPlacedInRouteNetwork(EventModel):
    equipment: SpanEquipment


class SpanEquipmentMoved(EventModel):
    span_equipment_id: UUID
    nodes_of_interest_ids: tuple[UUID, ...]


class SpanEquipmentMerged(EventModel):
    span_equipment_id: UUID
    nodes_of_interest_ids: tuple[UUID, ...]


class SpanEquipmentRemoved(EventModel):
    span_equipment_id: UUID


class SpanEquipmentSpecificationChanged(EventModel):
    span_equipment_id: UUID
    new_specification_id: UUID


class SpanEquipmentAddressInfoChanged(EventModel):
    span_equipment_id: UUID
    address_info: AddressInfo | None = None


class SpanSegmentsConnectedToSimpleTerminals(EventModel):
    span_equipment_id: UUID
    connects: tuple[SpanSegmentToSimpleTerminalConnectInfo, ...]


class SpanSegmentsDisconnectedFromTerminals(EventModel):
    span_equipment_id: UUID
    disconnects: tuple[SpanSegmentToTerminalDisconnectInfo, ...]


class SpanEquipmentAffixedToParent(EventModel):
    span_equipment_id: UUID
    new_utility_hop_list: tuple[UtilityNetworkHop, ...]


class SpanEquipmentDetachedFromParent(EventModel):
    span_equipment_id: UUID
    new_utility_hop_list: tuple[UtilityNetworkHop, ...] = ()


# ── Node container events ────────────────────────────────────────────────


class NodeContainerPlacedInRouteNetwork(EventModel):
    container: NodeContainer


class NodeContainerSpecificationChanged(EventModel):
    node_container_id: UUID
    new_specification_id: UUID


class NodeContainerRemovedFromRouteNetwork(EventModel):
    node_container_id: UUID


# ── Terminal equipment events ────────────────────────────────────────────


class TerminalEquipmentPlacedInNodeContainer(EventModel):
    equipment: TerminalEquipment


class TerminalEquipmentNamingInfoChanged(EventModel):
    terminal_equipment_id: UUID
    naming_info: NamingInfo | None = None


class TerminalEquipmentAddressInfoChanged(EventModel):
    terminal_equipment_id: UUID
    address_info: AddressInfo | None = None


class TerminalEquipmentRemoved(EventModel):
    terminal_equipment_id: UUID


# ── Work task events ─────────────────────────────────────────────────────


class WorkTaskCreated(EventModel):
    work_task_id: UUID
    work_task: WorkTask


class WorkTaskStatusChanged(EventModel):
    work_task_id: UUID
    status: str | None = None


ProjectionEvent = Union[
    WalkOfInterestRegistered,
    WalkOfInterestRouteNetworkElementsModified,
    InterestUnregistered,
    SpanEquipmentSpecificationAdded,
    SpanStructureSpecificationAdded,
    NodeContainerSpecificationAdded,
    TerminalEquipmentSpecificationAdded,
    SpanEquipmentPlacedInRouteNetwork,
    SpanEquipmentMoved,
    SpanEquipmentMerged,
    SpanEquipmentRemoved,
    SpanEquipmentSpecificationChanged,
    SpanEquipmentAddressInfoChanged,
    SpanSegmentsConnectedToSimpleTerminals,
    SpanSegmentsDisconnectedFromTerminals,
    SpanEquipmentAffixedToParent,
    SpanEquipmentDetachedFromParent,
    NodeContainerPlacedInRouteNetwork,
    NodeContainerSpecificationChanged,
    NodeContainerRemovedFromRouteNetwork,
    TerminalEquipmentPlacedInNodeContainer,
    TerminalEquipmentNamingInfoChanged,
    TerminalEquipmentAddressInfoChanged,
    TerminalEquipmentRemoved,
    WorkTaskCreated,
    WorkTaskStatusChanged,
]

EVENT_TYPES: tuple[type[EventModel], ...] = ProjectionEvent.__args__


@dataclass(frozen=True)
class EventEnvelope:
    """An event together with its position in the store's total order.

    Attributes:
        position: Monotonic store position (sequence number)
        event: The decoded event variant
    """

    position: int
    event: ProjectionEvent

    @property
    def event_type(self) -> str:
        return type(self.event).__name__


__all__ = [
    "EventEnvelope",
    "ProjectionEvent",
    "EVENT_TYPES",
    "WalkOfInterestRegistered",
    "WalkOfInterestRouteNetworkElementsModified",
    "InterestUnregistered",
    "SpanEquipmentSpecificationAdded",
    "SpanStructureSpecificationAdded",
    "NodeContainerSpecificationAdded",
    "TerminalEquipmentSpecificationAdded",
    "SpanEquipmentPlacedInRouteNetwork",
    "SpanEquipmentMoved",
    "SpanEquipmentMerged",
    "SpanEquipmentRemoved",
    "SpanEquipmentSpecificationChanged",
    "SpanEquipmentAddressInfoChanged",
    "SpanSegmentsConnectedToSimpleTerminals",
    "SpanSegmentsDisconnectedFromTerminals",
    "SpanEquipmentAffixedToParent",
    "SpanEquipmentDetachedFromParent",
    "NodeContainerPlacedInRouteNetwork",
    "NodeContainerSpecificationChanged",
    "NodeContainerRemovedFromRouteNetwork",
    "TerminalEquipmentPlacedInNodeContainer",
    "TerminalEquipmentNamingInfoChanged",
    "TerminalEquipmentAddressInfoChanged",
    "TerminalEquipmentRemoved",
    "WorkTaskCreated",
    "WorkTaskStatusChanged",
]
