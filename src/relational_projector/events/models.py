"""
Domain value objects carried inside physical-network events.

These mirror the payload shapes written by the utility network service to the
event store (camelCase JSON). Only the attributes the projection reads are
modelled; everything else in a payload is ignored on decode.

Tags:
    events, value-objects, pydantic, route-network, utility-network
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def _nil_to_none(value: UUID | None) -> UUID | None:
    # The writer serializes "no reference" as the nil UUID
    if value is not None and value.int == 0:
        return None
    return value


OptionalId = Annotated[UUID | None, AfterValidator(_nil_to_none)]


class EventModel(BaseModel):
    """Base for all event payload models: immutable, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ── Route network ────────────────────────────────────────────────────────


class RouteNetworkInterest(EventModel):
    """A registered walk (ordered path) through the route network."""

    id: UUID
    route_network_element_refs: tuple[UUID, ...] = ()


# ── Specifications ───────────────────────────────────────────────────────


class SpanStructureTemplate(EventModel):
    span_structure_specification_id: UUID


class SpanEquipmentSpecification(EventModel):
    id: UUID
    name: str
    root_template: SpanStructureTemplate

    @property
    def root_structure_specification_id(self) -> UUID:
        return self.root_template.span_structure_specification_id


class SpanStructureSpecification(EventModel):
    id: UUID
    name: str | None = None
    outer_diameter: int | None = None


class NodeContainerSpecification(EventModel):
    id: UUID
    name: str
    category: str | None = None


class TerminalEquipmentSpecification(EventModel):
    id: UUID
    name: str
    is_customer_termination: bool = False


# ── Shared payload parts ─────────────────────────────────────────────────


class AddressInfo(EventModel):
    access_address_id: OptionalId = None
    unit_address_id: OptionalId = None
    remark: str | None = None


class NamingInfo(EventModel):
    name: str | None = None
    description: str | None = None


# ── Span equipment ───────────────────────────────────────────────────────


class SpanSegment(EventModel):
    id: UUID
    from_terminal_id: OptionalId = None
    to_terminal_id: OptionalId = None


class SpanStructure(EventModel):
    id: UUID
    span_segments: tuple[SpanSegment, ...]


class SpanEquipmentAffixDirection(str, Enum):
    FORWARD = "Forward"
    BACKWARD = "Backward"


class SpanEquipmentSpanEquipmentAffix(EventModel):
    """Reference from a child equipment to one span segment of a parent."""

    span_segment_id: UUID
    direction: SpanEquipmentAffixDirection = SpanEquipmentAffixDirection.FORWARD


class UtilityNetworkHop(EventModel):
    """One hop of a child equipment through parent equipment between two nodes."""

    from_node_id: UUID
    to_node_id: UUID
    parent_affixes: tuple[SpanEquipmentSpanEquipmentAffix, ...] = ()


class SpanEquipment(EventModel):
    """A conduit or cable laid along a walk of interest.

    The first segment of the first structure is the root segment: the
    segment representing the equipment as a whole.
    """

    id: UUID
    specification_id: UUID
    walk_of_interest_id: UUID
    nodes_of_interest_ids: tuple[UUID, ...]
    span_structures: tuple[SpanStructure, ...]
    name: str | None = None
    is_cable: bool = False
    utility_network_hops: tuple[UtilityNetworkHop, ...] | None = None
    address_info: AddressInfo | None = None

    @property
    def root_segment(self) -> SpanSegment:
        return self.span_structures[0].span_segments[0]


class SpanSegmentConnectionDirection(str, Enum):
    """Direction of a root-segment to terminal connection.

    ``FROM_SPAN_SEGMENT_TO_TERMINAL`` connects the segment's *to* end,
    ``FROM_TERMINAL_TO_SPAN_SEGMENT`` connects its *from* end.
    """

    FROM_SPAN_SEGMENT_TO_TERMINAL = "FromSpanSegmentToTerminal"
    FROM_TERMINAL_TO_SPAN_SEGMENT = "FromTerminalToSpanSegment"


class SpanSegmentToSimpleTerminalConnectInfo(EventModel):
    segment_id: UUID
    terminal_id: UUID
    connection_direction: SpanSegmentConnectionDirection


class SpanSegmentToTerminalDisconnectInfo(EventModel):
    segment_id: UUID
    terminal_id: UUID


# ── Node containers, terminal equipment, work tasks ──────────────────────


class NodeContainer(EventModel):
    id: UUID
    route_node_id: UUID
    specification_id: UUID


class TerminalEquipment(EventModel):
    id: UUID
    specification_id: UUID
    node_container_id: UUID
    name: str | None = None
    address_info: AddressInfo | None = None


class WorkTask(EventModel):
    number: str | None = None
    status: str | None = None


__all__ = [
    "EventModel",
    "RouteNetworkInterest",
    "SpanStructureTemplate",
    "SpanEquipmentSpecification",
    "SpanStructureSpecification",
    "NodeContainerSpecification",
    "TerminalEquipmentSpecification",
    "AddressInfo",
    "NamingInfo",
    "SpanSegment",
    "SpanStructure",
    "SpanEquipmentAffixDirection",
    "SpanEquipmentSpanEquipmentAffix",
    "UtilityNetworkHop",
    "SpanEquipment",
    "SpanSegmentConnectionDirection",
    "SpanSegmentToSimpleTerminalConnectInfo",
    "SpanSegmentToTerminalDisconnectInfo",
    "NodeContainer",
    "TerminalEquipment",
    "WorkTask",
]
