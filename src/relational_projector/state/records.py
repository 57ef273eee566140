"""
Derived state records held by the projection stores.

Each record carries the tag of its most recent change (``change``). The tag
tells the sink which row operation reflects that change:

    NEW      -> insert
    UPDATED  -> update
    REMOVED  -> delete

Records are plain mutable dataclasses owned by exactly one store. Every
record class names the sink table it maps to via ``kind``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union
from uuid import UUID, uuid5


class ChangeType(str, Enum):
    NEW = "NEW"
    UPDATED = "UPDATED"
    REMOVED = "REMOVED"


class EntityKind(str, Enum):
    """The projected entity kinds, one sink table each."""

    INTEREST_RELATION = "rel_interest_to_route_element"
    SPAN_EQUIPMENT = "span_equipment"
    NODE_CONTAINER = "node_container"
    SERVICE_TERMINATION = "service_termination"
    CONDUIT_SLACK = "conduit_slack"
    WORK_TASK = "work_task"

    @property
    def table(self) -> str:
        return self.value


class End(str, Enum):
    """One of the two route-node ends of a span equipment."""

    FROM = "from"
    TO = "to"


@dataclass
class InterestRelationState:
    interest_id: UUID
    element_ids: tuple[UUID, ...]
    change: ChangeType = ChangeType.NEW

    kind: ClassVar[EntityKind] = EntityKind.INTEREST_RELATION

    @property
    def id(self) -> UUID:
        return self.interest_id


@dataclass
class SpanEquipmentState:
    """Projection view of one placed span equipment.

    ``from_terminal_id`` / ``to_terminal_id`` are the terminals the root
    segment is connected to at each end. ``child_ids`` lists the equipment
    currently affixed inside this one, oldest first.
    """

    id: UUID
    interest_id: UUID
    specification_id: UUID
    spec_name: str
    outer_diameter: int | None
    from_node_id: UUID
    to_node_id: UUID
    root_segment_id: UUID
    is_cable: bool = False
    is_customer_conduit: bool = False
    name: str | None = None
    from_terminal_id: UUID | None = None
    to_terminal_id: UUID | None = None
    child_ids: list[UUID] = field(default_factory=list)
    access_address_id: UUID | None = None
    unit_address_id: UUID | None = None
    change: ChangeType = ChangeType.NEW

    kind: ClassVar[EntityKind] = EntityKind.SPAN_EQUIPMENT

    @property
    def has_child(self) -> bool:
        return bool(self.child_ids)

    @property
    def child_span_equipment_id(self) -> UUID | None:
        return self.child_ids[-1] if self.child_ids else None

    @property
    def root_segment_has_from_connection(self) -> bool:
        return self.from_terminal_id is not None

    @property
    def root_segment_has_to_connection(self) -> bool:
        return self.to_terminal_id is not None

    def node_id(self, end: End) -> UUID:
        return self.from_node_id if end is End.FROM else self.to_node_id

    def terminal_id(self, end: End) -> UUID | None:
        return self.from_terminal_id if end is End.FROM else self.to_terminal_id

    def ends(self) -> tuple[tuple[End, UUID], ...]:
        return ((End.FROM, self.from_node_id), (End.TO, self.to_node_id))


# Slack record ids are derived from the route node so a full replay
# reproduces the ids an incremental run handed out.
SLACK_ID_NAMESPACE = UUID("0b8c4a6e-5c1f-4f0e-9d43-7a2f1c3e9b51")


def conduit_slack_id(route_node_id: UUID) -> UUID:
    return uuid5(SLACK_ID_NAMESPACE, str(route_node_id))


@dataclass
class ConduitSlackState:
    id: UUID
    route_node_id: UUID
    number_of_ends: int = 0
    change: ChangeType = ChangeType.NEW

    kind: ClassVar[EntityKind] = EntityKind.CONDUIT_SLACK

    @classmethod
    def at(cls, route_node_id: UUID) -> ConduitSlackState:
        return cls(id=conduit_slack_id(route_node_id), route_node_id=route_node_id)


@dataclass
class NodeContainerState:
    id: UUID
    route_node_id: UUID
    specification_id: UUID
    spec_name: str
    spec_category: str | None = None
    change: ChangeType = ChangeType.NEW

    kind: ClassVar[EntityKind] = EntityKind.NODE_CONTAINER


@dataclass
class ServiceTerminationState:
    id: UUID
    route_node_id: UUID
    name: str | None = None
    access_address_id: UUID | None = None
    unit_address_id: UUID | None = None
    change: ChangeType = ChangeType.NEW

    kind: ClassVar[EntityKind] = EntityKind.SERVICE_TERMINATION


@dataclass
class WorkTaskState:
    id: UUID
    number: str | None = None
    status: str | None = None
    change: ChangeType = ChangeType.NEW

    kind: ClassVar[EntityKind] = EntityKind.WORK_TASK


StateRecord = Union[
    InterestRelationState,
    SpanEquipmentState,
    ConduitSlackState,
    NodeContainerState,
    ServiceTerminationState,
    WorkTaskState,
]


__all__ = [
    "ChangeType",
    "EntityKind",
    "End",
    "InterestRelationState",
    "SpanEquipmentState",
    "ConduitSlackState",
    "NodeContainerState",
    "ServiceTerminationState",
    "WorkTaskState",
    "StateRecord",
    "SLACK_ID_NAMESPACE",
    "conduit_slack_id",
]
