"""
Shared pytest fixtures for relational-projector tests.

This module provides:
- ``net``: a NetworkBuilder that hands out ids and builds events
- ``driver`` / ``sink``: a fresh ProjectionDriver over an InMemorySink
- Settings / logging isolation

Usage:
    def test_something(net, driver):
        driver.apply(net.place(net.node("A"), net.node("B")))
"""

from __future__ import annotations

from collections.abc import Iterator
from uuid import UUID, uuid4

import pytest

from relational_projector.core.settings import reset_settings
from relational_projector.events import (
    NodeContainerPlacedInRouteNetwork,
    NodeContainerRemovedFromRouteNetwork,
    NodeContainerSpecificationAdded,
    NodeContainerSpecificationChanged,
    ProjectionEvent,
    SpanEquipmentAffixedToParent,
    SpanEquipmentDetachedFromParent,
    SpanEquipmentMoved,
    SpanEquipmentPlacedInRouteNetwork,
    SpanEquipmentRemoved,
    SpanEquipmentSpecificationAdded,
    SpanSegmentsConnectedToSimpleTerminals,
    SpanSegmentsDisconnectedFromTerminals,
    SpanStructureSpecificationAdded,
    TerminalEquipmentPlacedInNodeContainer,
    TerminalEquipmentSpecificationAdded,
    WalkOfInterestRegistered,
)
from relational_projector.events.models import (
    NodeContainer,
    NodeContainerSpecification,
    RouteNetworkInterest,
    SpanEquipment,
    SpanEquipmentSpanEquipmentAffix,
    SpanEquipmentSpecification,
    SpanSegment,
    SpanSegmentConnectionDirection,
    SpanSegmentToSimpleTerminalConnectInfo,
    SpanSegmentToTerminalDisconnectInfo,
    SpanStructure,
    SpanStructureSpecification,
    SpanStructureTemplate,
    TerminalEquipment,
    TerminalEquipmentSpecification,
    UtilityNetworkHop,
)
from relational_projector.projection.driver import ProjectionDriver
from relational_projector.sink.memory import InMemorySink
from relational_projector.state.containers import UNKNOWN_JUNCTION_SPECIFICATION_ID


# =============================================================================
# Event builder
# =============================================================================


class NetworkBuilder:
    """Builds physical network events with readable, stable ids.

    Route nodes are named (``net.node("A")``); the same name always maps to
    the same id within one builder.
    """

    def __init__(self) -> None:
        self.customer_spec_id = uuid4()
        self.customer_structure_id = uuid4()
        self.trunk_spec_id = uuid4()
        self.trunk_structure_id = uuid4()
        self.cabinet_spec_id = uuid4()
        self.well_spec_id = uuid4()
        self.junction_spec_id = UNKNOWN_JUNCTION_SPECIFICATION_ID
        self.customer_termination_spec_id = uuid4()
        self.splice_tray_spec_id = uuid4()

        self._nodes: dict[str, UUID] = {}
        self.root_segments: dict[UUID, UUID] = {}
        self.interests: dict[UUID, UUID] = {}

    def node(self, name: str) -> UUID:
        return self._nodes.setdefault(name, uuid4())

    # ── Catalog ──────────────────────────────────────────────────────────

    def catalog_events(self) -> list[ProjectionEvent]:
        return [
            SpanStructureSpecificationAdded(
                specification=SpanStructureSpecification(
                    id=self.customer_structure_id, name="Ø12/8", outer_diameter=12
                )
            ),
            SpanEquipmentSpecificationAdded(
                specification=SpanEquipmentSpecification(
                    id=self.customer_spec_id,
                    name="Ø12 customer conduit",
                    root_template=SpanStructureTemplate(
                        span_structure_specification_id=self.customer_structure_id
                    ),
                )
            ),
            SpanStructureSpecificationAdded(
                specification=SpanStructureSpecification(
                    id=self.trunk_structure_id, name="Ø40/34", outer_diameter=40
                )
            ),
            SpanEquipmentSpecificationAdded(
                specification=SpanEquipmentSpecification(
                    id=self.trunk_spec_id,
                    name="Ø40 trunk conduit",
                    root_template=SpanStructureTemplate(
                        span_structure_specification_id=self.trunk_structure_id
                    ),
                )
            ),
            NodeContainerSpecificationAdded(
                specification=NodeContainerSpecification(
                    id=self.cabinet_spec_id, name="FP2", category="Cabinet"
                )
            ),
            NodeContainerSpecificationAdded(
                specification=NodeContainerSpecification(
                    id=self.well_spec_id, name="Well 1x2", category="Well"
                )
            ),
            NodeContainerSpecificationAdded(
                specification=NodeContainerSpecification(
                    id=self.junction_spec_id, name="Conduit junction", category="ConduitClosure"
                )
            ),
            TerminalEquipmentSpecificationAdded(
                specification=TerminalEquipmentSpecification(
                    id=self.customer_termination_spec_id,
                    name="Customer termination",
                    is_customer_termination=True,
                )
            ),
            TerminalEquipmentSpecificationAdded(
                specification=TerminalEquipmentSpecification(
                    id=self.splice_tray_spec_id, name="Splice tray"
                )
            ),
        ]

    # ── Interests and span equipment ─────────────────────────────────────

    def walk(self, *elements: UUID, interest_id: UUID | None = None) -> WalkOfInterestRegistered:
        interest = RouteNetworkInterest(
            id=interest_id or uuid4(), route_network_element_refs=tuple(elements)
        )
        return WalkOfInterestRegistered(interest=interest)

    def place(
        self,
        *nodes: UUID,
        equipment_id: UUID | None = None,
        spec_id: UUID | None = None,
        from_terminal_id: UUID | None = None,
        to_terminal_id: UUID | None = None,
        parents: tuple[UUID, ...] = (),
        name: str | None = None,
    ) -> SpanEquipmentPlacedInRouteNetwork:
        equipment_id = equipment_id or uuid4()
        root_segment_id = uuid4()
        interest_id = uuid4()
        self.root_segments[equipment_id] = root_segment_id
        self.interests[equipment_id] = interest_id

        hops = None
        if parents:
            hops = (self._hop(nodes, parents),)

        equipment = SpanEquipment(
            id=equipment_id,
            specification_id=spec_id or self.customer_spec_id,
            walk_of_interest_id=interest_id,
            nodes_of_interest_ids=tuple(nodes),
            span_structures=(
                SpanStructure(
                    id=uuid4(),
                    span_segments=(
                        SpanSegment(
                            id=root_segment_id,
                            from_terminal_id=from_terminal_id,
                            to_terminal_id=to_terminal_id,
                        ),
                    ),
                ),
            ),
            name=name,
            utility_network_hops=hops,
        )
        return SpanEquipmentPlacedInRouteNetwork(equipment=equipment)

    def move(self, equipment_id: UUID, *nodes: UUID) -> SpanEquipmentMoved:
        return SpanEquipmentMoved(span_equipment_id=equipment_id, nodes_of_interest_ids=tuple(nodes))

    def remove(self, equipment_id: UUID) -> SpanEquipmentRemoved:
        return SpanEquipmentRemoved(span_equipment_id=equipment_id)

    def connect(
        self, equipment_id: UUID, terminal_id: UUID, *, end: str
    ) -> SpanSegmentsConnectedToSimpleTerminals:
        direction = (
            SpanSegmentConnectionDirection.FROM_TERMINAL_TO_SPAN_SEGMENT
            if end == "from"
            else SpanSegmentConnectionDirection.FROM_SPAN_SEGMENT_TO_TERMINAL
        )
        return SpanSegmentsConnectedToSimpleTerminals(
            span_equipment_id=equipment_id,
            connects=(
                SpanSegmentToSimpleTerminalConnectInfo(
                    segment_id=self.root_segments[equipment_id],
                    terminal_id=terminal_id,
                    connection_direction=direction,
                ),
            ),
        )

    def disconnect(self, equipment_id: UUID, terminal_id: UUID) -> SpanSegmentsDisconnectedFromTerminals:
        return SpanSegmentsDisconnectedFromTerminals(
            span_equipment_id=equipment_id,
            disconnects=(
                SpanSegmentToTerminalDisconnectInfo(
                    segment_id=self.root_segments[equipment_id], terminal_id=terminal_id
                ),
            ),
        )

    def affix(self, child_id: UUID, *parent_ids: UUID) -> SpanEquipmentAffixedToParent:
        return SpanEquipmentAffixedToParent(
            span_equipment_id=child_id,
            new_utility_hop_list=(self._hop((self.node("?"),), parent_ids),),
        )

    def detach(self, child_id: UUID) -> SpanEquipmentDetachedFromParent:
        return SpanEquipmentDetachedFromParent(span_equipment_id=child_id)

    def _hop(self, nodes, parent_ids) -> UtilityNetworkHop:
        return UtilityNetworkHop(
            from_node_id=nodes[0],
            to_node_id=nodes[-1],
            parent_affixes=tuple(
                SpanEquipmentSpanEquipmentAffix(span_segment_id=self.root_segments[p])
                for p in parent_ids
            ),
        )

    # ── Node containers and terminal equipment ───────────────────────────

    def container(
        self, route_node_id: UUID, *, container_id: UUID | None = None, spec_id: UUID | None = None
    ) -> NodeContainerPlacedInRouteNetwork:
        return NodeContainerPlacedInRouteNetwork(
            container=NodeContainer(
                id=container_id or uuid4(),
                route_node_id=route_node_id,
                specification_id=spec_id or self.cabinet_spec_id,
            )
        )

    def change_container_spec(self, container_id: UUID, spec_id: UUID) -> NodeContainerSpecificationChanged:
        return NodeContainerSpecificationChanged(
            node_container_id=container_id, new_specification_id=spec_id
        )

    def remove_container(self, container_id: UUID) -> NodeContainerRemovedFromRouteNetwork:
        return NodeContainerRemovedFromRouteNetwork(node_container_id=container_id)

    def terminal(
        self,
        container_id: UUID,
        *,
        equipment_id: UUID | None = None,
        spec_id: UUID | None = None,
        name: str | None = "Customer 1",
    ) -> TerminalEquipmentPlacedInNodeContainer:
        return TerminalEquipmentPlacedInNodeContainer(
            equipment=TerminalEquipment(
                id=equipment_id or uuid4(),
                specification_id=spec_id or self.customer_termination_spec_id,
                node_container_id=container_id,
                name=name,
            )
        )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def net() -> NetworkBuilder:
    return NetworkBuilder()


@pytest.fixture
def sink() -> InMemorySink:
    return InMemorySink()


@pytest.fixture
def driver(sink: InMemorySink, net: NetworkBuilder) -> ProjectionDriver:
    """A bulk-mode driver with the builder's catalog already applied."""
    driver = ProjectionDriver(sink)
    for event in net.catalog_events():
        driver.apply(event)
    return driver


@pytest.fixture
def live_driver(driver: ProjectionDriver) -> ProjectionDriver:
    """The ``driver`` fixture after its (empty) bulk export: incremental mode."""
    driver.finish_bulk()
    return driver


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in ("PROJECTOR_SINK_SCHEMA", "PROJECTOR_POLL_INTERVAL", "PROJECTOR_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()
