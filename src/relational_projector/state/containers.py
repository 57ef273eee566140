"""Node-container state and the route node -> enclosing containers index."""

from __future__ import annotations

from uuid import UUID

from relational_projector.core.errors import ReferentialIntegrityViolation
from relational_projector.events.models import NodeContainer, NodeContainerSpecification
from relational_projector.state.catalog import CatalogStore
from relational_projector.state.records import ChangeType, NodeContainerState

# "Conduit junction (unknown)": a placeholder container that does not enclose
# conduit ends, so it never suppresses slack.
UNKNOWN_JUNCTION_SPECIFICATION_ID = UUID("c288e797-a65c-4cf6-b63d-5eda4b4a8a8c")


def suppresses_slack(specification_id: UUID) -> bool:
    return specification_id != UNKNOWN_JUNCTION_SPECIFICATION_ID


class NodeContainerStore:
    """
    Placed node containers, plus which route nodes hold a slack-suppressing one.

    Only membership changes here. Recomputing slack at the affected node is
    the caller's job (see ``ProjectionState``), since it needs the equipment
    store as well.
    """

    def __init__(self, catalog: CatalogStore) -> None:
        self._catalog = catalog
        self._by_id: dict[UUID, NodeContainerState] = {}
        self._suppressing_by_node: dict[UUID, set[UUID]] = {}

    def get(self, container_id: UUID) -> NodeContainerState | None:
        return self._by_id.get(container_id)

    def route_node_of(self, container_id: UUID) -> UUID | None:
        container = self._by_id.get(container_id)
        return container.route_node_id if container else None

    def suppresses_slack_at(self, route_node_id: UUID) -> bool:
        return bool(self._suppressing_by_node.get(route_node_id))

    def records(self) -> list[NodeContainerState]:
        return list(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def place(self, container: NodeContainer) -> NodeContainerState:
        spec = self._catalog.node_container_specification(container.specification_id)

        previous = self._by_id.get(container.id)
        if previous is not None:
            self._unindex(previous)

        state = NodeContainerState(
            id=container.id,
            route_node_id=container.route_node_id,
            specification_id=spec.id,
            spec_name=spec.name,
            spec_category=spec.category,
            change=ChangeType.NEW if previous is None else ChangeType.UPDATED,
        )
        self._by_id[container.id] = state
        self._index(state)
        return state

    def change_specification(self, container_id: UUID, specification_id: UUID) -> NodeContainerState:
        state = self._by_id.get(container_id)
        if state is None:
            raise ReferentialIntegrityViolation.missing("node_container", container_id)

        spec: NodeContainerSpecification = self._catalog.node_container_specification(
            specification_id
        )

        self._unindex(state)
        state.specification_id = spec.id
        state.spec_name = spec.name
        state.spec_category = spec.category
        state.change = ChangeType.UPDATED
        self._index(state)
        return state

    def remove(self, container_id: UUID) -> NodeContainerState | None:
        state = self._by_id.pop(container_id, None)
        if state is None:
            return None
        self._unindex(state)
        state.change = ChangeType.REMOVED
        return state

    def _index(self, state: NodeContainerState) -> None:
        if suppresses_slack(state.specification_id):
            self._suppressing_by_node.setdefault(state.route_node_id, set()).add(state.id)

    def _unindex(self, state: NodeContainerState) -> None:
        ids = self._suppressing_by_node.get(state.route_node_id)
        if ids is None:
            return
        ids.discard(state.id)
        if not ids:
            del self._suppressing_by_node[state.route_node_id]
