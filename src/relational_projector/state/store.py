"""
ProjectionState: the aggregate of every in-memory store.

Owns the stores and wires the one cross-store transition the stores cannot do
alone: a node container appearing, changing or disappearing at a route node
changes slack eligibility of every equipment end lying there.
"""

from __future__ import annotations

from uuid import UUID

from relational_projector.core.errors import ReferentialIntegrityViolation
from relational_projector.events.models import NodeContainer
from relational_projector.state.catalog import CatalogStore
from relational_projector.state.containers import NodeContainerStore
from relational_projector.state.equipment import SpanEquipmentStore
from relational_projector.state.records import ChangeType, EntityKind, StateRecord
from relational_projector.state.relations import RelationIndex
from relational_projector.state.slack import ConduitSlackLedger
from relational_projector.state.terminations import ServiceTerminationStore
from relational_projector.state.work_tasks import WorkTaskStore


class ProjectionState:
    def __init__(self) -> None:
        self.catalog = CatalogStore()
        self.relations = RelationIndex()
        self.slack = ConduitSlackLedger()
        self.containers = NodeContainerStore(self.catalog)
        self.equipment = SpanEquipmentStore(self.catalog, self.containers, self.slack)
        self.terminations = ServiceTerminationStore(self.catalog, self.containers)
        self.work_tasks = WorkTaskStore()

    # ── Node container transitions ───────────────────────────────────────

    def place_node_container(self, container: NodeContainer) -> list[StateRecord]:
        previous_node = self.containers.route_node_of(container.id)
        changed: list[StateRecord] = []
        if previous_node is not None and previous_node != container.route_node_id:
            # Re-placing at another node: release the old node first
            _, released = self.equipment.recount_at(
                previous_node, lambda: self.containers.remove(container.id)
            )
            changed.extend(released)

        state, slack = self.equipment.recount_at(
            container.route_node_id, lambda: self.containers.place(container)
        )
        if previous_node is not None:
            state.change = ChangeType.UPDATED
        return [*changed, *slack, state]

    def change_node_container_specification(
        self, container_id: UUID, specification_id: UUID
    ) -> list[StateRecord]:
        route_node_id = self.containers.route_node_of(container_id)
        if route_node_id is None:
            raise ReferentialIntegrityViolation.missing("node_container", container_id)

        state, slack = self.equipment.recount_at(
            route_node_id,
            lambda: self.containers.change_specification(container_id, specification_id),
        )
        return [*slack, state]

    def remove_node_container(self, container_id: UUID) -> list[StateRecord]:
        route_node_id = self.containers.route_node_of(container_id)
        if route_node_id is None:
            return []

        state, slack = self.equipment.recount_at(
            route_node_id, lambda: self.containers.remove(container_id)
        )
        return [*slack, state]

    # ── Export ───────────────────────────────────────────────────────────

    def snapshot(self) -> dict[EntityKind, list[StateRecord]]:
        """Full current contents of every store, keyed by entity kind."""
        return {
            EntityKind.INTEREST_RELATION: self.relations.records(),
            EntityKind.SPAN_EQUIPMENT: self.equipment.records(),
            EntityKind.NODE_CONTAINER: self.containers.records(),
            EntityKind.SERVICE_TERMINATION: self.terminations.records(),
            EntityKind.CONDUIT_SLACK: self.slack.records(),
            EntityKind.WORK_TASK: self.work_tasks.records(),
        }

    def stats(self) -> dict[str, int]:
        return {kind.value: len(records) for kind, records in self.snapshot().items()}
