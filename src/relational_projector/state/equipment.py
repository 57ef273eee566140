"""
Equipment State Store and conduit slack derivation.

Manifesto:
    Slack is never cached per equipment end. Every operation that can change
    whether an end counts as slack is wrapped in :meth:`SpanEquipmentStore._recount`:

        1. count the eligible ends of the affected equipment, per route node
        2. mutate
        3. count again
        4. hand (after - before) to the ledger as one netted delta

    Because the same predicate is evaluated before and after, any sequence of
    operations leaves the ledger equal to a from-scratch count, whether the
    sequence ran during bulk replay or one event at a time.

Slack eligibility of one end (all must hold):
    - the equipment is a customer conduit
    - no slack-suppressing node container is placed at the end's route node
    - the root segment has no terminal connection at that end
    - no child equipment is affixed inside the equipment

Indices kept in lock-step with the records:
    - by id / by root segment id
    - route node -> equipment ends lying there
    - child -> parents it is affixed to (and each parent's ``child_ids``)

Tags:
    state, slack, indices, span-equipment, projection
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from typing import TypeVar
from uuid import UUID

from relational_projector.core.errors import ReferentialIntegrityViolation
from relational_projector.core.logging import get_logger
from relational_projector.events.models import (
    AddressInfo,
    SpanEquipment,
    SpanSegmentConnectionDirection,
    SpanSegmentToSimpleTerminalConnectInfo,
    SpanSegmentToTerminalDisconnectInfo,
    UtilityNetworkHop,
)
from relational_projector.state.catalog import CatalogStore
from relational_projector.state.containers import NodeContainerStore
from relational_projector.state.records import (
    ChangeType,
    End,
    SpanEquipmentState,
    StateRecord,
)
from relational_projector.state.slack import ConduitSlackLedger

logger = get_logger(__name__)

T = TypeVar("T")

CUSTOMER_CONDUIT_MARKER = "ø12"


def is_customer_conduit(spec_name: str | None) -> bool:
    """Customer conduits are recognised by "Ø12" in the specification name."""
    return spec_name is not None and CUSTOMER_CONDUIT_MARKER in spec_name.lower()


class SpanEquipmentStore:
    def __init__(
        self,
        catalog: CatalogStore,
        containers: NodeContainerStore,
        slack: ConduitSlackLedger,
    ) -> None:
        self._catalog = catalog
        self._containers = containers
        self._slack = slack

        self._by_id: dict[UUID, SpanEquipmentState] = {}
        self._by_root_segment: dict[UUID, SpanEquipmentState] = {}
        self._ends_by_node: dict[UUID, set[tuple[UUID, End]]] = {}
        self._parents_by_child: dict[UUID, list[UUID]] = {}

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, equipment_id: UUID) -> SpanEquipmentState | None:
        return self._by_id.get(equipment_id)

    def by_root_segment(self, segment_id: UUID) -> SpanEquipmentState | None:
        return self._by_root_segment.get(segment_id)

    def records(self) -> list[SpanEquipmentState]:
        return list(self._by_id.values())

    def parents_of(self, child_id: UUID) -> list[UUID]:
        return list(self._parents_by_child.get(child_id, ()))

    def ids_at(self, route_node_id: UUID) -> list[UUID]:
        """Ids of equipment having an end at the route node."""
        return list(dict.fromkeys(eq_id for eq_id, _ in self._ends_by_node.get(route_node_id, ())))

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, equipment_id: object) -> bool:
        return equipment_id in self._by_id

    def is_slack_end(self, state: SpanEquipmentState, end: End) -> bool:
        return (
            state.is_customer_conduit
            and not self._containers.suppresses_slack_at(state.node_id(end))
            and state.terminal_id(end) is None
            and not state.has_child
        )

    # =========================================================================
    # Placement and removal
    # =========================================================================

    def add(self, equipment: SpanEquipment) -> list[StateRecord]:
        """Place a span equipment; also affixes it to parents when it carries utility hops."""
        if equipment.id in self._by_id:
            logger.warning("span_equipment_already_placed", span_equipment_id=str(equipment.id))
            return []

        spec, structure = self._catalog.resolve_span_equipment(equipment.specification_id)
        root = equipment.root_segment
        address = equipment.address_info

        state = SpanEquipmentState(
            id=equipment.id,
            interest_id=equipment.walk_of_interest_id,
            specification_id=spec.id,
            spec_name=spec.name,
            outer_diameter=structure.outer_diameter,
            from_node_id=equipment.nodes_of_interest_ids[0],
            to_node_id=equipment.nodes_of_interest_ids[-1],
            root_segment_id=root.id,
            is_cable=equipment.is_cable,
            is_customer_conduit=is_customer_conduit(spec.name),
            name=equipment.name,
            from_terminal_id=root.from_terminal_id,
            to_terminal_id=root.to_terminal_id,
            access_address_id=address.access_address_id if address else None,
            unit_address_id=address.unit_address_id if address else None,
            change=ChangeType.NEW,
        )

        hops = equipment.utility_network_hops or ()
        parents = self._resolve_parents(equipment.id, hops)

        def place() -> list[StateRecord]:
            self._by_id[state.id] = state
            self._by_root_segment[state.root_segment_id] = state
            self._index_ends(state)
            return [state, *self._attach(state.id, parents)]

        return self._recount([state.id, *(p.id for p in parents)], place)

    def remove(self, equipment_id: UUID) -> list[StateRecord]:
        """Remove an equipment, detaching it from its parents and releasing its children."""
        state = self._require(equipment_id)

        def drop() -> list[StateRecord]:
            changed: list[StateRecord] = list(self._detach(equipment_id))

            for child_id in state.child_ids:
                parents = self._parents_by_child.get(child_id)
                if parents and equipment_id in parents:
                    parents.remove(equipment_id)
                    if not parents:
                        del self._parents_by_child[child_id]
            state.child_ids.clear()

            self._unindex_ends(state)
            del self._by_root_segment[state.root_segment_id]
            del self._by_id[equipment_id]
            state.change = ChangeType.REMOVED
            changed.append(state)
            return changed

        return self._recount([equipment_id, *self.parents_of(equipment_id)], drop)

    # =========================================================================
    # Moves
    # =========================================================================

    def move(self, equipment_id: UUID, nodes_of_interest_ids: Sequence[UUID]) -> list[StateRecord]:
        state = self._by_id.get(equipment_id)
        if state is None or not nodes_of_interest_ids:
            logger.debug("span_equipment_move_ignored", span_equipment_id=str(equipment_id))
            return []

        new_from, new_to = nodes_of_interest_ids[0], nodes_of_interest_ids[-1]
        if (state.from_node_id, state.to_node_id) == (new_from, new_to):
            return []

        def relocate() -> list[StateRecord]:
            self._unindex_ends(state)
            state.from_node_id = new_from
            state.to_node_id = new_to
            self._index_ends(state)
            state.change = ChangeType.UPDATED
            return [state]

        return self._recount([equipment_id], relocate)

    # A merge re-points the equipment exactly like a move does
    merge = move

    # =========================================================================
    # Attribute changes
    # =========================================================================

    def specification_changed(self, equipment_id: UUID, specification_id: UUID) -> list[StateRecord]:
        state = self._require(equipment_id)
        spec, structure = self._catalog.resolve_span_equipment(specification_id)

        def respecify() -> list[StateRecord]:
            state.specification_id = spec.id
            state.spec_name = spec.name
            state.outer_diameter = structure.outer_diameter
            state.is_customer_conduit = is_customer_conduit(spec.name)
            state.change = ChangeType.UPDATED
            return [state]

        return self._recount([equipment_id], respecify)

    def address_info_changed(self, equipment_id: UUID, address: AddressInfo | None) -> list[StateRecord]:
        state = self._require(equipment_id)
        state.access_address_id = address.access_address_id if address else None
        state.unit_address_id = address.unit_address_id if address else None
        state.change = ChangeType.UPDATED
        return [state]

    # =========================================================================
    # Root segment connectivity
    # =========================================================================

    def connect(
        self,
        equipment_id: UUID,
        connects: Iterable[SpanSegmentToSimpleTerminalConnectInfo],
    ) -> list[StateRecord]:
        state = self._by_id.get(equipment_id)
        if state is None:
            logger.debug("connect_unknown_span_equipment", span_equipment_id=str(equipment_id))
            return []

        # Only the root segment is tracked
        root_connects = [c for c in connects if c.segment_id == state.root_segment_id]
        if not root_connects:
            return []

        def attach_terminals() -> list[StateRecord]:
            for connect in root_connects:
                if connect.connection_direction is SpanSegmentConnectionDirection.FROM_TERMINAL_TO_SPAN_SEGMENT:
                    state.from_terminal_id = connect.terminal_id
                else:
                    state.to_terminal_id = connect.terminal_id
            state.change = ChangeType.UPDATED
            return [state]

        return self._recount([equipment_id], attach_terminals)

    def disconnect(
        self,
        equipment_id: UUID,
        disconnects: Iterable[SpanSegmentToTerminalDisconnectInfo],
    ) -> list[StateRecord]:
        state = self._by_id.get(equipment_id)
        if state is None:
            logger.debug("disconnect_unknown_span_equipment", span_equipment_id=str(equipment_id))
            return []

        terminals = {d.terminal_id for d in disconnects if d.segment_id == state.root_segment_id}
        if not terminals & {state.from_terminal_id, state.to_terminal_id}:
            return []

        def release_terminals() -> list[StateRecord]:
            if state.from_terminal_id in terminals:
                state.from_terminal_id = None
            if state.to_terminal_id in terminals:
                state.to_terminal_id = None
            state.change = ChangeType.UPDATED
            return [state]

        return self._recount([equipment_id], release_terminals)

    # =========================================================================
    # Parent / child
    # =========================================================================

    def affix_to_parent(self, child_id: UUID, hops: Iterable[UtilityNetworkHop]) -> list[StateRecord]:
        parents = self._resolve_parents(child_id, hops)
        if not parents:
            return []
        return self._recount([p.id for p in parents], lambda: self._attach(child_id, parents))

    def detach_from_parent(self, child_id: UUID) -> list[StateRecord]:
        """Detach a child from every parent it was affixed to.

        Parents are taken from the child -> parents index, so the hop list of
        the detach event is not needed.
        """
        parent_ids = self.parents_of(child_id)
        if not parent_ids:
            return []
        return self._recount(parent_ids, lambda: self._detach(child_id))

    # =========================================================================
    # Container transitions
    # =========================================================================

    def recount_at(self, route_node_id: UUID, mutate: Callable[[], T]) -> tuple[T, list[StateRecord]]:
        """Run *mutate* (a node-container change at the node) and return its slack changes."""
        outcome: list[T] = []

        def run() -> list[StateRecord]:
            outcome.append(mutate())
            return []

        changed = self._recount(self.ids_at(route_node_id), run)
        return outcome[0], changed

    # =========================================================================
    # Internals
    # =========================================================================

    def _recount(
        self, equipment_ids: Iterable[UUID], mutate: Callable[[], list[StateRecord]]
    ) -> list[StateRecord]:
        ids = list(dict.fromkeys(equipment_ids))
        before = self._eligible_ends(ids)
        changed = mutate()
        after = self._eligible_ends(ids)
        after.subtract(before)
        slack_changes = self._slack.apply(after)
        return _unique([*slack_changes, *changed])

    def _eligible_ends(self, equipment_ids: Iterable[UUID]) -> Counter[UUID]:
        counts: Counter[UUID] = Counter()
        for equipment_id in equipment_ids:
            state = self._by_id.get(equipment_id)
            if state is None:
                continue
            for end, node_id in state.ends():
                if self.is_slack_end(state, end):
                    counts[node_id] += 1
        return counts

    def _require(self, equipment_id: UUID) -> SpanEquipmentState:
        state = self._by_id.get(equipment_id)
        if state is None:
            raise ReferentialIntegrityViolation.missing("span_equipment", equipment_id)
        return state

    def _resolve_parents(self, child_id: UUID, hops: Iterable[UtilityNetworkHop]) -> list[SpanEquipmentState]:
        parents: dict[UUID, SpanEquipmentState] = {}
        for hop in hops:
            for affix in hop.parent_affixes:
                parent = self._by_root_segment.get(affix.span_segment_id)
                if parent is None or parent.id == child_id:
                    continue
                parents[parent.id] = parent
        return list(parents.values())

    def _attach(self, child_id: UUID, parents: Iterable[SpanEquipmentState]) -> list[StateRecord]:
        changed: list[StateRecord] = []
        parent_ids = self._parents_by_child.setdefault(child_id, [])
        for parent in parents:
            if child_id not in parent.child_ids:
                parent.child_ids.append(child_id)
            if parent.id not in parent_ids:
                parent_ids.append(parent.id)
            parent.change = ChangeType.UPDATED
            changed.append(parent)
        if not parent_ids:
            del self._parents_by_child[child_id]
        return changed

    def _detach(self, child_id: UUID) -> list[StateRecord]:
        changed: list[StateRecord] = []
        for parent_id in self._parents_by_child.pop(child_id, ()):
            parent = self._by_id.get(parent_id)
            if parent is None:
                continue
            if child_id in parent.child_ids:
                parent.child_ids.remove(child_id)
            parent.change = ChangeType.UPDATED
            changed.append(parent)
        return changed

    def _index_ends(self, state: SpanEquipmentState) -> None:
        for end, node_id in state.ends():
            self._ends_by_node.setdefault(node_id, set()).add((state.id, end))

    def _unindex_ends(self, state: SpanEquipmentState) -> None:
        for end, node_id in state.ends():
            ends = self._ends_by_node.get(node_id)
            if ends is None:
                continue
            ends.discard((state.id, end))
            if not ends:
                del self._ends_by_node[node_id]


def _unique(records: Iterable[StateRecord]) -> list[StateRecord]:
    seen: set[int] = set()
    result: list[StateRecord] = []
    for record in records:
        if id(record) not in seen:
            seen.add(id(record))
            result.append(record)
    return result
