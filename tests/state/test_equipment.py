"""
Tests for the span equipment store and slack derivation.

Slack expectations are written as {route node: number of ends}; ``slack_of``
reads the ledger back in that shape.
"""

from uuid import uuid4

import pytest

from relational_projector.core.errors import ReferentialIntegrityViolation
from relational_projector.events.models import AddressInfo
from relational_projector.state.equipment import is_customer_conduit
from relational_projector.state.records import (
    ChangeType,
    ConduitSlackState,
    SpanEquipmentState,
)


def slack_of(state) -> dict:
    return {r.route_node_id: r.number_of_ends for r in state.slack.records()}


def changes(records) -> list[tuple[str, ChangeType]]:
    return [(type(r).__name__, r.change) for r in records]


# =============================================================================
# Customer conduit classification
# =============================================================================


class TestIsCustomerConduit:
    """Test the spec-name rule."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Ø12 customer conduit", True),
            ("ø12/8 drop", True),
            ("Multiconduit Ø40 with 6xØ12", True),
            ("Ø40 trunk conduit", False),
            ("12mm conduit", False),
            (None, False),
        ],
    )
    def test_rule(self, name, expected):
        assert is_customer_conduit(name) is expected


# =============================================================================
# Placement
# =============================================================================


class TestPlacement:
    """Test add."""

    def test_customer_conduit_creates_slack_at_both_ends(self, net, state):
        """An unterminated customer conduit yields one slack end per node."""
        a, b = net.node("A"), net.node("B")

        result = state.equipment.add(net.place(a, b).equipment)

        assert slack_of(state) == {a: 1, b: 1}
        assert changes(result) == [
            ("ConduitSlackState", ChangeType.NEW),
            ("ConduitSlackState", ChangeType.NEW),
            ("SpanEquipmentState", ChangeType.NEW),
        ]

    def test_state_fields(self, net, state):
        """The record carries spec, diameter, endpoints and root segment."""
        a, b, c = net.node("A"), net.node("B"), net.node("C")
        event = net.place(a, b, c, name="K1")

        state.equipment.add(event.equipment)
        record = state.equipment.get(event.equipment.id)

        assert record.spec_name == "Ø12 customer conduit"
        assert record.outer_diameter == 12
        assert (record.from_node_id, record.to_node_id) == (a, c)
        assert record.root_segment_id == net.root_segments[event.equipment.id]
        assert record.interest_id == net.interests[event.equipment.id]
        assert record.is_customer_conduit is True
        assert record.name == "K1"
        assert record.has_child is False
        assert state.equipment.by_root_segment(record.root_segment_id) is record

    def test_trunk_conduit_has_no_slack(self, net, state):
        """Non-customer conduits never count."""
        state.equipment.add(net.place(net.node("A"), net.node("B"), spec_id=net.trunk_spec_id).equipment)

        assert slack_of(state) == {}

    def test_terminated_end_has_no_slack(self, net, state):
        """An end placed already connected to a terminal does not count."""
        a, b = net.node("A"), net.node("B")

        state.equipment.add(net.place(a, b, to_terminal_id=uuid4()).equipment)

        assert slack_of(state) == {a: 1}

    def test_ends_at_same_node_accumulate(self, net, state):
        """Two conduits ending at one node count twice there."""
        a, b, c = net.node("A"), net.node("B"), net.node("C")

        state.equipment.add(net.place(a, b).equipment)
        result = state.equipment.add(net.place(b, c).equipment)

        assert slack_of(state) == {a: 1, b: 2, c: 1}
        slack_changes = {r.route_node_id: r.change for r in result if isinstance(r, ConduitSlackState)}
        assert slack_changes == {b: ChangeType.UPDATED, c: ChangeType.NEW}

    def test_duplicate_placement_ignored(self, net, state):
        """Placing an id twice changes nothing."""
        event = net.place(net.node("A"), net.node("B"))
        state.equipment.add(event.equipment)

        assert state.equipment.add(event.equipment) == []
        assert slack_of(state) == {net.node("A"): 1, net.node("B"): 1}

    def test_unknown_specification(self, net, state):
        """Placement with an unknown spec is a referential integrity violation."""
        event = net.place(net.node("A"), net.node("B"), spec_id=uuid4())

        with pytest.raises(ReferentialIntegrityViolation):
            state.equipment.add(event.equipment)
        assert len(state.equipment) == 0

    def test_address_on_placement(self, net, state):
        event = net.place(net.node("A"), net.node("B"))
        access, unit = uuid4(), uuid4()
        equipment = event.equipment.model_copy(
            update={"address_info": AddressInfo(access_address_id=access, unit_address_id=unit)}
        )

        state.equipment.add(equipment)
        record = state.equipment.get(equipment.id)

        assert (record.access_address_id, record.unit_address_id) == (access, unit)


# =============================================================================
# Removal
# =============================================================================


class TestRemoval:
    """Test remove."""

    def test_remove_releases_slack(self, net, state):
        """Removing the only conduit removes both slack records."""
        a, b = net.node("A"), net.node("B")
        event = net.place(a, b)
        state.equipment.add(event.equipment)

        result = state.equipment.remove(event.equipment.id)

        assert slack_of(state) == {}
        assert changes(result) == [
            ("ConduitSlackState", ChangeType.REMOVED),
            ("ConduitSlackState", ChangeType.REMOVED),
            ("SpanEquipmentState", ChangeType.REMOVED),
        ]
        assert state.equipment.get(event.equipment.id) is None
        assert state.equipment.ids_at(a) == []

    def test_remove_unknown_raises(self, state):
        with pytest.raises(ReferentialIntegrityViolation):
            state.equipment.remove(uuid4())


# =============================================================================
# Moves
# =============================================================================


class TestMove:
    """Test move and merge."""

    def test_move_shifts_slack(self, net, state):
        """Moving the to-end from B to C moves its slack."""
        a, b, c = net.node("A"), net.node("B"), net.node("C")
        event = net.place(a, b)
        state.equipment.add(event.equipment)

        result = state.equipment.move(event.equipment.id, (a, c))

        assert slack_of(state) == {a: 1, c: 1}
        record = state.equipment.get(event.equipment.id)
        assert record.to_node_id == c
        assert record.change is ChangeType.UPDATED
        assert record in result
        assert state.equipment.ids_at(b) == []
        assert state.equipment.ids_at(c) == [event.equipment.id]

    def test_move_to_same_endpoints_is_noop(self, net, state):
        """Only the first and last node matter."""
        a, b = net.node("A"), net.node("B")
        event = net.place(a, b)
        state.equipment.add(event.equipment)

        assert state.equipment.move(event.equipment.id, (a, net.node("X"), b)) == []

    def test_reversed_move_nets_out(self, net, state):
        """Swapping ends leaves slack counts unchanged and touches no slack record."""
        a, b = net.node("A"), net.node("B")
        event = net.place(a, b)
        state.equipment.add(event.equipment)

        result = state.equipment.move(event.equipment.id, (b, a))

        assert slack_of(state) == {a: 1, b: 1}
        assert changes(result) == [("SpanEquipmentState", ChangeType.UPDATED)]

    def test_move_unknown_ignored(self, net, state):
        assert state.equipment.move(uuid4(), (net.node("A"), net.node("B"))) == []

    def test_merge_behaves_like_move(self, net, state):
        a, b, c = net.node("A"), net.node("B"), net.node("C")
        event = net.place(a, b)
        state.equipment.add(event.equipment)

        state.equipment.merge(event.equipment.id, (c, b))

        assert slack_of(state) == {b: 1, c: 1}


# =============================================================================
# Attribute changes
# =============================================================================


class TestAttributeChanges:
    """Test specification and address changes."""

    def test_specification_change_to_trunk_removes_slack(self, net, state):
        a, b = net.node("A"), net.node("B")
        event = net.place(a, b)
        state.equipment.add(event.equipment)

        state.equipment.specification_changed(event.equipment.id, net.trunk_spec_id)

        record = state.equipment.get(event.equipment.id)
        assert record.is_customer_conduit is False
        assert record.outer_diameter == 40
        assert record.spec_name == "Ø40 trunk conduit"
        assert slack_of(state) == {}

    def test_specification_change_to_customer_adds_slack(self, net, state):
        a, b = net.node("A"), net.node("B")
        event = net.place(a, b, spec_id=net.trunk_spec_id)
        state.equipment.add(event.equipment)

        state.equipment.specification_changed(event.equipment.id, net.customer_spec_id)

        assert slack_of(state) == {a: 1, b: 1}

    def test_specification_change_unknown_spec(self, net, state):
        event = net.place(net.node("A"), net.node("B"))
        state.equipment.add(event.equipment)

        with pytest.raises(ReferentialIntegrityViolation):
            state.equipment.specification_changed(event.equipment.id, uuid4())

    def test_specification_change_unknown_equipment(self, net, state):
        with pytest.raises(ReferentialIntegrityViolation):
            state.equipment.specification_changed(uuid4(), net.trunk_spec_id)

    def test_address_change(self, net, state):
        event = net.place(net.node("A"), net.node("B"))
        state.equipment.add(event.equipment)
        unit = uuid4()

        (record,) = state.equipment.address_info_changed(
            event.equipment.id, AddressInfo(unit_address_id=unit)
        )

        assert record.change is ChangeType.UPDATED
        assert record.access_address_id is None
        assert record.unit_address_id == unit

    def test_address_cleared(self, net, state):
        event = net.place(net.node("A"), net.node("B"))
        state.equipment.add(event.equipment)

        (record,) = state.equipment.address_info_changed(event.equipment.id, None)

        assert record.unit_address_id is None

    def test_address_change_unknown_equipment(self, state):
        with pytest.raises(ReferentialIntegrityViolation):
            state.equipment.address_info_changed(uuid4(), None)


# =============================================================================
# Terminal connectivity
# =============================================================================


class TestConnectivity:
    """Test connect / disconnect of the root segment."""

    def test_connect_from_end(self, net, state):
        """FromTerminalToSpanSegment terminates the from end."""
        a, b = net.node("A"), net.node("B")
        event = net.place(a, b)
        state.equipment.add(event.equipment)
        terminal = uuid4()

        connect = net.connect(event.equipment.id, terminal, end="from")
        result = state.equipment.connect(connect.span_equipment_id, connect.connects)

        record = state.equipment.get(event.equipment.id)
        assert record.from_terminal_id == terminal
        assert record.root_segment_has_from_connection is True
        assert record.root_segment_has_to_connection is False
        assert slack_of(state) == {b: 1}
        assert ("ConduitSlackState", ChangeType.REMOVED) in changes(result)

    def test_connect_to_end(self, net, state):
        """FromSpanSegmentToTerminal terminates the to end."""
        a, b = net.node("A"), net.node("B")
        event = net.place(a, b)
        state.equipment.add(event.equipment)

        connect = net.connect(event.equipment.id, uuid4(), end="to")
        state.equipment.connect(connect.span_equipment_id, connect.connects)

        assert slack_of(state) == {a: 1}

    def test_disconnect_restores_slack(self, net, state):
        a, b = net.node("A"), net.node("B")
        event = net.place(a, b)
        state.equipment.add(event.equipment)
        terminal = uuid4()
        connect = net.connect(event.equipment.id, terminal, end="from")
        state.equipment.connect(connect.span_equipment_id, connect.connects)

        disconnect = net.disconnect(event.equipment.id, terminal)
        result = state.equipment.disconnect(disconnect.span_equipment_id, disconnect.disconnects)

        assert state.equipment.get(event.equipment.id).from_terminal_id is None
        assert slack_of(state) == {a: 1, b: 1}
        assert ("ConduitSlackState", ChangeType.NEW) in changes(result)

    def test_disconnect_of_other_terminal_is_noop(self, net, state):
        event = net.place(net.node("A"), net.node("B"), from_terminal_id=uuid4())
        state.equipment.add(event.equipment)

        disconnect = net.disconnect(event.equipment.id, uuid4())

        assert state.equipment.disconnect(disconnect.span_equipment_id, disconnect.disconnects) == []

    def test_non_root_segment_ignored(self, net, state):
        """Connections of inner segments are not tracked."""
        event = net.place(net.node("A"), net.node("B"))
        state.equipment.add(event.equipment)
        connect = net.connect(event.equipment.id, uuid4(), end="from")
        inner = connect.connects[0].model_copy(update={"segment_id": uuid4()})

        assert state.equipment.connect(event.equipment.id, (inner,)) == []
        assert len(state.slack) == 2

    def test_unknown_equipment_ignored(self, net, state):
        event = net.place(net.node("A"), net.node("B"))
        connect = net.connect(event.equipment.id, uuid4(), end="from")

        assert state.equipment.connect(uuid4(), connect.connects) == []


# =============================================================================
# Parent / child
# =============================================================================


class TestAffixDetach:
    """Test child equipment affixed inside parents."""

    def _parent_and_child(self, net, state):
        a, b = net.node("A"), net.node("B")
        parent = net.place(a, b)
        state.equipment.add(parent.equipment)
        child = net.place(a, b, spec_id=net.trunk_spec_id)
        state.equipment.add(child.equipment)
        return parent.equipment.id, child.equipment.id

    def test_affix_suppresses_parent_slack(self, net, state):
        """A parent with a child inside has no slack ends."""
        parent_id, child_id = self._parent_and_child(net, state)

        affix = net.affix(child_id, parent_id)
        result = state.equipment.affix_to_parent(affix.span_equipment_id, affix.new_utility_hop_list)

        parent = state.equipment.get(parent_id)
        assert parent.has_child is True
        assert parent.child_span_equipment_id == child_id
        assert parent.change is ChangeType.UPDATED
        assert state.equipment.parents_of(child_id) == [parent_id]
        assert slack_of(state) == {}
        assert ("SpanEquipmentState", ChangeType.UPDATED) in changes(result)

    def test_detach_restores_parent_slack(self, net, state):
        """Detaching is the exact inverse of affixing."""
        parent_id, child_id = self._parent_and_child(net, state)
        before = slack_of(state)
        affix = net.affix(child_id, parent_id)
        state.equipment.affix_to_parent(affix.span_equipment_id, affix.new_utility_hop_list)

        result = state.equipment.detach_from_parent(child_id)

        parent = state.equipment.get(parent_id)
        assert parent.has_child is False
        assert parent.child_span_equipment_id is None
        assert state.equipment.parents_of(child_id) == []
        assert slack_of(state) == before
        assert parent in result

    def test_detach_without_parent_is_noop(self, net, state):
        _, child_id = self._parent_and_child(net, state)

        assert state.equipment.detach_from_parent(child_id) == []

    def test_affix_to_unknown_segment_ignored(self, net, state):
        """Hops referencing untracked segments are skipped."""
        _, child_id = self._parent_and_child(net, state)
        stranger = uuid4()
        net.root_segments[stranger] = uuid4()

        affix = net.affix(child_id, stranger)

        assert state.equipment.affix_to_parent(child_id, affix.new_utility_hop_list) == []

    def test_placement_with_hops_affixes(self, net, state):
        """A child placed with utility hops is affixed in the same step."""
        a, b = net.node("A"), net.node("B")
        parent = net.place(a, b)
        state.equipment.add(parent.equipment)

        child = net.place(a, b, parents=(parent.equipment.id,))
        result = state.equipment.add(child.equipment)

        assert state.equipment.get(parent.equipment.id).has_child is True
        # The child's ends replace the parent's; the ledger nets to no change
        assert slack_of(state) == {a: 1, b: 1}
        assert not any(isinstance(r, ConduitSlackState) for r in result)
        assert [type(r) for r in result] == [SpanEquipmentState, SpanEquipmentState]

    def test_two_children_keep_last_as_representative(self, net, state):
        parent_id, first = self._parent_and_child(net, state)
        second = net.place(net.node("A"), net.node("B"), spec_id=net.trunk_spec_id)
        state.equipment.add(second.equipment)
        for child_id in (first, second.equipment.id):
            affix = net.affix(child_id, parent_id)
            state.equipment.affix_to_parent(child_id, affix.new_utility_hop_list)

        state.equipment.detach_from_parent(second.equipment.id)

        parent = state.equipment.get(parent_id)
        assert parent.has_child is True
        assert parent.child_span_equipment_id == first
        assert slack_of(state) == {}

    def test_removing_child_releases_parent(self, net, state):
        parent_id, child_id = self._parent_and_child(net, state)
        affix = net.affix(child_id, parent_id)
        state.equipment.affix_to_parent(child_id, affix.new_utility_hop_list)

        result = state.equipment.remove(child_id)

        assert state.equipment.get(parent_id).has_child is False
        assert slack_of(state) == {net.node("A"): 1, net.node("B"): 1}
        assert changes(result)[-1] == ("SpanEquipmentState", ChangeType.REMOVED)

    def test_removing_parent_forgets_child_link(self, net, state):
        parent_id, child_id = self._parent_and_child(net, state)
        affix = net.affix(child_id, parent_id)
        state.equipment.affix_to_parent(child_id, affix.new_utility_hop_list)

        state.equipment.remove(parent_id)

        assert state.equipment.parents_of(child_id) == []
        assert state.equipment.detach_from_parent(child_id) == []
        assert slack_of(state) == {}
