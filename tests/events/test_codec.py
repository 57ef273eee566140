"""Tests for decoding stored events."""

import json
from uuid import uuid4

import pytest
from pydantic.alias_generators import to_snake

from relational_projector.core.errors import EventSourceError, UnknownEventTypeError
from relational_projector.events import (
    EVENT_TYPES,
    InterestUnregistered,
    SpanEquipmentAddressInfoChanged,
    SpanEquipmentMoved,
    SpanEquipmentPlacedInRouteNetwork,
    SpanSegmentsConnectedToSimpleTerminals,
)
from relational_projector.events.codec import decode, event_class_for
from relational_projector.events.models import SpanSegmentConnectionDirection

NIL = "00000000-0000-0000-0000-000000000000"


# =============================================================================
# Type name lookup
# =============================================================================


class TestEventClassFor:
    """Test type name resolution."""

    def test_every_variant_resolves_by_class_and_snake_name(self):
        """Both spellings of every projected event type resolve."""
        for cls in EVENT_TYPES:
            assert event_class_for(cls.__name__) is cls
            assert event_class_for(to_snake(cls.__name__)) is cls

    def test_namespaced_name(self):
        """A dotted namespace prefix is ignored."""
        assert (
            event_class_for("OpenFTTH.UtilityGraphService.SpanEquipmentMoved")
            is SpanEquipmentMoved
        )

    def test_unprojected_type(self):
        """Types outside the projection resolve to None."""
        assert event_class_for("route_node_added") is None


# =============================================================================
# decode
# =============================================================================


class TestDecode:
    """Test decoding JSON documents into event variants."""

    def test_camel_case_payload(self):
        """camelCase keys populate snake_case fields."""
        equipment_id, node_a, node_b = uuid4(), uuid4(), uuid4()

        event = decode(
            "span_equipment_moved",
            {"spanEquipmentId": str(equipment_id), "nodesOfInterestIds": [str(node_a), str(node_b)]},
        )

        assert event == SpanEquipmentMoved(
            span_equipment_id=equipment_id, nodes_of_interest_ids=(node_a, node_b)
        )

    def test_raw_json_text(self):
        """Raw JSON text is parsed first."""
        interest_id = uuid4()

        event = decode("InterestUnregistered", json.dumps({"interestId": str(interest_id)}))

        assert event == InterestUnregistered(interest_id=interest_id)

    def test_unknown_fields_ignored(self):
        """Extra payload attributes are dropped."""
        interest_id = uuid4()

        event = decode(
            "interest_unregistered", {"interestId": str(interest_id), "userName": "someone"}
        )

        assert event == InterestUnregistered(interest_id=interest_id)

    def test_unknown_type_returns_none(self):
        """Non-projected events are skipped by default."""
        assert decode("route_node_added", {"nodeId": str(uuid4())}) is None

    def test_unknown_type_strict(self):
        """strict=True turns unknown types into an error."""
        with pytest.raises(UnknownEventTypeError) as exc_info:
            decode("route_node_added", {}, strict=True)

        assert exc_info.value.context.event_type == "route_node_added"

    def test_invalid_payload(self):
        """A payload missing required fields is an event source error."""
        with pytest.raises(EventSourceError) as exc_info:
            decode("span_equipment_moved", {"spanEquipmentId": "not-a-uuid"})

        assert exc_info.value.context.event_type == "span_equipment_moved"
        assert exc_info.value.cause is not None

    def test_nil_uuid_means_no_reference(self):
        """The nil UUID in an optional reference decodes to None."""
        unit_id = uuid4()

        event = decode(
            "span_equipment_address_info_changed",
            {
                "spanEquipmentId": str(uuid4()),
                "addressInfo": {"accessAddressId": NIL, "unitAddressId": str(unit_id)},
            },
        )

        assert isinstance(event, SpanEquipmentAddressInfoChanged)
        assert event.address_info.access_address_id is None
        assert event.address_info.unit_address_id == unit_id

    def test_nested_placement_payload(self):
        """A full placement payload decodes with its root segment."""
        segment_id, terminal_id = uuid4(), uuid4()
        payload = {
            "equipment": {
                "id": str(uuid4()),
                "specificationId": str(uuid4()),
                "walkOfInterestId": str(uuid4()),
                "nodesOfInterestIds": [str(uuid4()), str(uuid4())],
                "spanStructures": [
                    {
                        "id": str(uuid4()),
                        "spanSegments": [
                            {"id": str(segment_id), "fromTerminalId": NIL, "toTerminalId": str(terminal_id)}
                        ],
                    }
                ],
                "isCable": True,
                "utilityNetworkHops": None,
            }
        }

        event = decode("SpanEquipmentPlacedInRouteNetwork", payload)

        assert isinstance(event, SpanEquipmentPlacedInRouteNetwork)
        root = event.equipment.root_segment
        assert root.id == segment_id
        assert root.from_terminal_id is None
        assert root.to_terminal_id == terminal_id
        assert event.equipment.is_cable is True

    def test_connection_direction_enum(self):
        """Connection directions decode from their stored names."""
        event = decode(
            "span_segments_connected_to_simple_terminals",
            {
                "spanEquipmentId": str(uuid4()),
                "connects": [
                    {
                        "segmentId": str(uuid4()),
                        "terminalId": str(uuid4()),
                        "connectionDirection": "FromTerminalToSpanSegment",
                    }
                ],
            },
        )

        assert isinstance(event, SpanSegmentsConnectedToSimpleTerminals)
        assert (
            event.connects[0].connection_direction
            is SpanSegmentConnectionDirection.FROM_TERMINAL_TO_SPAN_SEGMENT
        )
