"""
State record -> sink row mapping.

One table per entity kind. ``COLUMNS`` lists each table's columns with their
PostgreSQL types, in row order; the first column(s) named in ``KEYS`` form the
primary key. ``rows_for`` flattens a record into the rows it occupies: one row
for every kind except the interest relation, which takes one row per route
network element with its position as ``seq_no``.
"""

from __future__ import annotations

from typing import Any

from relational_projector.state.records import (
    ConduitSlackState,
    EntityKind,
    InterestRelationState,
    NodeContainerState,
    ServiceTerminationState,
    SpanEquipmentState,
    StateRecord,
    WorkTaskState,
)

Row = tuple[Any, ...]

COLUMNS: dict[EntityKind, tuple[tuple[str, str], ...]] = {
    EntityKind.INTEREST_RELATION: (
        ("interest_id", "uuid"),
        ("route_network_element_id", "uuid"),
        ("seq_no", "integer"),
    ),
    EntityKind.SPAN_EQUIPMENT: (
        ("id", "uuid"),
        ("interest_id", "uuid"),
        ("from_node_id", "uuid"),
        ("to_node_id", "uuid"),
        ("outer_diameter", "integer"),
        ("is_cable", "boolean"),
        ("is_customer_conduit", "boolean"),
        ("name", "varchar"),
        ("spec_name", "varchar"),
        ("root_segment_id", "uuid"),
        ("from_terminal_id", "uuid"),
        ("to_terminal_id", "uuid"),
        ("has_child", "boolean"),
        ("child_span_equipment_id", "uuid"),
        ("access_address_id", "uuid"),
        ("unit_address_id", "uuid"),
    ),
    EntityKind.NODE_CONTAINER: (
        ("id", "uuid"),
        ("route_node_id", "uuid"),
        ("spec_name", "varchar"),
        ("spec_category", "varchar"),
    ),
    EntityKind.SERVICE_TERMINATION: (
        ("id", "uuid"),
        ("route_node_id", "uuid"),
        ("name", "varchar"),
        ("access_address_id", "uuid"),
        ("unit_address_id", "uuid"),
    ),
    EntityKind.CONDUIT_SLACK: (
        ("id", "uuid"),
        ("route_node_id", "uuid"),
        ("number_of_ends", "integer"),
    ),
    EntityKind.WORK_TASK: (
        ("id", "uuid"),
        ("number", "varchar"),
        ("status", "varchar"),
    ),
}

KEYS: dict[EntityKind, tuple[str, ...]] = {
    kind: ("interest_id", "route_network_element_id")
    if kind is EntityKind.INTEREST_RELATION
    else ("id",)
    for kind in EntityKind
}


def column_names(kind: EntityKind) -> list[str]:
    return [name for name, _ in COLUMNS[kind]]


def column_types(kind: EntityKind) -> list[str]:
    return [pg_type for _, pg_type in COLUMNS[kind]]


def rows_for(record: StateRecord) -> list[Row]:
    """Rows a record occupies in its table."""
    match record:
        case InterestRelationState():
            return [
                (record.interest_id, element_id, seq_no)
                for seq_no, element_id in enumerate(record.element_ids, start=1)
            ]
        case SpanEquipmentState():
            return [
                (
                    record.id,
                    record.interest_id,
                    record.from_node_id,
                    record.to_node_id,
                    record.outer_diameter,
                    record.is_cable,
                    record.is_customer_conduit,
                    record.name,
                    record.spec_name,
                    record.root_segment_id,
                    record.from_terminal_id,
                    record.to_terminal_id,
                    record.has_child,
                    record.child_span_equipment_id,
                    record.access_address_id,
                    record.unit_address_id,
                )
            ]
        case NodeContainerState():
            return [(record.id, record.route_node_id, record.spec_name, record.spec_category)]
        case ServiceTerminationState():
            return [
                (
                    record.id,
                    record.route_node_id,
                    record.name,
                    record.access_address_id,
                    record.unit_address_id,
                )
            ]
        case ConduitSlackState():
            return [(record.id, record.route_node_id, record.number_of_ends)]
        case WorkTaskState():
            return [(record.id, record.number, record.status)]
    raise TypeError(f"Not a state record: {type(record).__name__}")


__all__ = ["COLUMNS", "KEYS", "Row", "column_names", "column_types", "rows_for"]
