"""In-memory sink: tables as dicts of rows keyed by primary key."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from relational_projector.core.errors import SinkUnavailable
from relational_projector.sink.rows import KEYS, Row, column_names, rows_for
from relational_projector.state.records import EntityKind, StateRecord


class InMemorySink:
    """
    Sink that keeps rows in memory.

    Rows are copied out of the records when written, so later mutation of a
    record does not leak into the table. Inserting an existing key fails the
    way a primary key violation would.

    Attributes:
        tables: Per entity kind, primary key -> row
        operations: Log of (operation, kind, key) in call order
    """

    def __init__(self) -> None:
        self.tables: dict[EntityKind, dict[tuple[Any, ...], Row]] = {
            kind: {} for kind in EntityKind
        }
        self.operations: list[tuple[str, EntityKind, Any]] = []
        self.schema_ensured = 0

    def ensure_schema(self) -> None:
        self.schema_ensured += 1

    def bulk_load(self, kind: EntityKind, records: Sequence[StateRecord]) -> int:
        table = self.tables[kind]
        table.clear()
        for record in records:
            for row in rows_for(record):
                table[_key(kind, row)] = row
        self.operations.append(("bulk_load", kind, len(table)))
        return len(table)

    def insert(self, kind: EntityKind, record: StateRecord) -> None:
        table = self.tables[kind]
        for row in rows_for(record):
            key = _key(kind, row)
            if key in table:
                raise SinkUnavailable(
                    f"duplicate key {key} in {kind.table}"
                ).with_context(table=kind.table, entity_id=str(record.id))
            table[key] = row
        self.operations.append(("insert", kind, record.id))

    def update(self, kind: EntityKind, record: StateRecord) -> None:
        table = self.tables[kind]
        if kind is EntityKind.INTEREST_RELATION:
            self._drop(kind, record.id)
            for row in rows_for(record):
                table[_key(kind, row)] = row
        else:
            for row in rows_for(record):
                key = _key(kind, row)
                if key in table:
                    table[key] = row
        self.operations.append(("update", kind, record.id))

    def delete(self, kind: EntityKind, record: StateRecord) -> None:
        self._drop(kind, record.id)
        self.operations.append(("delete", kind, record.id))

    def rows(self, kind: EntityKind) -> list[Row]:
        return list(self.tables[kind].values())

    def row_set(self, kind: EntityKind) -> set[Row]:
        return set(self.tables[kind].values())

    def row(self, kind: EntityKind, entity_id: Any) -> dict[str, Any] | None:
        """Row with primary key *entity_id*, as a column -> value dict."""
        row = self.tables[kind].get((entity_id,))
        return dict(zip(column_names(kind), row)) if row is not None else None

    def _drop(self, kind: EntityKind, entity_id: Any) -> None:
        table = self.tables[kind]
        for key in [k for k in table if k[0] == entity_id]:
            del table[key]


def _key(kind: EntityKind, row: Row) -> tuple[Any, ...]:
    return row[: len(KEYS[kind])]


__all__ = ["InMemorySink"]
