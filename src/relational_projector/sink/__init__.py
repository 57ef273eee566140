"""
Relational sink: where the projection publishes its state.

Usage::

    from relational_projector.sink import RelationalSink
    from relational_projector.sink.postgres import PostgresSink

    sink: RelationalSink = PostgresSink(settings.sink_url, schema="utility_network")
    sink.ensure_schema()
    sink.bulk_load(EntityKind.CONDUIT_SLACK, state.slack.records())

Modules
-------
rows        record -> row mapping and column lists per entity kind
schema      idempotent DDL (schema, tables, indexes, map views)
postgres    PostgresSink -- binary COPY bulk loads and row mutations (psycopg3)
memory      InMemorySink -- dict-backed tables for tests and dry runs
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from relational_projector.state.records import EntityKind, StateRecord


@runtime_checkable
class RelationalSink(Protocol):
    """Operations the projection driver needs from the read model store."""

    def ensure_schema(self) -> None:
        """Create schema, tables, indexes (and optionally views) if missing."""
        ...

    def bulk_load(self, kind: EntityKind, records: Sequence[StateRecord]) -> int:
        """Replace the table contents of *kind* with *records*; returns rows written."""
        ...

    def insert(self, kind: EntityKind, record: StateRecord) -> None:
        ...

    def update(self, kind: EntityKind, record: StateRecord) -> None:
        ...

    def delete(self, kind: EntityKind, record: StateRecord) -> None:
        ...


__all__ = ["EntityKind", "RelationalSink"]
