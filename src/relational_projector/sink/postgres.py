"""
PostgreSQL sink using psycopg3.

A connection is opened per logical operation (one bulk load, one row
mutation) and closed right after; nothing is held across the processing loop.

Bulk loads run ``TRUNCATE`` and a binary ``COPY ... FROM STDIN`` in a single
transaction, so readers see either the previous table contents or the fully
loaded ones.

Every ``psycopg.Error`` surfaces as :class:`SinkUnavailable`.
"""

from __future__ import annotations

import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

import psycopg
from psycopg import sql

from relational_projector.core.errors import SinkUnavailable
from relational_projector.core.logging import get_logger
from relational_projector.sink.rows import KEYS, column_names, column_types, rows_for
from relational_projector.sink.schema import schema_statements
from relational_projector.state.records import EntityKind, StateRecord

logger = get_logger(__name__)


# =============================================================================
# Statement builders
# =============================================================================


def _table(schema: str, kind: EntityKind) -> sql.Composed:
    return sql.SQL("{}.{}").format(sql.Identifier(schema), sql.Identifier(kind.table))


def _columns(names: Sequence[str]) -> sql.Composed:
    return sql.SQL(", ").join(sql.Identifier(name) for name in names)


def truncate_statement(schema: str, kind: EntityKind) -> sql.Composed:
    return sql.SQL("TRUNCATE TABLE {}").format(_table(schema, kind))


def copy_statement(schema: str, kind: EntityKind) -> sql.Composed:
    return sql.SQL("COPY {} ({}) FROM STDIN (FORMAT BINARY)").format(
        _table(schema, kind), _columns(column_names(kind))
    )


def insert_statement(schema: str, kind: EntityKind) -> sql.Composed:
    names = column_names(kind)
    return sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
        _table(schema, kind),
        _columns(names),
        sql.SQL(", ").join(sql.Placeholder() * len(names)),
    )


def update_statement(schema: str, kind: EntityKind) -> sql.Composed:
    """UPDATE of every non-key column; parameters are the row's values followed by its key."""
    keys = KEYS[kind]
    assignments = [
        sql.SQL("{} = %s").format(sql.Identifier(name))
        for name in column_names(kind)
        if name not in keys
    ]
    return sql.SQL("UPDATE {} SET {} WHERE {}").format(
        _table(schema, kind),
        sql.SQL(", ").join(assignments),
        sql.SQL(" AND ").join(sql.SQL("{} = %s").format(sql.Identifier(k)) for k in keys),
    )


def delete_statement(schema: str, kind: EntityKind) -> sql.Composed:
    """DELETE by the record's id (for the interest relation: every row of the interest)."""
    key = KEYS[kind][0]
    return sql.SQL("DELETE FROM {} WHERE {} = %s").format(
        _table(schema, kind), sql.Identifier(key)
    )


# =============================================================================
# Sink
# =============================================================================


class PostgresSink:
    def __init__(
        self,
        conninfo: str,
        *,
        schema: str = "utility_network",
        create_views: bool = False,
    ) -> None:
        self._conninfo = conninfo
        self._schema = schema
        self._create_views = create_views

    @property
    def schema(self) -> str:
        return self._schema

    @contextmanager
    def _connection(self, kind: EntityKind | None = None) -> Iterator[psycopg.Connection]:
        try:
            with psycopg.connect(self._conninfo) as conn:
                yield conn
        except psycopg.Error as e:
            error = SinkUnavailable(f"Sink operation failed: {e}", cause=e)
            if kind is not None:
                error.with_context(table=f"{self._schema}.{kind.table}")
            raise error from e

    def ensure_schema(self) -> None:
        statements = schema_statements(self._schema, include_views=self._create_views)
        with self._connection() as conn:
            with conn.transaction():
                for statement in statements:
                    conn.execute(statement)
        logger.info(
            "sink_schema_ensured",
            schema=self._schema,
            statements=len(statements),
            views=self._create_views,
        )

    def bulk_load(self, kind: EntityKind, records: Sequence[StateRecord]) -> int:
        start = time.perf_counter()
        count = 0
        with self._connection(kind) as conn:
            with conn.transaction():
                conn.execute(truncate_statement(self._schema, kind))
                with conn.cursor() as cur:
                    with cur.copy(copy_statement(self._schema, kind)) as copy:
                        copy.set_types(column_types(kind))
                        for record in records:
                            for row in rows_for(record):
                                copy.write_row(row)
                                count += 1

        logger.info(
            "bulk_load_completed",
            table=kind.table,
            records=len(records),
            rows=count,
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return count

    def insert(self, kind: EntityKind, record: StateRecord) -> None:
        rows = rows_for(record)
        if not rows:
            return
        with self._connection(kind) as conn:
            with conn.cursor() as cur:
                cur.executemany(insert_statement(self._schema, kind), rows)

    def update(self, kind: EntityKind, record: StateRecord) -> None:
        if kind is EntityKind.INTEREST_RELATION:
            # A walk is replaced wholesale
            with self._connection(kind) as conn:
                with conn.transaction():
                    conn.execute(delete_statement(self._schema, kind), (record.id,))
                    rows = rows_for(record)
                    if rows:
                        with conn.cursor() as cur:
                            cur.executemany(insert_statement(self._schema, kind), rows)
            return

        keys = KEYS[kind]
        names = column_names(kind)
        key_positions = [names.index(k) for k in keys]
        (row,) = rows_for(record)
        params = [value for name, value in zip(names, row) if name not in keys]
        params.extend(row[i] for i in key_positions)

        with self._connection(kind) as conn:
            conn.execute(update_statement(self._schema, kind), params)

    def delete(self, kind: EntityKind, record: StateRecord) -> None:
        with self._connection(kind) as conn:
            conn.execute(delete_statement(self._schema, kind), (record.id,))


__all__ = [
    "PostgresSink",
    "copy_statement",
    "delete_statement",
    "insert_statement",
    "truncate_statement",
    "update_statement",
]
