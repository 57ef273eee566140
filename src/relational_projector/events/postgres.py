"""PostgreSQL event source: reads the event store's ordered event table with psycopg3."""

from __future__ import annotations

from collections.abc import Iterator

import psycopg
from psycopg import sql

from relational_projector.core.errors import EventSourceError
from relational_projector.core.logging import get_logger
from relational_projector.events import EventEnvelope
from relational_projector.events.codec import decode

logger = get_logger(__name__)


class PostgresEventSource:
    """
    Event source over ``{schema}.{table}`` (``seq_id``, ``type``, ``data`` jsonb).

    Rows are streamed through a server-side cursor, ``batch_size`` rows per
    round-trip, so a full replay never holds the whole log in memory. A
    connection is opened per read and closed once the iterator is exhausted.

    Any driver error is raised as :class:`EventSourceError`; the projection
    treats it as fatal.
    """

    def __init__(
        self,
        conninfo: str,
        *,
        schema: str = "events",
        table: str = "mt_events",
        batch_size: int = 10_000,
        strict: bool = False,
    ) -> None:
        self._conninfo = conninfo
        self._schema = schema
        self._table = table
        self._batch_size = batch_size
        self._strict = strict
        self._position = 0

    @property
    def position(self) -> int:
        return self._position

    def _query(self) -> sql.Composed:
        return sql.SQL(
            "SELECT seq_id, type, data FROM {}.{} WHERE seq_id > %s ORDER BY seq_id"
        ).format(sql.Identifier(self._schema), sql.Identifier(self._table))

    def replay_all(self) -> Iterator[EventEnvelope]:
        return self.read_since(0)

    def read_since(self, position: int) -> Iterator[EventEnvelope]:
        skipped = 0
        try:
            with psycopg.connect(self._conninfo) as conn:
                with conn.cursor(name="relational_projector_events") as cur:
                    cur.itersize = self._batch_size
                    cur.execute(self._query(), (position,))
                    for seq_id, event_type, data in cur:
                        self._position = max(self._position, seq_id)
                        event = decode(event_type, data, strict=self._strict)
                        if event is None:
                            skipped += 1
                            continue
                        yield EventEnvelope(position=seq_id, event=event)
        except psycopg.Error as e:
            raise EventSourceError(
                f"Failed to read events from {self._schema}.{self._table}: {e}",
                cause=e,
            ).with_context(position=self._position) from e

        if skipped:
            logger.debug("events_skipped", count=skipped, position=self._position)


__all__ = ["PostgresEventSource"]
