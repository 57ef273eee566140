"""Background worker: initial replay, bulk export, liveness marker, catch-up poll loop.

Usage (programmatic)::

    from relational_projector.worker import ProjectorWorker

    worker = ProjectorWorker.from_settings(get_settings())
    worker.start()  # blocking, runs until SIGINT/SIGTERM

Usage (CLI)::

    relational-projector run --poll-interval 2
"""

from __future__ import annotations

import os
import signal
import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from relational_projector.core.errors import CancellationRequested, raise_if_cancelled
from relational_projector.core.logging import get_logger
from relational_projector.core.settings import ProjectorSettings
from relational_projector.events.source import EventSource
from relational_projector.projection.driver import ProjectionDriver
from relational_projector.sink import RelationalSink

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class WorkerStats:
    """Aggregate statistics for the worker."""

    started_at: datetime
    replayed_events: int = 0
    caught_up_events: int = 0
    polls: int = 0
    last_poll_at: datetime | None = None
    healthy: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "replayed_events": self.replayed_events,
            "caught_up_events": self.caught_up_events,
            "polls": self.polls,
            "last_poll_at": self.last_poll_at.isoformat() if self.last_poll_at else None,
            "healthy": self.healthy,
        }


class ProjectorWorker:
    """Runs one projection from an empty state to live catch-up.

    Lifecycle:
        1. ``driver.replay(source)``   full history, bulk mode
        2. ``driver.finish_bulk()``    schema + one bulk load per table
        3. write the liveness marker  (``health_file``)
        4. every ``poll_interval`` s: ``driver.catch_up(source)``

    Cancellation (``stop()`` or SIGINT/SIGTERM) is observed between events and
    between polls. Any other error propagates out of :meth:`run` and the
    liveness marker is removed; the process is expected to exit and be
    restarted, which rebuilds the read model from scratch.
    """

    def __init__(
        self,
        driver: ProjectionDriver,
        source: EventSource,
        *,
        poll_interval: float = 2.0,
        health_file: Path | None = Path("/tmp/healthy"),
    ) -> None:
        self._driver = driver
        self._source = source
        self._poll_interval = poll_interval
        self._health_file = health_file
        self._shutdown = threading.Event()
        self.stats = WorkerStats(started_at=_utcnow())

    @classmethod
    def from_settings(
        cls,
        settings: ProjectorSettings,
        *,
        source: EventSource | None = None,
        sink: RelationalSink | None = None,
    ) -> ProjectorWorker:
        """Build a worker wired to PostgreSQL per *settings* (source and sink overridable)."""
        from relational_projector.events.postgres import PostgresEventSource
        from relational_projector.sink.postgres import PostgresSink

        if source is None:
            source = PostgresEventSource(
                settings.event_store_url,
                schema=settings.event_schema,
                table=settings.event_table,
                batch_size=settings.replay_batch_size,
            )
        if sink is None:
            sink = PostgresSink(
                settings.sink_url,
                schema=settings.sink_schema,
                create_views=settings.create_route_network_views,
            )
        return cls(
            ProjectionDriver(sink),
            source,
            poll_interval=settings.poll_interval,
            health_file=settings.health_file,
        )

    @property
    def driver(self) -> ProjectionDriver:
        return self._driver

    @property
    def source(self) -> EventSource:
        return self._source

    @property
    def cancel_event(self) -> threading.Event:
        return self._shutdown

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def start(self) -> None:
        """Run the worker (blocking). Installs SIGINT / SIGTERM handlers."""
        try:
            signal.signal(signal.SIGINT, self._handle_signal)
            signal.signal(signal.SIGTERM, self._handle_signal)
        except ValueError:
            logger.debug("signal_handlers_skipped", reason="not main thread")

        self.run()

    def stop(self) -> None:
        """Request graceful shutdown."""
        logger.info("worker_stopping")
        self._shutdown.set()

    def run(self) -> None:
        logger.info("worker_started", pid=os.getpid(), poll_interval=self._poll_interval)
        try:
            self.stats.replayed_events = self._driver.replay(self._source, self._shutdown)
            # stop requested after the last replayed event: skip the export
            raise_if_cancelled(self._shutdown)
            self._driver.finish_bulk()
            self._mark_healthy()
            self._poll_loop()
        except CancellationRequested:
            logger.info("worker_cancelled", position=self._driver.position)
        except Exception:
            self._clear_health()
            raise
        finally:
            logger.info("worker_stopped", **self.stats.to_dict())

    def poll_once(self) -> int:
        """One catch-up pass. Returns the number of events applied."""
        count = self._driver.catch_up(self._source, self._shutdown)
        self.stats.polls += 1
        self.stats.caught_up_events += count
        self.stats.last_poll_at = _utcnow()
        if count:
            logger.info("events_processed", count=count, position=self._driver.position)
        else:
            logger.debug("events_processed", count=0, position=self._driver.position)
        return count

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _poll_loop(self) -> None:
        while not self._shutdown.is_set():
            self.poll_once()
            self._shutdown.wait(self._poll_interval)

    def _mark_healthy(self) -> None:
        self.stats.healthy = True
        if self._health_file is None:
            return
        self._health_file.write_text(_utcnow().isoformat())
        logger.info("liveness_marker_written", path=str(self._health_file))

    def _clear_health(self) -> None:
        self.stats.healthy = False
        if self._health_file is not None:
            self._health_file.unlink(missing_ok=True)

    def _handle_signal(self, signum: int, frame: Any) -> None:
        logger.info("signal_received", signal=signal.Signals(signum).name)
        self.stop()


__all__ = ["ProjectorWorker", "WorkerStats"]
