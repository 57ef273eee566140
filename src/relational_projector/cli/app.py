"""
Root Typer application for the relational projector.

Commands::

    relational-projector run       replay, export, then follow the event store
    relational-projector replay    replay and export once, then exit
    relational-projector schema    create the read model schema only

Connection settings come from ``PROJECTOR_*`` environment variables (or
``.env``); the options below override them for one invocation.
"""

from __future__ import annotations

from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from relational_projector.core.errors import ProjectorError
from relational_projector.core.logging import configure_logging
from relational_projector.core.settings import ProjectorSettings, load_settings

app = typer.Typer(
    name="relational-projector",
    help="Project physical network events into relational read-model tables.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)


# ── Helpers ──────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError, version as pkg_version

        try:
            v = pkg_version("relational-projector")
        except PackageNotFoundError:
            v = "unknown"
        typer.echo(f"relational-projector {v}")
        raise typer.Exit()


def _settings(**overrides: Any) -> ProjectorSettings:
    """Settings from the environment, with non-None CLI overrides applied."""
    try:
        settings = load_settings(**{k: v for k, v in overrides.items() if v is not None})
    except ProjectorError as exc:
        raise _fail(exc) from exc
    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    return settings


def _fail(exc: ProjectorError) -> typer.Exit:
    err_console.print(f"[red]{exc.__class__.__name__}:[/red] {exc.message}")
    context = exc.context.to_dict()
    if context:
        err_console.print(f"[dim]{context}[/dim]")
    return typer.Exit(code=1)


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """relational-projector CLI: build and maintain the utility network read model."""


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("run")
def run(
    event_store_url: str | None = typer.Option(None, "--event-store-url", help="Event store conninfo"),  # noqa: UP007
    sink_url: str | None = typer.Option(None, "--sink-url", help="Read model conninfo"),  # noqa: UP007
    sink_schema: str | None = typer.Option(None, "--schema", help="Read model schema"),  # noqa: UP007
    poll_interval: float | None = typer.Option(None, "--poll-interval", help="Seconds between catch-up polls"),  # noqa: UP007
    views: bool | None = typer.Option(None, "--views/--no-views", help="Create route network map views"),  # noqa: UP007
) -> None:
    """Replay the event store, export the read model, then follow new events.

    Runs until SIGINT/SIGTERM. The liveness marker is written once the
    initial export has completed.

    Example::

        relational-projector run --poll-interval 2 --views
    """
    from relational_projector.worker import ProjectorWorker

    settings = _settings(
        event_store_url=event_store_url,
        sink_url=sink_url,
        sink_schema=sink_schema,
        poll_interval=poll_interval,
        create_route_network_views=views,
    )

    console.print(
        f"[bold green]Starting relational projector[/bold green] "
        f"(schema={settings.sink_schema}, poll={settings.poll_interval}s)"
    )

    try:
        ProjectorWorker.from_settings(settings).start()
    except ProjectorError as exc:
        raise _fail(exc) from exc


@app.command("replay")
def replay(
    event_store_url: str | None = typer.Option(None, "--event-store-url", help="Event store conninfo"),  # noqa: UP007
    sink_url: str | None = typer.Option(None, "--sink-url", help="Read model conninfo"),  # noqa: UP007
    sink_schema: str | None = typer.Option(None, "--schema", help="Read model schema"),  # noqa: UP007
    views: bool | None = typer.Option(None, "--views/--no-views", help="Create route network map views"),  # noqa: UP007
) -> None:
    """Rebuild the read model from the full event history once, then exit."""
    from relational_projector.worker import ProjectorWorker

    settings = _settings(
        event_store_url=event_store_url,
        sink_url=sink_url,
        sink_schema=sink_schema,
        create_route_network_views=views,
    )
    worker = ProjectorWorker.from_settings(settings)
    driver = worker.driver

    try:
        events = driver.replay(worker.source, worker.cancel_event)
        rows = driver.finish_bulk()
    except ProjectorError as exc:
        raise _fail(exc) from exc

    table = Table(title=f"Replayed {events} events (position {driver.position})")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", justify="right")
    for kind, count in rows.items():
        table.add_row(f"{settings.sink_schema}.{kind.table}", str(count))
    console.print(table)


@app.command("schema")
def schema(
    sink_url: str | None = typer.Option(None, "--sink-url", help="Read model conninfo"),  # noqa: UP007
    sink_schema: str | None = typer.Option(None, "--schema", help="Read model schema"),  # noqa: UP007
    views: bool | None = typer.Option(None, "--views/--no-views", help="Create route network map views"),  # noqa: UP007
) -> None:
    """Create the read model schema, tables and indexes (idempotent)."""
    from relational_projector.sink.postgres import PostgresSink

    settings = _settings(
        sink_url=sink_url,
        sink_schema=sink_schema,
        create_route_network_views=views,
    )
    sink = PostgresSink(
        settings.sink_url,
        schema=settings.sink_schema,
        create_views=settings.create_route_network_views,
    )
    try:
        sink.ensure_schema()
    except ProjectorError as exc:
        raise _fail(exc) from exc
    console.print(f"[green]Schema {settings.sink_schema} is up to date[/green]")
