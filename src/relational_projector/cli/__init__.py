"""Command line interface (typer)."""

from relational_projector.cli.app import app

__all__ = ["app"]
