"""Projection driver (bulk replay, export, incremental catch-up)."""

from relational_projector.projection.driver import ProjectionDriver, ProjectionMode, ProjectionStats

__all__ = ["ProjectionDriver", "ProjectionMode", "ProjectionStats"]
