"""
relational-projector: event-sourced relational read model of a fiber network's
physical topology.

Consumes the ordered physical-network event stream, keeps derived state in
memory (interest relations, span equipment, node containers, service
terminations, conduit slack, work tasks) and publishes it to PostgreSQL: one
bulk export after the initial replay, then row-level changes per event.

Quick start::

    from relational_projector import ProjectionDriver
    from relational_projector.events.source import InMemoryEventSource
    from relational_projector.sink.memory import InMemorySink

    driver = ProjectionDriver(InMemorySink())
    driver.replay(InMemoryEventSource(events))
    driver.finish_bulk()
"""

from relational_projector.projection.driver import ProjectionDriver, ProjectionMode
from relational_projector.state.store import ProjectionState

__version__ = "0.1.0"

__all__ = ["ProjectionDriver", "ProjectionMode", "ProjectionState", "__version__"]
