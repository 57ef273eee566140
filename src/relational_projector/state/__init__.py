"""In-memory derived state of the projection."""

from relational_projector.state.records import (
    ChangeType,
    ConduitSlackState,
    End,
    EntityKind,
    InterestRelationState,
    NodeContainerState,
    ServiceTerminationState,
    SpanEquipmentState,
    StateRecord,
    WorkTaskState,
)
from relational_projector.state.store import ProjectionState

__all__ = [
    "ChangeType",
    "ConduitSlackState",
    "End",
    "EntityKind",
    "InterestRelationState",
    "NodeContainerState",
    "ProjectionState",
    "ServiceTerminationState",
    "SpanEquipmentState",
    "StateRecord",
    "WorkTaskState",
]
