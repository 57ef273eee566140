"""
Relation Index: interest id -> ordered, duplicate-free route network element ids.

A walk may visit the same route element more than once (a route node shared by
two consecutive segments, a walk that doubles back). The exported relation is
keyed by (interest, element), so each element is kept at its first position
only; the position becomes the row's sequence number.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from relational_projector.state.records import ChangeType, InterestRelationState


def dedupe_preserving_order(element_ids: Iterable[UUID]) -> tuple[UUID, ...]:
    """Keep the first occurrence of each id, in order."""
    seen: set[UUID] = set()
    result: list[UUID] = []
    for element_id in element_ids:
        if element_id not in seen:
            seen.add(element_id)
            result.append(element_id)
    return tuple(result)


class RelationIndex:
    def __init__(self) -> None:
        self._by_interest: dict[UUID, InterestRelationState] = {}

    def register(self, interest_id: UUID, element_ids: Iterable[UUID]) -> InterestRelationState:
        """Store the walk of a newly registered interest.

        Registering an interest that is already known replaces its walk and
        is reported as an update.
        """
        return self._store(interest_id, element_ids)

    def update(self, interest_id: UUID, element_ids: Iterable[UUID]) -> InterestRelationState:
        """Replace the walk of an interest wholesale."""
        return self._store(interest_id, element_ids)

    def remove(self, interest_id: UUID) -> InterestRelationState | None:
        relation = self._by_interest.pop(interest_id, None)
        if relation is None:
            return None
        relation.change = ChangeType.REMOVED
        return relation

    def get(self, interest_id: UUID) -> tuple[UUID, ...] | None:
        relation = self._by_interest.get(interest_id)
        return relation.element_ids if relation else None

    def records(self) -> list[InterestRelationState]:
        return list(self._by_interest.values())

    def __len__(self) -> int:
        return len(self._by_interest)

    def __contains__(self, interest_id: object) -> bool:
        return interest_id in self._by_interest

    def _store(self, interest_id: UUID, element_ids: Iterable[UUID]) -> InterestRelationState:
        ids = dedupe_preserving_order(element_ids)
        relation = self._by_interest.get(interest_id)
        if relation is None:
            relation = InterestRelationState(interest_id=interest_id, element_ids=ids)
            self._by_interest[interest_id] = relation
        else:
            relation.element_ids = ids
            relation.change = ChangeType.UPDATED
        return relation
