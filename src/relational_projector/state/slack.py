"""
Conduit slack ledger.

Keeps, per route node, the number of customer conduit ends lying there
unterminated. A record exists for a node iff its count is at least 1.

Callers never increment or decrement a node directly. They hand the ledger
the net per-node delta of one whole operation (``apply``), computed as
"eligible ends after" minus "eligible ends before". Netting first means a move
that leaves and re-enters the same node touches nothing, and a node can never
be driven below zero by the ordering of its adjustments.

Example:
    >>> ledger = ConduitSlackLedger()
    >>> [r.change for r in ledger.apply({node: 2})]
    [<ChangeType.NEW: 'NEW'>]
    >>> [r.change for r in ledger.apply({node: -2})]
    [<ChangeType.REMOVED: 'REMOVED'>]
"""

from __future__ import annotations

from collections.abc import Mapping
from uuid import UUID

from relational_projector.core.logging import get_logger
from relational_projector.state.records import ChangeType, ConduitSlackState

logger = get_logger(__name__)


class ConduitSlackLedger:
    def __init__(self) -> None:
        self._by_node: dict[UUID, ConduitSlackState] = {}

    def count(self, route_node_id: UUID) -> int:
        record = self._by_node.get(route_node_id)
        return record.number_of_ends if record else 0

    def get(self, route_node_id: UUID) -> ConduitSlackState | None:
        return self._by_node.get(route_node_id)

    def records(self) -> list[ConduitSlackState]:
        return list(self._by_node.values())

    def __len__(self) -> int:
        return len(self._by_node)

    def apply(self, deltas: Mapping[UUID, int]) -> list[ConduitSlackState]:
        """Apply net per-node deltas and return the slack records that changed."""
        changed: list[ConduitSlackState] = []

        for route_node_id, delta in deltas.items():
            if delta == 0:
                continue

            record = self._by_node.get(route_node_id)

            if delta > 0:
                if record is None:
                    record = ConduitSlackState.at(route_node_id)
                    record.number_of_ends = delta
                    record.change = ChangeType.NEW
                    self._by_node[route_node_id] = record
                else:
                    record.number_of_ends += delta
                    record.change = ChangeType.UPDATED
                changed.append(record)
                continue

            if record is None:
                logger.debug("slack_decrement_without_record", route_node_id=str(route_node_id))
                continue

            record.number_of_ends = max(0, record.number_of_ends + delta)
            if record.number_of_ends == 0:
                del self._by_node[route_node_id]
                record.change = ChangeType.REMOVED
            else:
                record.change = ChangeType.UPDATED
            changed.append(record)

        return changed
