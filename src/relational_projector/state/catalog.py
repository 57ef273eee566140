"""Catalog Store: specification lookup tables filled by "specification added" events."""

from __future__ import annotations

from uuid import UUID

from relational_projector.core.errors import ReferentialIntegrityViolation
from relational_projector.events.models import (
    NodeContainerSpecification,
    SpanEquipmentSpecification,
    SpanStructureSpecification,
    TerminalEquipmentSpecification,
)


class CatalogStore:
    """
    Reference data keyed by specification id.

    Specifications are only ever added. Lookups of an id that was never added
    raise :class:`ReferentialIntegrityViolation`: the event stream guarantees
    specifications precede the events that use them.
    """

    def __init__(self) -> None:
        self._span_equipment: dict[UUID, SpanEquipmentSpecification] = {}
        self._span_structure: dict[UUID, SpanStructureSpecification] = {}
        self._node_container: dict[UUID, NodeContainerSpecification] = {}
        self._terminal_equipment: dict[UUID, TerminalEquipmentSpecification] = {}

    # ── add ──────────────────────────────────────────────────────────────

    def add_span_equipment_specification(self, spec: SpanEquipmentSpecification) -> None:
        self._span_equipment[spec.id] = spec

    def add_span_structure_specification(self, spec: SpanStructureSpecification) -> None:
        self._span_structure[spec.id] = spec

    def add_node_container_specification(self, spec: NodeContainerSpecification) -> None:
        self._node_container[spec.id] = spec

    def add_terminal_equipment_specification(self, spec: TerminalEquipmentSpecification) -> None:
        self._terminal_equipment[spec.id] = spec

    # ── lookup ───────────────────────────────────────────────────────────

    def span_equipment_specification(self, spec_id: UUID) -> SpanEquipmentSpecification:
        return self._lookup(self._span_equipment, spec_id, "span_equipment_specification")

    def span_structure_specification(self, spec_id: UUID) -> SpanStructureSpecification:
        return self._lookup(self._span_structure, spec_id, "span_structure_specification")

    def node_container_specification(self, spec_id: UUID) -> NodeContainerSpecification:
        return self._lookup(self._node_container, spec_id, "node_container_specification")

    def terminal_equipment_specification(self, spec_id: UUID) -> TerminalEquipmentSpecification:
        return self._lookup(
            self._terminal_equipment, spec_id, "terminal_equipment_specification"
        )

    def resolve_span_equipment(
        self, spec_id: UUID
    ) -> tuple[SpanEquipmentSpecification, SpanStructureSpecification]:
        """Resolve an equipment specification together with its root structure specification."""
        spec = self.span_equipment_specification(spec_id)
        return spec, self.span_structure_specification(spec.root_structure_specification_id)

    def __len__(self) -> int:
        return (
            len(self._span_equipment)
            + len(self._span_structure)
            + len(self._node_container)
            + len(self._terminal_equipment)
        )

    @staticmethod
    def _lookup(table: dict, spec_id: UUID, kind: str):
        try:
            return table[spec_id]
        except KeyError:
            raise ReferentialIntegrityViolation.missing(kind, spec_id) from None
