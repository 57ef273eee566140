"""Service-termination state: customer-terminating terminal equipment, located by route node."""

from __future__ import annotations

from uuid import UUID

from relational_projector.core.logging import get_logger
from relational_projector.events.models import AddressInfo, NamingInfo, TerminalEquipment
from relational_projector.state.catalog import CatalogStore
from relational_projector.state.containers import NodeContainerStore
from relational_projector.state.records import ChangeType, ServiceTerminationState

logger = get_logger(__name__)


class ServiceTerminationStore:
    """
    Tracks terminal equipment whose specification is a customer termination.

    The route node is resolved through the owning node container when the
    equipment is placed and is not updated afterwards. Terminal equipment that
    is not a customer termination, or whose container is unknown, is not
    tracked; later events for it are ignored.
    """

    def __init__(self, catalog: CatalogStore, containers: NodeContainerStore) -> None:
        self._catalog = catalog
        self._containers = containers
        self._by_id: dict[UUID, ServiceTerminationState] = {}

    def get(self, equipment_id: UUID) -> ServiceTerminationState | None:
        return self._by_id.get(equipment_id)

    def records(self) -> list[ServiceTerminationState]:
        return list(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def place(self, equipment: TerminalEquipment) -> ServiceTerminationState | None:
        spec = self._catalog.terminal_equipment_specification(equipment.specification_id)
        if not spec.is_customer_termination:
            return None

        route_node_id = self._containers.route_node_of(equipment.node_container_id)
        if route_node_id is None:
            logger.debug(
                "terminal_equipment_container_unknown",
                terminal_equipment_id=str(equipment.id),
                node_container_id=str(equipment.node_container_id),
            )
            return None

        address = equipment.address_info
        state = ServiceTerminationState(
            id=equipment.id,
            route_node_id=route_node_id,
            name=equipment.name,
            access_address_id=address.access_address_id if address else None,
            unit_address_id=address.unit_address_id if address else None,
            change=ChangeType.UPDATED if equipment.id in self._by_id else ChangeType.NEW,
        )
        self._by_id[equipment.id] = state
        return state

    def naming_info_changed(
        self, equipment_id: UUID, naming: NamingInfo | None
    ) -> ServiceTerminationState | None:
        state = self._by_id.get(equipment_id)
        if state is None:
            return None
        state.name = naming.name if naming else None
        state.change = ChangeType.UPDATED
        return state

    def address_info_changed(
        self, equipment_id: UUID, address: AddressInfo | None
    ) -> ServiceTerminationState | None:
        state = self._by_id.get(equipment_id)
        if state is None:
            return None
        state.access_address_id = address.access_address_id if address else None
        state.unit_address_id = address.unit_address_id if address else None
        state.change = ChangeType.UPDATED
        return state

    def remove(self, equipment_id: UUID) -> ServiceTerminationState | None:
        state = self._by_id.pop(equipment_id, None)
        if state is None:
            return None
        state.change = ChangeType.REMOVED
        return state
