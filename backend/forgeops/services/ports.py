"""
Ports used by the manufacturing order use cases

The use cases depend only on these protocols. SQLAlchemy adapters live in
forgeops.repositories.sql and forgeops.db.transaction; tests use the
in-memory fakes.
"""
from datetime import datetime
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence

from forgeops.domain.events import DomainEvent
from forgeops.domain.manufacturing_order import ManufacturingOrder
from forgeops.domain.materials import (
    BOMSnapshot,
    MaterialRequirement,
    MaterialReservation,
    ProductSnapshot,
    ReservationAllocation,
)
from forgeops.domain.value_objects import Quantity
from forgeops.services.results import Result


class ProductRepository(Protocol):
    async def find_by_id(self, product_id: str) -> Optional[ProductSnapshot]: ...


class BOMRepository(Protocol):
    async def find_complete(self, bom_id: str) -> Optional[BOMSnapshot]:
        """Load a BOM with all of its component lines."""
        ...


class ManufacturingOrderRepository(Protocol):
    async def find_by_id(self, order_id: str) -> Optional[ManufacturingOrder]: ...

    async def save(self, order: ManufacturingOrder) -> ManufacturingOrder:
        """Insert or update; returns the entity as stored."""
        ...

    async def generate_mo_number(self, now: Optional[datetime] = None) -> str:
        """Next MO{yyyy}{mm}{NNNN} number for the month of ``now``."""
        ...

    async def delete(self, order_id: str) -> bool: ...


class StockLedgerRepository(Protocol):
    async def get_current_stock(self, component_id: str) -> Decimal: ...


class MaterialReservationRepository(Protocol):
    async def get_total_reserved_quantity(self, component_id: str) -> Decimal: ...

    async def reserve(
        self,
        *,
        component_id: str,
        manufacturing_order_id: str,
        quantity: Quantity,
        location_code: str,
        reserved_by: str,
    ) -> MaterialReservation:
        """Persist a reservation after re-checking free stock.

        Raises InsufficientMaterialError when the free stock read inside the
        current transaction is below ``quantity``.
        """
        ...

    async def release_for_order(self, manufacturing_order_id: str, released_by: str) -> List[str]:
        """Deactivate every active reservation of an order; returns their ids."""
        ...

    async def find_for_order(self, manufacturing_order_id: str) -> List[MaterialReservation]: ...


class EventPublisher(Protocol):
    async def publish(self, event: DomainEvent) -> None: ...

    async def publish_many(self, events: Sequence[DomainEvent]) -> None: ...


class TransactionManager(Protocol):
    async def execute_in_transaction(self, fn: Callable[[], Awaitable[Result]]) -> Result:
        """Run ``fn``; commit on Success, roll back on Failure or exception."""
        ...


class ReservationPolicy(Protocol):
    def allocate(self, requirement: MaterialRequirement) -> List[ReservationAllocation]: ...
