"""
Material snapshots consumed by the manufacturing order core.

Products, BOMs and stock balances are owned by other parts of the ERP.
These are read-only projections of what the order lifecycle needs from
them, plus the derived requirement and reservation values.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from forgeops.domain.value_objects import Numeric, Quantity, to_decimal
from forgeops.exceptions import ValidationError


@dataclass(frozen=True)
class ProductSnapshot:
    """The parts of a product a manufacturing order depends on"""
    id: str
    sku: str
    unit_symbol: str
    is_active: bool = True
    is_raw_material: bool = False


@dataclass(frozen=True)
class BOMComponent:
    """One BOM line: how much of a component one unit of the product consumes"""
    component_id: str
    quantity: Quantity
    scrap_factor: Decimal = Decimal("0")
    sequence_number: int = 0

    def __post_init__(self):
        scrap_factor = to_decimal(self.scrap_factor, "Scrap factor")
        if scrap_factor < 0 or scrap_factor > 1:
            raise ValidationError(
                "Scrap factor must be between 0 and 1",
                field="scrap_factor",
                value=scrap_factor,
            )
        object.__setattr__(self, "scrap_factor", scrap_factor)


@dataclass(frozen=True)
class BOMSnapshot:
    """A BOM with its ordered component list"""
    id: str
    product_id: str
    components: Tuple[BOMComponent, ...] = ()
    version: str = "1"

    def __post_init__(self):
        object.__setattr__(
            self, "components", tuple(sorted(self.components, key=lambda c: c.sequence_number))
        )


@dataclass(frozen=True)
class MaterialRequirement:
    """Quantity of a component needed for a whole order, scrap included"""
    component_id: str
    required_quantity: Quantity

    @property
    def unit(self) -> str:
        return self.required_quantity.unit


@dataclass(frozen=True)
class StockAvailability:
    """Current on-hand and actively reserved stock of one component"""
    component_id: str
    current_stock: Decimal
    reserved_quantity: Decimal

    @classmethod
    def of(cls, component_id: str, current_stock: Numeric, reserved_quantity: Numeric) -> "StockAvailability":
        return cls(
            component_id=component_id,
            current_stock=to_decimal(current_stock, "Current stock"),
            reserved_quantity=to_decimal(reserved_quantity, "Reserved quantity"),
        )

    @property
    def free_stock(self) -> Decimal:
        # May be negative when the ledger was over-reserved
        return self.current_stock - self.reserved_quantity


@dataclass(frozen=True)
class ReservationAllocation:
    """Where (and how much of) a requirement should be reserved"""
    component_id: str
    quantity: Quantity
    location_code: str


@dataclass(frozen=True)
class MaterialReservation:
    """A persisted hold on component stock for a manufacturing order"""
    id: str
    component_id: str
    manufacturing_order_id: str
    reserved_quantity: Quantity
    reserved_by: str
    location_code: str
    reserved_at: datetime
    is_active: bool = True
    released_at: Optional[datetime] = None
    released_by: Optional[str] = None

    def to_event_data(self) -> dict:
        return {
            "reservation_id": self.id,
            "component_id": self.component_id,
            "reserved_quantity": str(self.reserved_quantity.value),
            "quantity_unit": self.reserved_quantity.unit,
            "location_code": self.location_code,
        }
