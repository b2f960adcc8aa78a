"""
Test data factories for ForgeOps.

Two flavours:
- make_* build domain snapshots/entities for in-memory tests
- create_test_* insert ORM rows into a Session for SQL and API tests

Usage:
    from tests.factories import create_test_product, create_test_bom

    def test_something(db):
        product = create_test_product(db, sku="WIDGET")
        bom = create_test_bom(db, product=product, lines=[(component, "2")])
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple

from sqlalchemy.orm import Session

from forgeops.core.status_config import ManufacturingOrderStatus, PriorityLevel
from forgeops.domain.manufacturing_order import ManufacturingOrder, utcnow
from forgeops.domain.materials import BOMComponent, BOMSnapshot, ProductSnapshot
from forgeops.domain.value_objects import Quantity
from forgeops.models import BOM, BOMLine, InventoryLocation, Product, StockMovement


# =============================================================================
# SEQUENCE MANAGEMENT
# =============================================================================

_sequences: Dict[str, int] = {}


def reset_sequences():
    """Reset all sequences. Call between tests for predictable codes."""
    global _sequences
    _sequences = {}


def _next(name: str) -> int:
    """Get next sequence number for a given entity type."""
    _sequences[name] = _sequences.get(name, 0) + 1
    return _sequences[name]


# =============================================================================
# DOMAIN FACTORIES
# =============================================================================

def make_product(
    product_id: Optional[str] = None,
    unit: str = "EA",
    **overrides
) -> ProductSnapshot:
    seq = _next("product")
    return ProductSnapshot(
        id=product_id or f"prod-{seq}",
        sku=overrides.pop("sku", f"SKU-{seq:04d}"),
        unit_symbol=unit,
        **overrides
    )


def make_bom(
    product_id: str,
    components: Iterable[Tuple[str, Any, str]] = (),
    bom_id: Optional[str] = None,
    scrap: Optional[Dict[str, Any]] = None,
) -> BOMSnapshot:
    """Build a BOM from (component_id, quantity, unit) triples in sequence order."""
    scrap = scrap or {}
    lines = tuple(
        BOMComponent(
            component_id=component_id,
            quantity=Quantity.of(quantity, unit),
            scrap_factor=Decimal(str(scrap.get(component_id, "0"))),
            sequence_number=(index + 1) * 10,
        )
        for index, (component_id, quantity, unit) in enumerate(components)
    )
    return BOMSnapshot(id=bom_id or f"bom-{_next('bom')}", product_id=product_id, components=lines)


def make_order(
    status: ManufacturingOrderStatus = ManufacturingOrderStatus.DRAFT,
    quantity: Any = "10",
    unit: str = "EA",
    **overrides
) -> ManufacturingOrder:
    """Build an order directly in any status (bypasses the create use case)."""
    now = utcnow()
    props = {
        "id": str(uuid.uuid4()),
        "mo_number": f"MO{now:%Y%m}{_next('mo'):04d}",
        "product_id": "prod-1",
        "bom_id": "bom-1",
        "quantity": Quantity.of(quantity, unit),
        "status": status,
        "priority": PriorityLevel.NORMAL,
        "created_by": "user-1",
        "created_at": now,
        "updated_at": now,
    }
    props.update(overrides)
    return ManufacturingOrder.from_persistence(props)


# =============================================================================
# DATABASE FACTORIES
# =============================================================================

def create_test_product(
    db: Session,
    sku: Optional[str] = None,
    unit: str = "EA",
    is_raw_material: bool = False,
    **overrides
) -> Product:
    product = Product(
        sku=sku or f"TEST-{_next('db_product'):04d}",
        name=overrides.pop("name", "Test Product"),
        unit=unit,
        is_raw_material=is_raw_material,
        active=overrides.pop("active", True),
        **overrides
    )
    db.add(product)
    db.flush()
    return product


def create_test_bom(
    db: Session,
    product: Product,
    lines: Iterable[Tuple[Product, Any]] = (),
    scrap: Optional[Dict[str, Any]] = None,
) -> BOM:
    """Create a BOM with one line per (component, quantity) pair."""
    scrap = scrap or {}
    bom = BOM(product_id=product.id, code=f"BOM-{product.sku}", version="1")
    db.add(bom)
    db.flush()
    for index, (component, quantity) in enumerate(lines):
        db.add(BOMLine(
            bom_id=bom.id,
            component_id=component.id,
            sequence=(index + 1) * 10,
            quantity=Decimal(str(quantity)),
            unit=component.unit,
            scrap_factor=Decimal(str(scrap.get(component.id, "0"))),
        ))
    db.flush()
    db.refresh(bom)
    return bom


def get_or_create_location(db: Session, code: str = "MAIN") -> InventoryLocation:
    location = db.query(InventoryLocation).filter(InventoryLocation.code == code).first()
    if location is None:
        location = InventoryLocation(code=code, name=f"{code} Warehouse", type="warehouse")
        db.add(location)
        db.flush()
    return location


def create_test_stock(
    db: Session,
    product: Product,
    quantity: Any,
    movement_type: str = "in",
    created_at: Optional[datetime] = None,
) -> StockMovement:
    movement = StockMovement(
        product_id=product.id,
        location_id=get_or_create_location(db).id,
        movement_type=movement_type,
        quantity=Decimal(str(quantity)),
        unit=product.unit,
        reference_type="adjustment",
        created_at=created_at or datetime.utcnow(),
    )
    db.add(movement)
    db.flush()
    return movement
