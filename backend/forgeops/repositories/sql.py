"""
SQLAlchemy repositories

Adapters from the ORM models to the domain snapshots and entity. All
repositories for one request share a Session; they add and flush but
never commit (see SqlAlchemyTransactionManager).

Methods are coroutines to satisfy the ports. The session underneath is
synchronous, so concurrent gathers during confirmation run one query at
a time on the same connection.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from forgeops.core.config import settings
from forgeops.domain.manufacturing_order import ManufacturingOrder, utcnow
from forgeops.domain.materials import (
    BOMComponent,
    BOMSnapshot,
    MaterialReservation,
    ProductSnapshot,
)
from forgeops.domain.value_objects import QUANTITY_PLACES, Quantity
from forgeops.exceptions import InsufficientMaterialError
from forgeops.logging_config import get_logger
from forgeops.models.bom import BOM
from forgeops.models.inventory import StockMovement
from forgeops.models.manufacturing_order import ManufacturingOrderModel
from forgeops.models.material_reservation import MaterialReservationModel
from forgeops.models.product import Product

logger = get_logger(__name__)


def _sum_to_decimal(value) -> Decimal:
    """Normalize an aggregate (None, float on SQLite, Decimal elsewhere)."""
    if value is None:
        return Decimal("0").quantize(QUANTITY_PLACES)
    return Decimal(str(value)).quantize(QUANTITY_PLACES)


class SqlProductRepository:
    def __init__(self, db: Session):
        self.db = db

    async def find_by_id(self, product_id: str) -> Optional[ProductSnapshot]:
        product = self.db.get(Product, product_id)
        if product is None:
            return None
        return ProductSnapshot(
            id=product.id,
            sku=product.sku,
            unit_symbol=product.unit,
            is_active=bool(product.active),
            is_raw_material=bool(product.is_raw_material),
        )


class SqlBOMRepository:
    def __init__(self, db: Session):
        self.db = db

    async def find_complete(self, bom_id: str) -> Optional[BOMSnapshot]:
        bom = self.db.get(BOM, bom_id)
        if bom is None:
            return None
        return BOMSnapshot(
            id=bom.id,
            product_id=bom.product_id,
            version=bom.version,
            components=tuple(
                BOMComponent(
                    component_id=line.component_id,
                    quantity=Quantity.of(line.quantity, line.unit),
                    scrap_factor=line.scrap_factor or Decimal("0"),
                    sequence_number=line.sequence or 0,
                )
                for line in bom.lines
            ),
        )


class SqlManufacturingOrderRepository:
    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _to_entity(model: ManufacturingOrderModel) -> ManufacturingOrder:
        return ManufacturingOrder.from_persistence({
            "id": model.id,
            "mo_number": model.mo_number,
            "product_id": model.product_id,
            "bom_id": model.bom_id,
            "quantity": Quantity.of(model.quantity, model.quantity_unit),
            "status": model.status,
            "priority": model.priority,
            "planned_start_date": model.planned_start_date,
            "planned_end_date": model.planned_end_date,
            "actual_start_date": model.actual_start_date,
            "actual_end_date": model.actual_end_date,
            "created_by": model.created_by,
            "assigned_to": model.assigned_to,
            "notes": model.notes,
            "metadata": model.order_metadata or {},
            "created_at": model.created_at,
            "updated_at": model.updated_at,
        })

    async def find_by_id(self, order_id: str) -> Optional[ManufacturingOrder]:
        model = self.db.get(ManufacturingOrderModel, order_id)
        return self._to_entity(model) if model is not None else None

    async def save(self, order: ManufacturingOrder) -> ManufacturingOrder:
        props = order.to_persistence()
        model = self.db.get(ManufacturingOrderModel, order.id)
        if model is None:
            model = ManufacturingOrderModel(id=order.id)
            self.db.add(model)

        model.mo_number = props["mo_number"]
        model.product_id = props["product_id"]
        model.bom_id = props["bom_id"]
        model.quantity = order.quantity.value
        model.quantity_unit = order.quantity.unit
        model.status = order.status.value
        model.priority = order.priority.value
        model.planned_start_date = props["planned_start_date"]
        model.planned_end_date = props["planned_end_date"]
        model.actual_start_date = props["actual_start_date"]
        model.actual_end_date = props["actual_end_date"]
        model.created_by = props["created_by"]
        model.assigned_to = props["assigned_to"]
        model.notes = props["notes"]
        model.order_metadata = props["metadata"]
        model.created_at = props["created_at"]
        model.updated_at = props["updated_at"]

        # Surface constraint violations (duplicate mo_number) inside the use case
        self.db.flush()
        return self._to_entity(model)

    async def generate_mo_number(self, now: Optional[datetime] = None) -> str:
        now = now or utcnow()
        prefix = f"{settings.MO_NUMBER_PREFIX}{now:%Y%m}"
        existing = (
            self.db.query(ManufacturingOrderModel.mo_number)
            .filter(ManufacturingOrderModel.mo_number.like(f"{prefix}%"))
            .all()
        )

        highest = 0
        for (mo_number,) in existing:
            suffix = mo_number[len(prefix):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))

        return f"{prefix}{highest + 1:04d}"

    async def delete(self, order_id: str) -> bool:
        model = self.db.get(ManufacturingOrderModel, order_id)
        if model is None:
            return False
        self.db.delete(model)
        self.db.flush()
        return True


class SqlStockLedgerRepository:
    def __init__(self, db: Session):
        self.db = db

    async def get_current_stock(self, component_id: str) -> Decimal:
        signed_quantity = case(
            (StockMovement.movement_type == "out", -StockMovement.quantity),
            (StockMovement.movement_type == "transfer", 0),
            else_=StockMovement.quantity,
        )
        total = (
            self.db.query(func.sum(signed_quantity))
            .filter(StockMovement.product_id == component_id)
            .scalar()
        )
        return _sum_to_decimal(total)


class SqlMaterialReservationRepository:
    def __init__(self, db: Session, stock_ledger: Optional[SqlStockLedgerRepository] = None):
        self.db = db
        self.stock_ledger = stock_ledger or SqlStockLedgerRepository(db)

    async def get_total_reserved_quantity(self, component_id: str) -> Decimal:
        total = (
            self.db.query(func.sum(MaterialReservationModel.reserved_quantity))
            .filter(
                MaterialReservationModel.component_id == component_id,
                MaterialReservationModel.is_active.is_(True),
            )
            .scalar()
        )
        return _sum_to_decimal(total)

    async def reserve(
        self,
        *,
        component_id: str,
        manufacturing_order_id: str,
        quantity: Quantity,
        location_code: str,
        reserved_by: str,
    ) -> MaterialReservation:
        # Serialize reservations per component (FOR UPDATE is ignored by SQLite)
        self.db.query(Product).filter(Product.id == component_id).with_for_update().first()
        self.db.flush()

        current = await self.stock_ledger.get_current_stock(component_id)
        reserved = await self.get_total_reserved_quantity(component_id)
        free = current - reserved
        if free < quantity.value:
            logger.warning(
                "Reservation refused on fresh stock read",
                extra={
                    "component_id": component_id,
                    "manufacturing_order_id": manufacturing_order_id,
                    "required": str(quantity.value),
                    "available": str(free),
                },
            )
            raise InsufficientMaterialError([{
                "component_id": component_id,
                "required": str(quantity.value),
                "available": str(free),
                "shortfall": str(quantity.value - free),
                "unit": quantity.unit,
            }])

        reservation = MaterialReservation(
            id=str(uuid.uuid4()),
            component_id=component_id,
            manufacturing_order_id=manufacturing_order_id,
            reserved_quantity=quantity,
            reserved_by=reserved_by,
            location_code=location_code,
            reserved_at=utcnow(),
        )
        self.db.add(MaterialReservationModel(
            id=reservation.id,
            component_id=component_id,
            manufacturing_order_id=manufacturing_order_id,
            location_code=location_code,
            reserved_quantity=quantity.value,
            unit=quantity.unit,
            is_active=True,
            reserved_by=reserved_by,
            reserved_at=reservation.reserved_at,
        ))
        self.db.flush()
        return reservation

    async def release_for_order(self, manufacturing_order_id: str, released_by: str) -> List[str]:
        active = (
            self.db.query(MaterialReservationModel)
            .filter(
                MaterialReservationModel.manufacturing_order_id == manufacturing_order_id,
                MaterialReservationModel.is_active.is_(True),
            )
            .all()
        )
        now = utcnow()
        for model in active:
            model.is_active = False
            model.released_at = now
            model.released_by = released_by
        self.db.flush()
        return [model.id for model in active]

    async def find_for_order(self, manufacturing_order_id: str) -> List[MaterialReservation]:
        models = (
            self.db.query(MaterialReservationModel)
            .filter(MaterialReservationModel.manufacturing_order_id == manufacturing_order_id)
            .order_by(MaterialReservationModel.reserved_at)
            .all()
        )
        return [
            MaterialReservation(
                id=m.id,
                component_id=m.component_id,
                manufacturing_order_id=m.manufacturing_order_id,
                reserved_quantity=Quantity.of(m.reserved_quantity, m.unit),
                reserved_by=m.reserved_by,
                location_code=m.location_code,
                reserved_at=m.reserved_at,
                is_active=m.is_active,
                released_at=m.released_at,
                released_by=m.released_by,
            )
            for m in models
        ]
