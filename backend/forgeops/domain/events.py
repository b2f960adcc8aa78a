"""
Manufacturing Order domain events

Events are built by the use cases after the order has been persisted and
handed to an EventPublisher inside the same transaction. event_data is
plain JSON-serializable data (Decimals as strings, datetimes as ISO 8601).
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from forgeops.domain.manufacturing_order import ManufacturingOrder, utcnow
from forgeops.domain.materials import MaterialReservation

AGGREGATE_TYPE = "ManufacturingOrder"

MANUFACTURING_ORDER_CREATED = "ManufacturingOrderCreated"
MANUFACTURING_ORDER_CONFIRMED = "ManufacturingOrderConfirmed"
MANUFACTURING_ORDER_STARTED = "ManufacturingOrderStarted"
MANUFACTURING_ORDER_COMPLETED = "ManufacturingOrderCompleted"
MANUFACTURING_ORDER_CANCELLED = "ManufacturingOrderCancelled"


@dataclass(frozen=True)
class DomainEvent:
    event_type: str
    aggregate_id: str
    event_data: Dict[str, Any]
    aggregate_type: str = AGGREGATE_TYPE
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=utcnow)
    version: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "event_data": self.event_data,
            "occurred_at": self.occurred_at.isoformat(),
            "version": self.version,
        }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def manufacturing_order_created(order: ManufacturingOrder) -> DomainEvent:
    data = order.summary()
    data.pop("status")
    return DomainEvent(
        event_type=MANUFACTURING_ORDER_CREATED,
        aggregate_id=order.id,
        event_data=data,
        occurred_at=order.created_at,
    )


def manufacturing_order_confirmed(
    order: ManufacturingOrder,
    confirmed_by: str,
    reservations: Iterable[MaterialReservation],
) -> DomainEvent:
    return DomainEvent(
        event_type=MANUFACTURING_ORDER_CONFIRMED,
        aggregate_id=order.id,
        event_data={
            "mo_number": order.mo_number,
            "product_id": order.product_id,
            "quantity": str(order.quantity.value),
            "quantity_unit": order.quantity.unit,
            "confirmed_by": confirmed_by,
            "confirmed_at": _iso(order.updated_at),
            "material_reservations": [r.to_event_data() for r in reservations],
        },
        occurred_at=order.updated_at,
    )


def manufacturing_order_started(order: ManufacturingOrder, started_by: str) -> DomainEvent:
    return DomainEvent(
        event_type=MANUFACTURING_ORDER_STARTED,
        aggregate_id=order.id,
        event_data={
            "mo_number": order.mo_number,
            "product_id": order.product_id,
            "started_by": started_by,
            "started_at": _iso(order.actual_start_date),
            "assigned_to": order.assigned_to,
        },
        occurred_at=order.updated_at,
    )


def manufacturing_order_completed(
    order: ManufacturingOrder,
    completed_by: str,
    actual_quantity_produced: Optional[str] = None,
) -> DomainEvent:
    duration = order.duration()
    planned = order.planned_duration()
    return DomainEvent(
        event_type=MANUFACTURING_ORDER_COMPLETED,
        aggregate_id=order.id,
        event_data={
            "mo_number": order.mo_number,
            "product_id": order.product_id,
            "quantity": str(order.quantity.value),
            "quantity_unit": order.quantity.unit,
            "actual_quantity_produced": actual_quantity_produced,
            "completed_by": completed_by,
            "completed_at": _iso(order.actual_end_date),
            "actual_duration_seconds": duration.total_seconds() if duration is not None else None,
            "planned_duration_seconds": planned.total_seconds() if planned is not None else None,
        },
        occurred_at=order.updated_at,
    )


def manufacturing_order_cancelled(
    order: ManufacturingOrder,
    cancelled_by: str,
    reason: str,
    released_reservation_ids: List[str],
) -> DomainEvent:
    return DomainEvent(
        event_type=MANUFACTURING_ORDER_CANCELLED,
        aggregate_id=order.id,
        event_data={
            "mo_number": order.mo_number,
            "product_id": order.product_id,
            "cancelled_by": cancelled_by,
            "cancelled_at": _iso(order.updated_at),
            "reason": reason,
            "material_reservations_released": list(released_reservation_ids),
        },
        occurred_at=order.updated_at,
    )
