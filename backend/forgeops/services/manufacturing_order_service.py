"""
Manufacturing Order Domain Service

Stateless business rules that span the order and its materials:
- Creation preconditions (product state, unit match, BOM present)
- BOM explosion into material requirements (scrap included)
- Stock availability check against free stock (on hand - reserved)
- Lifecycle preconditions (confirm, start, complete, cancel)
- Priority scoring for scheduling views

Nothing here performs I/O; the use cases load the inputs and persist results.
"""
import math
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from forgeops.core.status_config import PRIORITY_BASE_SCORES
from forgeops.domain.manufacturing_order import ManufacturingOrder, to_naive_utc, utcnow
from forgeops.domain.materials import (
    BOMComponent,
    MaterialRequirement,
    ProductSnapshot,
    StockAvailability,
)
from forgeops.domain.value_objects import Quantity
from forgeops.exceptions import BusinessRuleViolationError, InsufficientMaterialError
from forgeops.logging_config import get_logger

logger = get_logger(__name__)

SECONDS_PER_DAY = 86400
OVERDUE_BONUS = 200
# (max days until due, bonus), checked in order
DUE_DATE_BONUSES = ((1, 50), (3, 25), (7, 10))
AGE_GRACE_DAYS = 7
MAX_AGE_BONUS = 30
AUTO_PRIORITIZE_HOURS = 24


def _ceil_days(seconds: float) -> int:
    return math.ceil(seconds / SECONDS_PER_DAY)


class ManufacturingOrderDomainService:
    """Business rules for manufacturing orders that don't belong to the entity."""

    def validate_manufacturing_order_creation(
        self,
        product: ProductSnapshot,
        quantity: Quantity,
        bom_components: Sequence[BOMComponent],
    ) -> None:
        if not product.is_active:
            raise BusinessRuleViolationError(
                f"Cannot create manufacturing order for inactive product: {product.sku}",
                rule="product_active",
            )

        if product.is_raw_material:
            raise BusinessRuleViolationError(
                f"Cannot create manufacturing order for raw material: {product.sku}",
                rule="product_manufacturable",
            )

        if quantity.unit != product.unit_symbol.strip().upper():
            raise BusinessRuleViolationError(
                f"Quantity unit {quantity.unit} does not match product unit {product.unit_symbol}",
                rule="unit_match",
                details={"quantity_unit": quantity.unit, "product_unit": product.unit_symbol},
            )

        if not quantity.is_positive():
            raise BusinessRuleViolationError(
                "Manufacturing order quantity must be greater than zero",
                rule="positive_quantity",
            )

        if not bom_components:
            raise BusinessRuleViolationError(
                f"No BOM components found for product: {product.sku}",
                rule="bom_has_components",
            )

    def calculate_material_requirements(
        self,
        order_quantity: Quantity,
        bom_components: Iterable[BOMComponent],
    ) -> List[MaterialRequirement]:
        """
        Explode a BOM for an order quantity.

        required = order_qty * component_qty * (1 + scrap_factor), in the
        component's unit, ordered by BOM sequence.
        """
        requirements = []
        for component in sorted(bom_components, key=lambda c: c.sequence_number):
            base = component.quantity.value * order_quantity.value
            required = base * (Decimal("1") + component.scrap_factor)
            requirements.append(
                MaterialRequirement(
                    component_id=component.component_id,
                    required_quantity=Quantity(required, component.quantity.unit),
                )
            )
        return requirements

    def validate_material_availability(
        self,
        requirements: Sequence[MaterialRequirement],
        stock_snapshots: Iterable[StockAvailability],
    ) -> List[MaterialRequirement]:
        """
        Check every requirement against free stock.

        All shortages are collected and raised together so the caller sees
        every missing component at once.
        """
        by_component: Dict[str, StockAvailability] = {s.component_id: s for s in stock_snapshots}
        shortages = []

        for requirement in requirements:
            availability = by_component.get(requirement.component_id)
            if availability is None:
                raise BusinessRuleViolationError(
                    f"No stock information available for component: {requirement.component_id}",
                    rule="stock_information_available",
                    details={"component_id": requirement.component_id},
                )

            required = requirement.required_quantity.value
            available = availability.free_stock
            if required > available:
                shortages.append({
                    "component_id": requirement.component_id,
                    "required": str(required),
                    "available": str(available),
                    "shortfall": str(required - available),
                    "unit": requirement.unit,
                })

        if shortages:
            logger.info(
                "Material availability check failed",
                extra={"shortage_count": len(shortages)},
            )
            raise InsufficientMaterialError(shortages)

        return list(requirements)

    def validate_manufacturing_order_confirmation(
        self,
        order: ManufacturingOrder,
        validated_requirements: Optional[Sequence[MaterialRequirement]] = None,
    ) -> None:
        if not order.can_be_confirmed():
            raise BusinessRuleViolationError(
                f"Manufacturing order {order.mo_number} cannot be confirmed in current status: {order.status.value}",
                rule="confirmable_status",
            )

    def validate_manufacturing_order_start(self, order: ManufacturingOrder) -> None:
        if not order.can_be_started():
            raise BusinessRuleViolationError(
                f"Manufacturing order {order.mo_number} cannot be started in current status: {order.status.value}",
                rule="startable_status",
            )

        if not order.assigned_to:
            raise BusinessRuleViolationError(
                f"Manufacturing order {order.mo_number} must be assigned to a user before starting",
                rule="assigned_before_start",
            )

    def validate_manufacturing_order_completion(self, order: ManufacturingOrder) -> None:
        if not order.can_be_completed():
            raise BusinessRuleViolationError(
                f"Manufacturing order {order.mo_number} cannot be completed in current status: {order.status.value}",
                rule="completable_status",
            )

    def validate_manufacturing_order_cancellation(self, order: ManufacturingOrder) -> None:
        if not order.can_be_cancelled():
            raise BusinessRuleViolationError(
                f"Manufacturing order {order.mo_number} cannot be cancelled in current status: {order.status.value}",
                rule="cancellable_status",
            )

    def calculate_priority_score(self, order: ManufacturingOrder, now: Optional[datetime] = None) -> int:
        """
        Scheduling score: base priority, plus due-date urgency, plus age.

        Overdue orders get +200; orders due within 1/3/7 days get +50/+25/+10.
        Orders older than a week get one point per extra day, capped at 30.
        """
        now = to_naive_utc(now) or utcnow()
        score = PRIORITY_BASE_SCORES[order.priority]

        if order.planned_end_date:
            days_until_due = _ceil_days((order.planned_end_date - now).total_seconds())
            if days_until_due < 0:
                score += OVERDUE_BONUS
            else:
                for max_days, bonus in DUE_DATE_BONUSES:
                    if days_until_due <= max_days:
                        score += bonus
                        break

        age_in_days = _ceil_days((now - order.created_at).total_seconds())
        if age_in_days > AGE_GRACE_DAYS:
            score += min(age_in_days - AGE_GRACE_DAYS, MAX_AGE_BONUS)

        return score

    def should_auto_prioritize(self, order: ManufacturingOrder, now: Optional[datetime] = None) -> bool:
        """True when the order is overdue or due within the next 24 hours."""
        now = to_naive_utc(now) or utcnow()
        if order.is_overdue(now):
            return True
        if order.planned_end_date and not order.is_terminal():
            hours_until_due = (order.planned_end_date - now).total_seconds() / 3600
            return hours_until_due <= AUTO_PRIORITIZE_HOURS
        return False
