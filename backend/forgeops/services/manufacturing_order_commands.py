"""
Manufacturing Order Use Cases

Each use case runs inside TransactionManager.execute_in_transaction and
returns a Result. Domain exceptions become Failure(DomainError) with the
exception's code; anything unexpected becomes a failure with the use
case's operation-scoped code and is logged with its traceback. A Failure
always rolls the transaction back.

Confirmation flow:
    load order -> status eligibility -> load BOM -> explode requirements
    -> concurrent stock/reservation reads -> availability gate
    -> confirm() -> save -> reserve per policy -> publish event
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from forgeops.core.status_config import PriorityLevel, get_allowed_manufacturing_order_transitions
from forgeops.domain import events
from forgeops.domain.manufacturing_order import (
    NOTES_MAX_LENGTH,
    CreateManufacturingOrderProps,
    ManufacturingOrder,
    to_naive_utc,
)
from forgeops.domain.materials import (
    MaterialRequirement,
    MaterialReservation,
    StockAvailability,
)
from forgeops.domain.value_objects import QUANTITY_PLACES, Quantity, to_decimal
from forgeops.exceptions import (
    EntityNotFoundError,
    ForgeOpsException,
    ValidationError,
)
from forgeops.logging_config import get_logger
from forgeops.schemas.manufacturing_order import (
    ManufacturingOrderResponse,
    MaterialReservationResponse,
)
from forgeops.services.manufacturing_order_service import ManufacturingOrderDomainService
from forgeops.services.ports import (
    BOMRepository,
    EventPublisher,
    ManufacturingOrderRepository,
    MaterialReservationRepository,
    ProductRepository,
    ReservationPolicy,
    StockLedgerRepository,
    TransactionManager,
)
from forgeops.services.results import DomainError, Failure, Result, failure, success

logger = get_logger(__name__)


# ============================================================================
# Commands
# ============================================================================

@dataclass(frozen=True)
class CreateManufacturingOrderCommand:
    product_id: str
    bom_id: str
    quantity: Any
    created_by: str
    quantity_unit: Optional[str] = None
    priority: Optional[PriorityLevel] = None
    planned_start_date: Optional[datetime] = None
    planned_end_date: Optional[datetime] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CompleteManufacturingOrderCommand:
    order_id: str
    completed_by: str
    actual_quantity_produced: Optional[Any] = None
    quality_notes: Optional[str] = None


@dataclass(frozen=True)
class CancelManufacturingOrderCommand:
    order_id: str
    cancelled_by: str
    reason: str


@dataclass(frozen=True)
class UpdateManufacturingOrderCommand:
    order_id: str
    updated_by: str
    priority: Optional[PriorityLevel] = None
    planned_start_date: Optional[datetime] = None
    planned_end_date: Optional[datetime] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


# ============================================================================
# Response mapping
# ============================================================================

def to_response(
    order: ManufacturingOrder,
    reservations: Sequence[MaterialReservation] = (),
    domain_service: Optional[ManufacturingOrderDomainService] = None,
) -> ManufacturingOrderResponse:
    """Map an entity (and any reservations made with it) to the API response."""
    domain_service = domain_service or ManufacturingOrderDomainService()
    duration = order.duration()
    planned = order.planned_duration()
    return ManufacturingOrderResponse(
        id=order.id,
        mo_number=order.mo_number,
        product_id=order.product_id,
        bom_id=order.bom_id,
        quantity=order.quantity.value,
        quantity_unit=order.quantity.unit,
        status=order.status,
        priority=order.priority,
        planned_start_date=order.planned_start_date,
        planned_end_date=order.planned_end_date,
        actual_start_date=order.actual_start_date,
        actual_end_date=order.actual_end_date,
        created_by=order.created_by,
        assigned_to=order.assigned_to,
        notes=order.notes,
        metadata=dict(order.metadata),
        is_overdue=order.is_overdue(),
        priority_score=domain_service.calculate_priority_score(order),
        should_auto_prioritize=domain_service.should_auto_prioritize(order),
        planned_duration_seconds=planned.total_seconds() if planned is not None else None,
        actual_duration_seconds=duration.total_seconds() if duration is not None else None,
        allowed_transitions=get_allowed_manufacturing_order_transitions(order.status),
        reservations=[
            MaterialReservationResponse(
                id=r.id,
                component_id=r.component_id,
                reserved_quantity=r.reserved_quantity.value,
                quantity_unit=r.reserved_quantity.unit,
                location_code=r.location_code,
                reserved_by=r.reserved_by,
                reserved_at=r.reserved_at,
            )
            for r in reservations
        ],
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _validation_failure(errors: List[str], message: str) -> Failure:
    return failure(ValidationError.error_code, message, {"errors": errors})


# ============================================================================
# Use cases
# ============================================================================

class _UseCase:
    """Transaction + exception-to-Result plumbing shared by the use cases."""

    error_code = "MANUFACTURING_ORDER_ERROR"

    def __init__(self, transaction_manager: TransactionManager):
        self.transaction_manager = transaction_manager

    async def _run(self, fn: Callable[[], Awaitable[Result]], **log_context) -> Result:
        # The transaction manager rolls back before re-raising, commit failures included
        try:
            return await self.transaction_manager.execute_in_transaction(fn)
        except ForgeOpsException as e:
            logger.info(
                f"{type(self).__name__} rejected: {e.error_code} - {e.message}",
                extra={"error_code": e.error_code, **log_context},
            )
            return Failure(DomainError.from_exception(e))
        except Exception as e:
            logger.error(
                f"{type(self).__name__} failed: {e}",
                exc_info=True,
                extra=log_context,
            )
            return failure(self.error_code, str(e), {"original_error": type(e).__name__})

    @staticmethod
    async def _load_order(orders: ManufacturingOrderRepository, order_id: str) -> ManufacturingOrder:
        order = await orders.find_by_id(order_id)
        if order is None:
            raise EntityNotFoundError("ManufacturingOrder", order_id)
        return order


class CreateManufacturingOrderUseCase(_UseCase):
    error_code = "CREATE_MANUFACTURING_ORDER_ERROR"

    def __init__(
        self,
        orders: ManufacturingOrderRepository,
        products: ProductRepository,
        boms: BOMRepository,
        domain_service: ManufacturingOrderDomainService,
        event_publisher: EventPublisher,
        transaction_manager: TransactionManager,
    ):
        super().__init__(transaction_manager)
        self.orders = orders
        self.products = products
        self.boms = boms
        self.domain_service = domain_service
        self.event_publisher = event_publisher

    @staticmethod
    def validate_command(command: CreateManufacturingOrderCommand) -> List[str]:
        """Shape checks that run before any repository call."""
        errors = []
        if not command.product_id:
            errors.append("Product ID is required")
        if not command.bom_id:
            errors.append("BOM ID is required")

        try:
            # Quantize first: anything that rounds to zero is not a quantity
            quantity = to_decimal(command.quantity, "Quantity").quantize(
                QUANTITY_PLACES, rounding=ROUND_HALF_UP
            )
        except (ValidationError, InvalidOperation):
            quantity = None
        if quantity is None or quantity <= 0:
            errors.append("Quantity must be greater than zero")

        start = to_naive_utc(command.planned_start_date)
        end = to_naive_utc(command.planned_end_date)
        if start and end and start >= end:
            errors.append("Planned start date must be before planned end date")
        if command.notes and len(command.notes) > NOTES_MAX_LENGTH:
            errors.append(f"Notes cannot exceed {NOTES_MAX_LENGTH} characters")
        if not command.created_by:
            errors.append("Created by user ID is required")
        return errors

    async def execute(self, command: CreateManufacturingOrderCommand) -> Result:
        errors = self.validate_command(command)
        if errors:
            return _validation_failure(errors, ", ".join(errors))
        return await self._run(
            lambda: self._create(command),
            product_id=command.product_id,
            bom_id=command.bom_id,
        )

    async def _create(self, command: CreateManufacturingOrderCommand) -> Result:
        product = await self.products.find_by_id(command.product_id)
        if product is None:
            raise EntityNotFoundError("Product", command.product_id)

        bom = await self.boms.find_complete(command.bom_id)
        if bom is None:
            raise EntityNotFoundError("BOM", command.bom_id)

        if bom.product_id != product.id:
            raise ValidationError(
                "BOM does not belong to the specified product",
                field="bom_id",
                details={"bom_product_id": bom.product_id, "product_id": product.id},
            )

        unit = command.quantity_unit or product.unit_symbol
        quantity = Quantity.of(command.quantity, unit)
        self.domain_service.validate_manufacturing_order_creation(product, quantity, bom.components)

        mo_number = await self.orders.generate_mo_number()
        order = ManufacturingOrder.create(
            CreateManufacturingOrderProps(
                product_id=product.id,
                bom_id=bom.id,
                quantity=quantity.value,
                quantity_unit=quantity.unit,
                priority=command.priority,
                planned_start_date=command.planned_start_date,
                planned_end_date=command.planned_end_date,
                assigned_to=command.assigned_to,
                notes=command.notes,
                metadata=command.metadata,
            ),
            mo_number,
            command.created_by,
        )

        saved = await self.orders.save(order)
        await self.event_publisher.publish(events.manufacturing_order_created(saved))

        logger.info(
            f"Created manufacturing order {saved.mo_number}",
            extra={"order_id": saved.id, "mo_number": saved.mo_number, "product_id": saved.product_id},
        )
        return success(to_response(saved, domain_service=self.domain_service))


class ConfirmManufacturingOrderUseCase(_UseCase):
    error_code = "CONFIRM_MANUFACTURING_ORDER_ERROR"

    def __init__(
        self,
        orders: ManufacturingOrderRepository,
        boms: BOMRepository,
        stock_ledger: StockLedgerRepository,
        reservations: MaterialReservationRepository,
        reservation_policy: ReservationPolicy,
        domain_service: ManufacturingOrderDomainService,
        event_publisher: EventPublisher,
        transaction_manager: TransactionManager,
    ):
        super().__init__(transaction_manager)
        self.orders = orders
        self.boms = boms
        self.stock_ledger = stock_ledger
        self.reservations = reservations
        self.reservation_policy = reservation_policy
        self.domain_service = domain_service
        self.event_publisher = event_publisher

    async def execute(self, order_id: str, confirmed_by: str) -> Result:
        errors = []
        if not order_id:
            errors.append("Order ID is required")
        if not confirmed_by:
            errors.append("Confirmed by user ID is required")
        if errors:
            return _validation_failure(errors, ", ".join(errors))
        return await self._run(lambda: self._confirm(order_id, confirmed_by), order_id=order_id)

    async def _stock_snapshot(self, component_id: str) -> StockAvailability:
        current, reserved = await asyncio.gather(
            self.stock_ledger.get_current_stock(component_id),
            self.reservations.get_total_reserved_quantity(component_id),
        )
        return StockAvailability.of(component_id, current, reserved)

    async def _confirm(self, order_id: str, confirmed_by: str) -> Result:
        order = await self._load_order(self.orders, order_id)

        # Status first: a non-draft order never reports a material error
        self.domain_service.validate_manufacturing_order_confirmation(order)

        bom = await self.boms.find_complete(order.bom_id)
        if bom is None:
            raise EntityNotFoundError("BOM", order.bom_id)

        requirements = self.domain_service.calculate_material_requirements(order.quantity, bom.components)
        component_ids = list(dict.fromkeys(r.component_id for r in requirements))
        snapshots = await asyncio.gather(*(self._stock_snapshot(c) for c in component_ids))

        validated = self.domain_service.validate_material_availability(
            _merge_duplicates(requirements), snapshots
        )
        self.domain_service.validate_manufacturing_order_confirmation(order, validated)

        confirmed = order.confirm()
        saved = await self.orders.save(confirmed)
        created = await self._reserve(saved, validated, confirmed_by)

        await self.event_publisher.publish(
            events.manufacturing_order_confirmed(saved, confirmed_by, created)
        )

        logger.info(
            f"Confirmed manufacturing order {saved.mo_number}",
            extra={"order_id": saved.id, "reservation_count": len(created)},
        )
        return success(to_response(saved, created, self.domain_service))

    async def _reserve(
        self,
        order: ManufacturingOrder,
        requirements: Sequence[MaterialRequirement],
        reserved_by: str,
    ) -> List[MaterialReservation]:
        created = []
        for requirement in requirements:
            for allocation in self.reservation_policy.allocate(requirement):
                created.append(
                    await self.reservations.reserve(
                        component_id=allocation.component_id,
                        manufacturing_order_id=order.id,
                        quantity=allocation.quantity,
                        location_code=allocation.location_code,
                        reserved_by=reserved_by,
                    )
                )
        return created


def _merge_duplicates(requirements: Sequence[MaterialRequirement]) -> List[MaterialRequirement]:
    """Sum requirements for a component listed on more than one BOM line."""
    merged: Dict[str, MaterialRequirement] = {}
    for requirement in requirements:
        existing = merged.get(requirement.component_id)
        if existing is None:
            merged[requirement.component_id] = requirement
        else:
            merged[requirement.component_id] = MaterialRequirement(
                component_id=requirement.component_id,
                required_quantity=existing.required_quantity.add(requirement.required_quantity),
            )
    return list(merged.values())


class StartManufacturingOrderUseCase(_UseCase):
    error_code = "START_MANUFACTURING_ORDER_ERROR"

    def __init__(
        self,
        orders: ManufacturingOrderRepository,
        domain_service: ManufacturingOrderDomainService,
        event_publisher: EventPublisher,
        transaction_manager: TransactionManager,
    ):
        super().__init__(transaction_manager)
        self.orders = orders
        self.domain_service = domain_service
        self.event_publisher = event_publisher

    async def execute(self, order_id: str, started_by: str) -> Result:
        errors = []
        if not order_id:
            errors.append("Order ID is required")
        if not started_by:
            errors.append("Started by user ID is required")
        if errors:
            return _validation_failure(errors, ", ".join(errors))
        return await self._run(lambda: self._start(order_id, started_by), order_id=order_id)

    async def _start(self, order_id: str, started_by: str) -> Result:
        order = await self._load_order(self.orders, order_id)
        self.domain_service.validate_manufacturing_order_start(order)

        saved = await self.orders.save(order.start())
        await self.event_publisher.publish(events.manufacturing_order_started(saved, started_by))

        logger.info(
            f"Started manufacturing order {saved.mo_number}",
            extra={"order_id": saved.id, "started_by": started_by},
        )
        return success(to_response(saved, domain_service=self.domain_service))


class CompleteManufacturingOrderUseCase(_UseCase):
    error_code = "COMPLETE_MANUFACTURING_ORDER_ERROR"

    def __init__(
        self,
        orders: ManufacturingOrderRepository,
        domain_service: ManufacturingOrderDomainService,
        event_publisher: EventPublisher,
        transaction_manager: TransactionManager,
    ):
        super().__init__(transaction_manager)
        self.orders = orders
        self.domain_service = domain_service
        self.event_publisher = event_publisher

    async def execute(self, command: CompleteManufacturingOrderCommand) -> Result:
        errors = []
        if not command.order_id:
            errors.append("Order ID is required")
        if not command.completed_by:
            errors.append("Completed by user ID is required")
        produced = None
        if command.actual_quantity_produced is not None:
            try:
                produced = to_decimal(command.actual_quantity_produced, "Actual quantity produced")
            except ValidationError:
                errors.append("Actual quantity produced must be a valid number")
            else:
                if produced < 0:
                    errors.append("Actual quantity produced cannot be negative")
        if errors:
            return _validation_failure(errors, "Invalid complete manufacturing order data")
        return await self._run(lambda: self._complete(command, produced), order_id=command.order_id)

    async def _complete(self, command: CompleteManufacturingOrderCommand, produced: Optional[Decimal]) -> Result:
        order = await self._load_order(self.orders, command.order_id)
        self.domain_service.validate_manufacturing_order_completion(order)

        completed = order.complete()
        if command.quality_notes:
            completed = completed.update_notes(command.quality_notes)

        produced_str = None
        if produced is not None:
            produced_str = str(Quantity(produced, completed.quantity.unit).value)
            completed = completed.update_metadata({"actual_quantity_produced": produced_str})

        saved = await self.orders.save(completed)
        await self.event_publisher.publish(
            events.manufacturing_order_completed(saved, command.completed_by, produced_str)
        )

        logger.info(
            f"Completed manufacturing order {saved.mo_number}",
            extra={
                "order_id": saved.id,
                "completed_by": command.completed_by,
                "actual_quantity_produced": produced_str,
            },
        )
        return success(to_response(saved, domain_service=self.domain_service))


class CancelManufacturingOrderUseCase(_UseCase):
    error_code = "CANCEL_MANUFACTURING_ORDER_ERROR"

    def __init__(
        self,
        orders: ManufacturingOrderRepository,
        reservations: MaterialReservationRepository,
        domain_service: ManufacturingOrderDomainService,
        event_publisher: EventPublisher,
        transaction_manager: TransactionManager,
    ):
        super().__init__(transaction_manager)
        self.orders = orders
        self.reservations = reservations
        self.domain_service = domain_service
        self.event_publisher = event_publisher

    async def execute(self, command: CancelManufacturingOrderCommand) -> Result:
        errors = []
        if not command.order_id:
            errors.append("Order ID is required")
        if not command.cancelled_by:
            errors.append("Cancelled by user ID is required")
        if not command.reason or not command.reason.strip():
            errors.append("Cancellation reason is required")
        elif len(command.reason) > NOTES_MAX_LENGTH:
            errors.append(f"Cancellation reason cannot exceed {NOTES_MAX_LENGTH} characters")
        if errors:
            return _validation_failure(errors, "Invalid cancel manufacturing order data")
        return await self._run(lambda: self._cancel(command), order_id=command.order_id)

    async def _cancel(self, command: CancelManufacturingOrderCommand) -> Result:
        order = await self._load_order(self.orders, command.order_id)
        self.domain_service.validate_manufacturing_order_cancellation(order)

        cancelled = order.cancel().update_notes(command.reason)
        released = await self.reservations.release_for_order(order.id, command.cancelled_by)
        saved = await self.orders.save(cancelled)

        await self.event_publisher.publish(
            events.manufacturing_order_cancelled(saved, command.cancelled_by, command.reason.strip(), released)
        )

        logger.info(
            f"Cancelled manufacturing order {saved.mo_number}",
            extra={"order_id": saved.id, "released_reservations": len(released)},
        )
        return success(to_response(saved, domain_service=self.domain_service))


class UpdateManufacturingOrderUseCase(_UseCase):
    error_code = "UPDATE_MANUFACTURING_ORDER_ERROR"

    def __init__(
        self,
        orders: ManufacturingOrderRepository,
        domain_service: ManufacturingOrderDomainService,
        transaction_manager: TransactionManager,
    ):
        super().__init__(transaction_manager)
        self.orders = orders
        self.domain_service = domain_service

    async def execute(self, command: UpdateManufacturingOrderCommand) -> Result:
        if not command.order_id:
            return _validation_failure(["Order ID is required"], "Order ID is required")
        return await self._run(lambda: self._update(command), order_id=command.order_id)

    async def _update(self, command: UpdateManufacturingOrderCommand) -> Result:
        order = await self._load_order(self.orders, command.order_id)
        updated = order

        if command.priority is not None:
            updated = updated.update_priority(command.priority)
        if command.planned_start_date is not None or command.planned_end_date is not None:
            updated = updated.update_planned_dates(command.planned_start_date, command.planned_end_date)
        if command.assigned_to is not None:
            updated = updated.assign_to(command.assigned_to)
        if command.notes is not None:
            updated = updated.update_notes(command.notes)
        if command.metadata:
            updated = updated.update_metadata(command.metadata)

        if updated is order:
            return success(to_response(order, domain_service=self.domain_service))

        saved = await self.orders.save(updated)
        logger.info(
            f"Updated manufacturing order {saved.mo_number}",
            extra={"order_id": saved.id, "updated_by": command.updated_by},
        )
        return success(to_response(saved, domain_service=self.domain_service))


class GetManufacturingOrderUseCase:
    """Read-only lookup; no transaction needed."""

    def __init__(
        self,
        orders: ManufacturingOrderRepository,
        reservations: MaterialReservationRepository,
        domain_service: ManufacturingOrderDomainService,
    ):
        self.orders = orders
        self.reservations = reservations
        self.domain_service = domain_service

    async def execute(self, order_id: str) -> Result:
        order = await self.orders.find_by_id(order_id)
        if order is None:
            return Failure(DomainError.from_exception(EntityNotFoundError("ManufacturingOrder", order_id)))
        reservations = await self.reservations.find_for_order(order.id)
        active = [r for r in reservations if r.is_active]
        return success(to_response(order, active, self.domain_service))
