"""
Manufacturing Order entity

Aggregate root of the order lifecycle:

    draft → confirmed → in_progress → completed
      └──────┴─────────────┴──→ cancelled

Instances are immutable. Every transition or update returns a new
instance, and every instance (including those rebuilt from storage)
passes the same invariant checks in __post_init__.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from forgeops.core.status_config import (
    TERMINAL_STATUSES,
    ManufacturingOrderStatus,
    PriorityLevel,
    get_allowed_manufacturing_order_transitions,
    is_valid_manufacturing_order_transition,
)
from forgeops.domain.value_objects import Numeric, Quantity
from forgeops.exceptions import (
    BusinessRuleViolationError,
    InvalidStatusTransitionError,
    ValidationError,
)

MO_NUMBER_MAX_LENGTH = 50
NOTES_MAX_LENGTH = 1000

_DATE_FIELDS = ("planned_start_date", "planned_end_date", "actual_start_date", "actual_end_date")


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _enum_value(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [member.value for member in enum_cls]
        raise ValidationError(
            f"Invalid {field_name}: {value!r}",
            field=field_name,
            value=value,
            details={"allowed": allowed},
        ) from None


@dataclass(frozen=True)
class CreateManufacturingOrderProps:
    """Input for ManufacturingOrder.create()"""
    product_id: str
    bom_id: str
    quantity: Numeric
    quantity_unit: str
    priority: Optional[PriorityLevel] = None
    planned_start_date: Optional[datetime] = None
    planned_end_date: Optional[datetime] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    metadata: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class ManufacturingOrder:
    id: str
    mo_number: str
    product_id: str
    bom_id: str
    quantity: Quantity
    status: ManufacturingOrderStatus
    priority: PriorityLevel
    created_by: str
    created_at: datetime
    updated_at: datetime
    planned_start_date: Optional[datetime] = None
    planned_end_date: Optional[datetime] = None
    actual_start_date: Optional[datetime] = None
    actual_end_date: Optional[datetime] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Normalize before validating so stored and fresh instances compare equal
        object.__setattr__(self, "status", _enum_value(ManufacturingOrderStatus, self.status, "status"))
        object.__setattr__(self, "priority", _enum_value(PriorityLevel, self.priority, "priority"))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata or {})))
        for name in _DATE_FIELDS + ("created_at", "updated_at"):
            object.__setattr__(self, name, to_naive_utc(getattr(self, name)))
        self._validate()

    def __hash__(self) -> int:
        return hash(self.id)

    def _validate(self) -> None:
        if not self.mo_number or not self.mo_number.strip():
            raise ValidationError("Manufacturing Order number is required", field="mo_number")

        if len(self.mo_number) > MO_NUMBER_MAX_LENGTH:
            raise ValidationError(
                f"Manufacturing Order number cannot exceed {MO_NUMBER_MAX_LENGTH} characters",
                field="mo_number",
            )

        if not isinstance(self.quantity, Quantity) or not self.quantity.is_positive():
            raise ValidationError(
                "Manufacturing Order quantity must be greater than zero", field="quantity"
            )

        if self.notes and len(self.notes) > NOTES_MAX_LENGTH:
            raise ValidationError(
                f"Notes cannot exceed {NOTES_MAX_LENGTH} characters", field="notes"
            )

        if self.planned_start_date and self.planned_end_date:
            if self.planned_start_date >= self.planned_end_date:
                raise ValidationError("Planned start date must be before planned end date")

        if self.actual_start_date and self.actual_end_date:
            if self.actual_start_date >= self.actual_end_date:
                raise ValidationError("Actual start date must be before actual end date")

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        props: CreateManufacturingOrderProps,
        mo_number: str,
        created_by: str,
    ) -> "ManufacturingOrder":
        """Build a new draft order."""
        now = utcnow()
        notes = props.notes.strip() if props.notes else None
        return cls(
            id=str(uuid.uuid4()),
            mo_number=mo_number,
            product_id=props.product_id,
            bom_id=props.bom_id,
            quantity=Quantity.of(props.quantity, props.quantity_unit),
            status=ManufacturingOrderStatus.DRAFT,
            priority=props.priority or PriorityLevel.NORMAL,
            planned_start_date=props.planned_start_date,
            planned_end_date=props.planned_end_date,
            created_by=created_by,
            assigned_to=props.assigned_to,
            notes=notes or None,
            metadata=dict(props.metadata or {}),
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def from_persistence(cls, props: Mapping[str, Any]) -> "ManufacturingOrder":
        return cls(**props)

    def to_persistence(self) -> Dict[str, Any]:
        props = {f: getattr(self, f) for f in self.__dataclass_fields__}
        props["metadata"] = dict(self.metadata)
        return props

    # ------------------------------------------------------------------
    # Status predicates
    # ------------------------------------------------------------------

    @property
    def quantity_unit(self) -> str:
        return self.quantity.unit

    def is_draft(self) -> bool:
        return self.status == ManufacturingOrderStatus.DRAFT

    def is_confirmed(self) -> bool:
        return self.status == ManufacturingOrderStatus.CONFIRMED

    def is_in_progress(self) -> bool:
        return self.status == ManufacturingOrderStatus.IN_PROGRESS

    def is_completed(self) -> bool:
        return self.status == ManufacturingOrderStatus.COMPLETED

    def is_cancelled(self) -> bool:
        return self.status == ManufacturingOrderStatus.CANCELLED

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def can_transition_to(self, new_status: ManufacturingOrderStatus) -> bool:
        return is_valid_manufacturing_order_transition(self.status, new_status)

    def can_be_confirmed(self) -> bool:
        return self.can_transition_to(ManufacturingOrderStatus.CONFIRMED)

    def can_be_started(self) -> bool:
        return self.can_transition_to(ManufacturingOrderStatus.IN_PROGRESS)

    def can_be_completed(self) -> bool:
        return self.can_transition_to(ManufacturingOrderStatus.COMPLETED)

    def can_be_cancelled(self) -> bool:
        return self.can_transition_to(ManufacturingOrderStatus.CANCELLED)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _transition(self, target: ManufacturingOrderStatus, now: datetime, **changes) -> "ManufacturingOrder":
        return replace(self, status=target, updated_at=now, **changes)

    def _ensure_transition(self, target: ManufacturingOrderStatus) -> None:
        if not self.can_transition_to(target):
            raise InvalidStatusTransitionError(
                "ManufacturingOrder",
                self.status.value,
                target.value,
                allowed=get_allowed_manufacturing_order_transitions(self.status),
            )

    def confirm(self, now: Optional[datetime] = None) -> "ManufacturingOrder":
        self._ensure_transition(ManufacturingOrderStatus.CONFIRMED)
        return self._transition(ManufacturingOrderStatus.CONFIRMED, now or utcnow())

    def start(self, now: Optional[datetime] = None) -> "ManufacturingOrder":
        self._ensure_transition(ManufacturingOrderStatus.IN_PROGRESS)
        now = now or utcnow()
        return self._transition(
            ManufacturingOrderStatus.IN_PROGRESS,
            now,
            actual_start_date=self.actual_start_date or now,
        )

    def complete(self, now: Optional[datetime] = None) -> "ManufacturingOrder":
        self._ensure_transition(ManufacturingOrderStatus.COMPLETED)
        now = now or utcnow()
        return self._transition(
            ManufacturingOrderStatus.COMPLETED,
            now,
            actual_end_date=self.actual_end_date or now,
        )

    def cancel(self, now: Optional[datetime] = None) -> "ManufacturingOrder":
        self._ensure_transition(ManufacturingOrderStatus.CANCELLED)
        return self._transition(ManufacturingOrderStatus.CANCELLED, now or utcnow())

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def _ensure_mutable(self, action: str) -> None:
        if self.is_terminal():
            raise BusinessRuleViolationError(
                f"Cannot {action} of {self.status.value} manufacturing order {self.mo_number}",
                rule="terminal_order_immutable",
            )

    def update_priority(self, priority: PriorityLevel) -> "ManufacturingOrder":
        self._ensure_mutable("update priority")
        return replace(self, priority=_enum_value(PriorityLevel, priority, "priority"), updated_at=utcnow())

    def update_planned_dates(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> "ManufacturingOrder":
        """Replace either planned date; a None argument keeps the current value."""
        self._ensure_mutable("update planned dates")
        return replace(
            self,
            planned_start_date=start_date or self.planned_start_date,
            planned_end_date=end_date or self.planned_end_date,
            updated_at=utcnow(),
        )

    def assign_to(self, user_id: str) -> "ManufacturingOrder":
        self._ensure_mutable("change assignment")
        if not user_id or not user_id.strip():
            raise ValidationError("Assignee user ID is required", field="assigned_to")
        return replace(self, assigned_to=user_id, updated_at=utcnow())

    def update_notes(self, notes: str) -> "ManufacturingOrder":
        # Allowed on terminal orders: cancellation reasons and QC notes land here
        if len(notes) > NOTES_MAX_LENGTH:
            raise ValidationError(
                f"Notes cannot exceed {NOTES_MAX_LENGTH} characters", field="notes"
            )
        return replace(self, notes=notes.strip() or None, updated_at=utcnow())

    def update_metadata(self, metadata: Mapping[str, Any]) -> "ManufacturingOrder":
        merged = {**self.metadata, **metadata}
        return replace(self, metadata=merged, updated_at=utcnow())

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def duration(self) -> Optional[timedelta]:
        if not self.actual_start_date or not self.actual_end_date:
            return None
        return self.actual_end_date - self.actual_start_date

    def planned_duration(self) -> Optional[timedelta]:
        if not self.planned_start_date or not self.planned_end_date:
            return None
        return self.planned_end_date - self.planned_start_date

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        """Past its planned end and still open. Reporting only, never blocks."""
        if not self.planned_end_date or self.is_completed() or self.is_cancelled():
            return False
        return (to_naive_utc(now) or utcnow()) > self.planned_end_date

    def equals(self, other: "ManufacturingOrder") -> bool:
        return self.id == other.id

    def summary(self) -> Dict[str, Any]:
        """Denormalized fields carried by lifecycle events"""
        return {
            "mo_number": self.mo_number,
            "product_id": self.product_id,
            "bom_id": self.bom_id,
            "quantity": str(self.quantity.value),
            "quantity_unit": self.quantity.unit,
            "priority": self.priority.value,
            "status": self.status.value,
            "created_by": self.created_by,
            "assigned_to": self.assigned_to,
            "planned_start_date": self.planned_start_date.isoformat() if self.planned_start_date else None,
            "planned_end_date": self.planned_end_date.isoformat() if self.planned_end_date else None,
        }
