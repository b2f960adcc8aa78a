"""
Manufacturing Order Pydantic Schemas

Request bodies carry shape only (types, optional fields). Business checks
such as quantity > 0 or planned start < planned end run in the use cases,
so they are reported as VALIDATION_ERROR with a 400 status.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
from decimal import Decimal

from forgeops.core.status_config import ManufacturingOrderStatus, PriorityLevel


# ============================================================================
# Requests
# ============================================================================

class ManufacturingOrderCreate(BaseModel):
    """Create a draft manufacturing order"""
    product_id: str
    bom_id: str
    quantity: Decimal
    quantity_unit: Optional[str] = Field(
        None, description="Defaults to the product's unit"
    )
    priority: Optional[PriorityLevel] = None
    planned_start_date: Optional[datetime] = None
    planned_end_date: Optional[datetime] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ManufacturingOrderUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged"""
    priority: Optional[PriorityLevel] = None
    planned_start_date: Optional[datetime] = None
    planned_end_date: Optional[datetime] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class ManufacturingOrderComplete(BaseModel):
    actual_quantity_produced: Optional[Decimal] = None
    quality_notes: Optional[str] = None


class ManufacturingOrderCancel(BaseModel):
    reason: str


# ============================================================================
# Responses
# ============================================================================

class MaterialReservationResponse(BaseModel):
    """Reservation created when an order is confirmed"""
    id: str
    component_id: str
    reserved_quantity: Decimal
    quantity_unit: str
    location_code: str
    reserved_by: str
    reserved_at: datetime


class ManufacturingOrderResponse(BaseModel):
    """Manufacturing order with derived scheduling fields"""
    model_config = ConfigDict(use_enum_values=True)

    id: str
    mo_number: str
    product_id: str
    bom_id: str
    quantity: Decimal
    quantity_unit: str
    status: ManufacturingOrderStatus
    priority: PriorityLevel
    planned_start_date: Optional[datetime] = None
    planned_end_date: Optional[datetime] = None
    actual_start_date: Optional[datetime] = None
    actual_end_date: Optional[datetime] = None
    created_by: str
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    # Derived
    is_overdue: bool = False
    priority_score: int = 0
    should_auto_prioritize: bool = False
    planned_duration_seconds: Optional[float] = None
    actual_duration_seconds: Optional[float] = None
    allowed_transitions: List[str] = Field(default_factory=list)

    reservations: List[MaterialReservationResponse] = Field(default_factory=list)

    created_at: datetime
    updated_at: datetime
