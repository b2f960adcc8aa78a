"""
Manufacturing Orders API Endpoints

Thin HTTP layer over the manufacturing order use cases. Result failures
are mapped to status codes by error code:
    VALIDATION_ERROR          -> 400
    ENTITY_NOT_FOUND          -> 404
    INVALID_STATUS_TRANSITION -> 409
    BUSINESS_RULE_VIOLATION   -> 422
    anything else             -> 500
"""
from fastapi import APIRouter, Depends, status

from forgeops.api.v1.deps import ManufacturingOrderUseCases, get_current_user_id, get_use_cases
from forgeops.exceptions import OperationFailedError
from forgeops.schemas.manufacturing_order import (
    ManufacturingOrderCancel,
    ManufacturingOrderComplete,
    ManufacturingOrderCreate,
    ManufacturingOrderResponse,
    ManufacturingOrderUpdate,
)
from forgeops.services.manufacturing_order_commands import (
    CancelManufacturingOrderCommand,
    CompleteManufacturingOrderCommand,
    CreateManufacturingOrderCommand,
    UpdateManufacturingOrderCommand,
)
from forgeops.services.results import Result

router = APIRouter(prefix="/manufacturing-orders", tags=["Manufacturing Orders"])

STATUS_BY_ERROR_CODE = {
    "VALIDATION_ERROR": 400,
    "ENTITY_NOT_FOUND": 404,
    "INVALID_STATUS_TRANSITION": 409,
    "BUSINESS_RULE_VIOLATION": 422,
}


def unwrap(result: Result) -> ManufacturingOrderResponse:
    """Return the success value or raise the failure with its mapped status."""
    if result.is_success:
        return result.value
    error = result.error
    status_code = STATUS_BY_ERROR_CODE.get(error.code, 500)
    raise OperationFailedError(error.code, error.message, status_code=status_code, details=error.details)


@router.post("", response_model=ManufacturingOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_manufacturing_order(
    request: ManufacturingOrderCreate,
    user_id: str = Depends(get_current_user_id),
    use_cases: ManufacturingOrderUseCases = Depends(get_use_cases),
) -> ManufacturingOrderResponse:
    """Create a draft manufacturing order"""
    command = CreateManufacturingOrderCommand(created_by=user_id, **request.model_dump())
    return unwrap(await use_cases.create.execute(command))


@router.get("/{order_id}", response_model=ManufacturingOrderResponse)
async def get_manufacturing_order(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    use_cases: ManufacturingOrderUseCases = Depends(get_use_cases),
) -> ManufacturingOrderResponse:
    """Get a manufacturing order with its active reservations"""
    return unwrap(await use_cases.get.execute(order_id))


@router.patch("/{order_id}", response_model=ManufacturingOrderResponse)
async def update_manufacturing_order(
    order_id: str,
    request: ManufacturingOrderUpdate,
    user_id: str = Depends(get_current_user_id),
    use_cases: ManufacturingOrderUseCases = Depends(get_use_cases),
) -> ManufacturingOrderResponse:
    """Update priority, planned dates, assignee, notes or metadata"""
    command = UpdateManufacturingOrderCommand(
        order_id=order_id,
        updated_by=user_id,
        **request.model_dump(exclude_unset=True),
    )
    return unwrap(await use_cases.update.execute(command))


@router.post("/{order_id}/confirm", response_model=ManufacturingOrderResponse)
async def confirm_manufacturing_order(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    use_cases: ManufacturingOrderUseCases = Depends(get_use_cases),
) -> ManufacturingOrderResponse:
    """Confirm a draft order and reserve its materials"""
    return unwrap(await use_cases.confirm.execute(order_id, user_id))


@router.post("/{order_id}/start", response_model=ManufacturingOrderResponse)
async def start_manufacturing_order(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    use_cases: ManufacturingOrderUseCases = Depends(get_use_cases),
) -> ManufacturingOrderResponse:
    """Start production on a confirmed, assigned order"""
    return unwrap(await use_cases.start.execute(order_id, user_id))


@router.post("/{order_id}/complete", response_model=ManufacturingOrderResponse)
async def complete_manufacturing_order(
    order_id: str,
    request: ManufacturingOrderComplete,
    user_id: str = Depends(get_current_user_id),
    use_cases: ManufacturingOrderUseCases = Depends(get_use_cases),
) -> ManufacturingOrderResponse:
    """Complete an in-progress order"""
    command = CompleteManufacturingOrderCommand(
        order_id=order_id,
        completed_by=user_id,
        actual_quantity_produced=request.actual_quantity_produced,
        quality_notes=request.quality_notes,
    )
    return unwrap(await use_cases.complete.execute(command))


@router.post("/{order_id}/cancel", response_model=ManufacturingOrderResponse)
async def cancel_manufacturing_order(
    order_id: str,
    request: ManufacturingOrderCancel,
    user_id: str = Depends(get_current_user_id),
    use_cases: ManufacturingOrderUseCases = Depends(get_use_cases),
) -> ManufacturingOrderResponse:
    """Cancel an order and release its material reservations"""
    command = CancelManufacturingOrderCommand(
        order_id=order_id,
        cancelled_by=user_id,
        reason=request.reason,
    )
    return unwrap(await use_cases.cancel.execute(command))
