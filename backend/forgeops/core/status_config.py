"""Status Configuration and Transition Rules

Valid status values and allowed transitions for Manufacturing Orders.
The ManufacturingOrder entity consults this table before every transition.
"""
from enum import Enum
from typing import Dict, FrozenSet, List


# =============================================================================
# Manufacturing Order Status
# =============================================================================

class ManufacturingOrderStatus(str, Enum):
    """Valid status values for Manufacturing Orders"""
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Allowed transitions: current_status -> set of allowed next statuses
MANUFACTURING_ORDER_TRANSITIONS: Dict[ManufacturingOrderStatus, FrozenSet[ManufacturingOrderStatus]] = {
    ManufacturingOrderStatus.DRAFT: frozenset({
        ManufacturingOrderStatus.CONFIRMED,
        ManufacturingOrderStatus.CANCELLED,
    }),
    ManufacturingOrderStatus.CONFIRMED: frozenset({
        ManufacturingOrderStatus.IN_PROGRESS,
        ManufacturingOrderStatus.CANCELLED,
    }),
    ManufacturingOrderStatus.IN_PROGRESS: frozenset({
        ManufacturingOrderStatus.COMPLETED,
        ManufacturingOrderStatus.CANCELLED,
    }),
    ManufacturingOrderStatus.COMPLETED: frozenset(),  # Terminal
    ManufacturingOrderStatus.CANCELLED: frozenset(),  # Terminal
}

TERMINAL_STATUSES: FrozenSet[ManufacturingOrderStatus] = frozenset(
    status for status, allowed in MANUFACTURING_ORDER_TRANSITIONS.items() if not allowed
)


def get_allowed_manufacturing_order_transitions(current_status: str) -> List[str]:
    """Get sorted list of allowed next statuses for a manufacturing order"""
    allowed = MANUFACTURING_ORDER_TRANSITIONS.get(ManufacturingOrderStatus(current_status), frozenset())
    return sorted(status.value for status in allowed)


def is_valid_manufacturing_order_transition(current_status: str, new_status: str) -> bool:
    """Check if a manufacturing order status transition is in the table.

    Unlike a status update form, a same-status "transition" is not allowed:
    confirming a confirmed order is an error.
    """
    allowed = MANUFACTURING_ORDER_TRANSITIONS.get(ManufacturingOrderStatus(current_status), frozenset())
    return ManufacturingOrderStatus(new_status) in allowed


# =============================================================================
# Priority
# =============================================================================

class PriorityLevel(str, Enum):
    """Manufacturing order priority"""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


PRIORITY_BASE_SCORES: Dict[PriorityLevel, int] = {
    PriorityLevel.URGENT: 100,
    PriorityLevel.HIGH: 75,
    PriorityLevel.NORMAL: 50,
    PriorityLevel.LOW: 25,
}
