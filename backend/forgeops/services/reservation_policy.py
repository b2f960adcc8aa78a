"""
Reservation location policies

A policy decides where a confirmed order's material requirements are held.
Confirmation asks the configured policy for allocations and creates one
reservation per allocation.
"""
from typing import List, Optional

from forgeops.core.config import settings
from forgeops.domain.materials import MaterialRequirement, ReservationAllocation


class SingleLocationPolicy:
    """Reserve every requirement in full at one location (MAIN by default)."""

    def __init__(self, location_code: Optional[str] = None):
        self.location_code = location_code or settings.DEFAULT_RESERVATION_LOCATION

    def allocate(self, requirement: MaterialRequirement) -> List[ReservationAllocation]:
        if requirement.required_quantity.is_zero():
            return []
        return [
            ReservationAllocation(
                component_id=requirement.component_id,
                quantity=requirement.required_quantity,
                location_code=self.location_code,
            )
        ]
