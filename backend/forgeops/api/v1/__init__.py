"""
API v1 Router - ForgeOps
"""
from fastapi import APIRouter
from forgeops.api.v1.endpoints import manufacturing_orders

router = APIRouter()

# Manufacturing Orders
router.include_router(manufacturing_orders.router)
