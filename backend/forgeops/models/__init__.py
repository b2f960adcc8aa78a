"""Database models"""
from forgeops.models.product import Product
from forgeops.models.bom import BOM, BOMLine
from forgeops.models.inventory import InventoryLocation, StockMovement
from forgeops.models.manufacturing_order import ManufacturingOrderModel
from forgeops.models.material_reservation import MaterialReservationModel
from forgeops.models.domain_event import DomainEventRecord

__all__ = [
    # Items
    "Product",
    "BOM",
    "BOMLine",
    # Inventory
    "InventoryLocation",
    "StockMovement",
    # Manufacturing
    "ManufacturingOrderModel",
    "MaterialReservationModel",
    # Events
    "DomainEventRecord",
]
