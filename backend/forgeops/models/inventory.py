"""
Inventory models

Stock is an append-only ledger of movements. On-hand quantity for a
product is the signed sum of its movements.
"""
import uuid

from sqlalchemy import Column, String, Numeric, DateTime, Boolean, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime

from forgeops.db.base import Base


class InventoryLocation(Base):
    """Inventory Location - warehouse, shelf, bin, etc."""
    __tablename__ = "inventory_locations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    type = Column(String(50), nullable=True)  # warehouse, shelf, bin
    active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<InventoryLocation {self.code}: {self.name}>"


class StockMovement(Base):
    """A single stock ledger entry"""
    __tablename__ = "stock_movements"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    product_id = Column(String(36), ForeignKey('products.id'), nullable=False, index=True)
    location_id = Column(String(36), ForeignKey('inventory_locations.id'), nullable=True)

    # in, out, adjustment (signed), transfer (nets to zero at product level)
    movement_type = Column(String(20), nullable=False)
    quantity = Column(Numeric(15, 4), nullable=False)
    unit = Column(String(10), nullable=False)

    reference_type = Column(String(50), nullable=True)  # purchase, manufacturing_order, adjustment
    reference_id = Column(String(36), nullable=True)
    notes = Column(Text, nullable=True)

    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    product = relationship("Product")
    location = relationship("InventoryLocation")

    def __repr__(self):
        return f"<StockMovement {self.movement_type} {self.quantity} {self.unit}>"
