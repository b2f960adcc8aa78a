"""
Manufacturing Order model

Persistence shape of the ManufacturingOrder entity. Status and priority
are stored as their string values; transitions are enforced by the
entity, not the table.

Lifecycle: draft → confirmed → in_progress → completed
           (any non-terminal status) → cancelled
"""
from sqlalchemy import Column, String, Numeric, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from forgeops.db.base import Base


class ManufacturingOrderModel(Base):
    __tablename__ = "manufacturing_orders"

    id = Column(String(36), primary_key=True)
    mo_number = Column(String(50), unique=True, nullable=False, index=True)

    product_id = Column(String(36), ForeignKey('products.id'), nullable=False, index=True)
    bom_id = Column(String(36), ForeignKey('boms.id'), nullable=False, index=True)

    quantity = Column(Numeric(15, 4), nullable=False)
    quantity_unit = Column(String(10), nullable=False)

    status = Column(String(20), default='draft', nullable=False, index=True)
    priority = Column(String(10), default='normal', nullable=False, index=True)

    # Scheduling
    planned_start_date = Column(DateTime, nullable=True)
    planned_end_date = Column(DateTime, nullable=True, index=True)
    actual_start_date = Column(DateTime, nullable=True)
    actual_end_date = Column(DateTime, nullable=True)

    created_by = Column(String(36), nullable=False)
    assigned_to = Column(String(36), nullable=True, index=True)
    notes = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    order_metadata = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    product = relationship("Product")
    bom = relationship("BOM")
    reservations = relationship(
        "MaterialReservationModel",
        back_populates="manufacturing_order",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<ManufacturingOrder {self.mo_number} ({self.status})>"
