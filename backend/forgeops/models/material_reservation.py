"""
Material Reservation model

Stock held for a confirmed manufacturing order. Active reservations
reduce free stock (on hand - reserved) for every later confirmation.
"""
from sqlalchemy import Column, String, Numeric, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime

from forgeops.db.base import Base


class MaterialReservationModel(Base):
    __tablename__ = "material_reservations"

    id = Column(String(36), primary_key=True)
    component_id = Column(String(36), ForeignKey('products.id'), nullable=False, index=True)
    manufacturing_order_id = Column(
        String(36),
        ForeignKey('manufacturing_orders.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    location_code = Column(String(50), nullable=False)

    reserved_quantity = Column(Numeric(15, 4), nullable=False)
    unit = Column(String(10), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    reserved_by = Column(String(36), nullable=False)
    reserved_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    released_by = Column(String(36), nullable=True)
    released_at = Column(DateTime, nullable=True)

    manufacturing_order = relationship("ManufacturingOrderModel", back_populates="reservations")

    __table_args__ = (
        Index("ix_material_reservations_component_active", "component_id", "is_active"),
    )

    def __repr__(self):
        return f"<MaterialReservation {self.component_id} x {self.reserved_quantity} for MO {self.manufacturing_order_id}>"
