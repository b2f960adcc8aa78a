"""
Product model

Only the columns the manufacturing order core reads. Product authoring
(pricing, costing, categories) lives outside this service.
"""
import uuid

from sqlalchemy import Column, String, DateTime, Boolean, Text
from sqlalchemy.orm import relationship
from datetime import datetime

from forgeops.db.base import Base


class Product(Base):
    """Finished goods, sub-assemblies and raw materials"""
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sku = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    unit = Column(String(10), default='EA', nullable=False)

    # Raw materials are purchased, never manufactured
    is_raw_material = Column(Boolean, default=False, nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    boms = relationship("BOM", back_populates="product", foreign_keys="BOM.product_id")

    def __repr__(self):
        return f"<Product {self.sku}>"
