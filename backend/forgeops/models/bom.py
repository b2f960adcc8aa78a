"""
Bill of Materials models
"""
import uuid

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime

from forgeops.db.base import Base


class BOM(Base):
    """Bill of Materials header - one version of a product's recipe"""
    __tablename__ = "boms"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    product_id = Column(String(36), ForeignKey('products.id'), nullable=False, index=True)
    code = Column(String(50), nullable=True)
    name = Column(String(255), nullable=True)
    version = Column(String(20), default='1', nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    product = relationship("Product", back_populates="boms", foreign_keys=[product_id])
    lines = relationship(
        "BOMLine",
        back_populates="bom",
        cascade="all, delete-orphan",
        order_by="BOMLine.sequence",
    )

    def __repr__(self):
        return f"<BOM {self.code or self.id} v{self.version}>"


class BOMLine(Base):
    """One component line: quantity per unit of the parent product"""
    __tablename__ = "bom_lines"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    bom_id = Column(String(36), ForeignKey('boms.id', ondelete='CASCADE'), nullable=False, index=True)
    component_id = Column(String(36), ForeignKey('products.id'), nullable=False, index=True)
    sequence = Column(Integer, default=0, nullable=False)

    quantity = Column(Numeric(15, 4), nullable=False)
    unit = Column(String(10), nullable=False)
    # 0.05 = 5% expected scrap
    scrap_factor = Column(Numeric(5, 4), default=0, nullable=False)

    notes = Column(Text, nullable=True)

    bom = relationship("BOM", back_populates="lines")
    component = relationship("Product", foreign_keys=[component_id])

    def __repr__(self):
        return f"<BOMLine {self.component_id} x {self.quantity} {self.unit}>"
