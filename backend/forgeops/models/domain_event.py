"""
Domain Event model

Outbox of lifecycle events, written in the same transaction as the
order change that produced them. published_at stays NULL until a relay
delivers the event downstream.
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON
from datetime import datetime

from forgeops.db.base import Base


class DomainEventRecord(Base):
    __tablename__ = "domain_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(String(36), unique=True, nullable=False, index=True)

    # ManufacturingOrderCreated, ManufacturingOrderConfirmed, ...
    event_type = Column(String(100), nullable=False, index=True)
    aggregate_type = Column(String(50), nullable=False)
    aggregate_id = Column(String(36), nullable=False, index=True)

    event_data = Column(JSON, nullable=False, default=dict)
    version = Column(Integer, default=1, nullable=False)

    occurred_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    published_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<DomainEvent {self.event_type} for {self.aggregate_type}-{self.aggregate_id}>"
