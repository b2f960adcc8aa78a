"""
Event Service

Records domain events in the domain_events table using the caller's
session, so an event is committed or rolled back together with the
state change that produced it. A relay can read unpublished rows later.
"""
from typing import Sequence

from sqlalchemy.orm import Session

from forgeops.domain.events import DomainEvent
from forgeops.logging_config import get_logger
from forgeops.models.domain_event import DomainEventRecord

logger = get_logger(__name__)


def record_domain_event(db: Session, event: DomainEvent) -> DomainEventRecord:
    """
    Add a domain event to the session.

    Args:
        db: Database session
        event: The event to store

    Returns:
        The created DomainEventRecord instance
    """
    record = DomainEventRecord(
        event_id=event.event_id,
        event_type=event.event_type,
        aggregate_id=event.aggregate_id,
        aggregate_type=event.aggregate_type,
        event_data=event.event_data,
        occurred_at=event.occurred_at,
        version=event.version,
    )
    db.add(record)
    # Don't commit - the transaction manager owns the transaction
    return record


class SqlEventPublisher:
    """EventPublisher that writes into the current unit of work."""

    def __init__(self, db: Session):
        self.db = db

    async def publish(self, event: DomainEvent) -> None:
        record_domain_event(self.db, event)
        logger.info(
            "Domain event recorded",
            extra={
                "event_type": event.event_type,
                "aggregate_id": event.aggregate_id,
                "event_id": event.event_id,
            },
        )

    async def publish_many(self, events: Sequence[DomainEvent]) -> None:
        for event in events:
            await self.publish(event)
