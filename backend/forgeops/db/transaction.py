"""
Transaction manager backed by a SQLAlchemy session

Repositories only add and flush; this is the single place that commits
or rolls back a use case's unit of work.
"""
from typing import Awaitable, Callable

from sqlalchemy.orm import Session

from forgeops.logging_config import get_logger
from forgeops.services.results import Result

logger = get_logger(__name__)


class SqlAlchemyTransactionManager:
    def __init__(self, db: Session):
        self.db = db

    async def execute_in_transaction(self, fn: Callable[[], Awaitable[Result]]) -> Result:
        try:
            result = await fn()
            if result.is_success:
                # Commit-time errors (serialization, deferred constraints) roll back too
                self.db.commit()
                return result
        except Exception:
            self.db.rollback()
            raise

        logger.debug("Rolling back transaction", extra={"error_code": result.error.code})
        self.db.rollback()
        return result
