"""
API Dependencies

Per-request wiring: every use case for a request shares one Session, so
repositories, the event outbox and the transaction manager all act on the
same unit of work.
"""
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from forgeops.db.session import get_db
from forgeops.db.transaction import SqlAlchemyTransactionManager
from forgeops.repositories.sql import (
    SqlBOMRepository,
    SqlManufacturingOrderRepository,
    SqlMaterialReservationRepository,
    SqlProductRepository,
    SqlStockLedgerRepository,
)
from forgeops.services.event_service import SqlEventPublisher
from forgeops.services.manufacturing_order_commands import (
    CancelManufacturingOrderUseCase,
    CompleteManufacturingOrderUseCase,
    ConfirmManufacturingOrderUseCase,
    CreateManufacturingOrderUseCase,
    GetManufacturingOrderUseCase,
    StartManufacturingOrderUseCase,
    UpdateManufacturingOrderUseCase,
)
from forgeops.services.manufacturing_order_service import ManufacturingOrderDomainService
from forgeops.services.reservation_policy import SingleLocationPolicy


async def get_current_user_id(
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> str:
    """
    Acting user from the X-User-Id header.

    Authentication happens upstream (gateway/session service); this
    service only needs the id to stamp created_by, reserved_by, etc.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required",
        )
    return x_user_id.strip()


class ManufacturingOrderUseCases:
    """All manufacturing order use cases bound to one session"""

    def __init__(self, db: Session):
        orders = SqlManufacturingOrderRepository(db)
        stock_ledger = SqlStockLedgerRepository(db)
        reservations = SqlMaterialReservationRepository(db, stock_ledger)
        domain_service = ManufacturingOrderDomainService()
        publisher = SqlEventPublisher(db)
        tx = SqlAlchemyTransactionManager(db)

        self.create = CreateManufacturingOrderUseCase(
            orders, SqlProductRepository(db), SqlBOMRepository(db), domain_service, publisher, tx
        )
        self.confirm = ConfirmManufacturingOrderUseCase(
            orders,
            SqlBOMRepository(db),
            stock_ledger,
            reservations,
            SingleLocationPolicy(),
            domain_service,
            publisher,
            tx,
        )
        self.start = StartManufacturingOrderUseCase(orders, domain_service, publisher, tx)
        self.complete = CompleteManufacturingOrderUseCase(orders, domain_service, publisher, tx)
        self.cancel = CancelManufacturingOrderUseCase(orders, reservations, domain_service, publisher, tx)
        self.update = UpdateManufacturingOrderUseCase(orders, domain_service, tx)
        self.get = GetManufacturingOrderUseCase(orders, reservations, domain_service)


def get_use_cases(db: Session = Depends(get_db)) -> ManufacturingOrderUseCases:
    return ManufacturingOrderUseCases(db)
