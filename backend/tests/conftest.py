"""
Shared test fixtures for ForgeOps tests

Provides database setup, client creation, in-memory port fakes and
the use cases wired against them.
"""
import os

# Must be set before forgeops settings are first imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from forgeops.db.base import Base
from forgeops.db.session import get_db
from forgeops.main import app
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
from tests.fakes import InMemoryStore


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine):
    """Create all tables for testing using SQLAlchemy metadata"""
    import forgeops.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_tables(engine):
    """Drop all tables after testing"""
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """Create a fresh database session for each test"""
    create_tables(engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_tables(engine)


@pytest.fixture
def client(db):
    """Create a test client with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user_headers():
    """Headers identifying the acting user"""
    return {"X-User-Id": "user-planner-1"}


# =============================================================================
# In-memory ports
# =============================================================================

@pytest.fixture
def store():
    """Fresh in-memory repositories, publisher and transaction manager"""
    return InMemoryStore()


@pytest.fixture
def domain_service():
    return ManufacturingOrderDomainService()


@pytest.fixture
def create_use_case(store, domain_service):
    return CreateManufacturingOrderUseCase(
        store.orders, store.products, store.boms, domain_service, store.events, store.tx
    )


@pytest.fixture
def confirm_use_case(store, domain_service):
    return ConfirmManufacturingOrderUseCase(
        store.orders,
        store.boms,
        store.stock,
        store.reservations,
        SingleLocationPolicy("MAIN"),
        domain_service,
        store.events,
        store.tx,
    )


@pytest.fixture
def start_use_case(store, domain_service):
    return StartManufacturingOrderUseCase(store.orders, domain_service, store.events, store.tx)


@pytest.fixture
def complete_use_case(store, domain_service):
    return CompleteManufacturingOrderUseCase(store.orders, domain_service, store.events, store.tx)


@pytest.fixture
def cancel_use_case(store, domain_service):
    return CancelManufacturingOrderUseCase(
        store.orders, store.reservations, domain_service, store.events, store.tx
    )


@pytest.fixture
def update_use_case(store, domain_service):
    return UpdateManufacturingOrderUseCase(store.orders, domain_service, store.tx)


@pytest.fixture
def get_use_case(store, domain_service):
    return GetManufacturingOrderUseCase(store.orders, store.reservations, domain_service)
