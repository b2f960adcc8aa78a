"""
Tests for CreateManufacturingOrderUseCase against in-memory ports.
"""
import pytest
from datetime import datetime
from decimal import Decimal

from forgeops.domain import events
from forgeops.domain.manufacturing_order import utcnow
from forgeops.services.manufacturing_order_commands import (
    CreateManufacturingOrderCommand,
    CreateManufacturingOrderUseCase,
)
from forgeops.services.manufacturing_order_service import ManufacturingOrderDomainService
from tests.factories import make_bom, make_product


class SpyDomainService(ManufacturingOrderDomainService):
    def __init__(self):
        self.creation_checks = 0

    def validate_manufacturing_order_creation(self, product, quantity, bom_components):
        self.creation_checks += 1
        return super().validate_manufacturing_order_creation(product, quantity, bom_components)


@pytest.fixture
def catalog(store):
    product = store.products.add(make_product("prod-1"))
    bom = store.boms.add(make_bom("prod-1", [("comp-a", "2", "EA")], bom_id="bom-1"))
    return product, bom


def _command(**overrides):
    values = dict(product_id="prod-1", bom_id="bom-1", quantity="10", created_by="user-1")
    values.update(overrides)
    return CreateManufacturingOrderCommand(**values)


class TestCreateManufacturingOrder:

    async def test_creates_draft_order(self, store, create_use_case, catalog):
        result = await create_use_case.execute(_command(notes="first batch"))

        assert result.is_success
        order = result.value
        assert order.status == "draft"
        assert order.priority == "normal"
        assert order.quantity == Decimal("10.0000")
        assert order.quantity_unit == "EA"
        assert order.created_by == "user-1"
        assert order.notes == "first batch"
        assert order.allowed_transitions == ["cancelled", "confirmed"]
        assert order.id in store.orders.orders
        assert store.tx.commits == 1

    async def test_mo_numbers_are_sequential_per_month(self, create_use_case, catalog):
        prefix = f"MO{utcnow():%Y%m}"

        first = await create_use_case.execute(_command())
        second = await create_use_case.execute(_command())

        assert first.value.mo_number == f"{prefix}0001"
        assert second.value.mo_number == f"{prefix}0002"

    async def test_publishes_created_event(self, store, create_use_case, catalog):
        result = await create_use_case.execute(_command(quantity="3"))

        assert store.events.event_types == [events.MANUFACTURING_ORDER_CREATED]
        event = store.events.published[0]
        assert event.aggregate_id == result.value.id
        assert event.event_data["mo_number"] == result.value.mo_number
        assert event.event_data["quantity"] == "3.0000"
        assert "status" not in event.event_data

    async def test_quantity_unit_defaults_to_product_unit(self, store, create_use_case):
        store.products.add(make_product("prod-kg", unit="KG"))
        store.boms.add(make_bom("prod-kg", [("comp-a", "1", "EA")], bom_id="bom-kg"))

        result = await create_use_case.execute(_command(product_id="prod-kg", bom_id="bom-kg"))

        assert result.value.quantity_unit == "KG"

    async def test_invalid_command_never_touches_repositories(self, store, create_use_case, catalog):
        result = await create_use_case.execute(
            _command(
                quantity="0",
                created_by="",
                planned_start_date=datetime(2025, 1, 2),
                planned_end_date=datetime(2025, 1, 1),
            )
        )

        assert result.is_failure
        assert result.error.code == "VALIDATION_ERROR"
        assert result.error.details["errors"] == [
            "Quantity must be greater than zero",
            "Planned start date must be before planned end date",
            "Created by user ID is required",
        ]
        assert result.error.message == ", ".join(result.error.details["errors"])
        assert store.products.calls == 0
        assert store.tx.commits == 0

    @pytest.mark.parametrize("quantity", ["abc", None, "-5", "0.00001", "0.00004"])
    async def test_bad_quantity(self, create_use_case, catalog, quantity):
        result = await create_use_case.execute(_command(quantity=quantity))
        assert result.error.code == "VALIDATION_ERROR"
        assert result.error.details["errors"] == ["Quantity must be greater than zero"]

    async def test_missing_product(self, store, create_use_case):
        result = await create_use_case.execute(_command(product_id="nope"))

        assert result.error.code == "ENTITY_NOT_FOUND"
        assert result.error.details["entity_type"] == "Product"
        assert store.boms.calls == 0

    async def test_missing_bom(self, store, create_use_case):
        store.products.add(make_product("prod-1"))

        result = await create_use_case.execute(_command())

        assert result.error.code == "ENTITY_NOT_FOUND"
        assert result.error.details["entity_id"] == "bom-1"

    async def test_bom_for_another_product(self, store):
        store.products.add(make_product("prod-1"))
        store.boms.add(make_bom("prod-other", [("comp-a", "1", "EA")], bom_id="bom-1"))
        spy = SpyDomainService()
        use_case = CreateManufacturingOrderUseCase(
            store.orders, store.products, store.boms, spy, store.events, store.tx
        )

        result = await use_case.execute(_command())

        assert result.error.code == "VALIDATION_ERROR"
        assert result.error.details["field"] == "bom_id"
        assert spy.creation_checks == 0
        assert store.orders.saves == 0
        assert store.events.published == []
        assert store.tx.rollbacks == 1

    async def test_business_rule_failure(self, store, create_use_case):
        store.products.add(make_product("prod-1", is_raw_material=True))
        store.boms.add(make_bom("prod-1", [("comp-a", "1", "EA")], bom_id="bom-1"))

        result = await create_use_case.execute(_command())

        assert result.error.code == "BUSINESS_RULE_VIOLATION"
        assert result.error.details["rule"] == "product_manufacturable"
        assert store.orders.orders == {}

    async def test_unexpected_error_is_wrapped(self, store, create_use_case, catalog, monkeypatch):
        async def boom(product_id):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(store.products, "find_by_id", boom)

        result = await create_use_case.execute(_command())

        assert result.error.code == "CREATE_MANUFACTURING_ORDER_ERROR"
        assert result.error.message == "connection reset"
        assert result.error.details == {"original_error": "RuntimeError"}
        assert store.tx.rollbacks == 1
