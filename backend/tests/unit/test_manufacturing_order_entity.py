"""
Unit tests for the ManufacturingOrder entity.

Covers invariant checks, the transition table and its can_be_* predicates,
copy-on-transition, terminal-state rules and persistence round-trips.
"""
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from forgeops.core.status_config import (
    MANUFACTURING_ORDER_TRANSITIONS,
    ManufacturingOrderStatus,
    PriorityLevel,
)
from forgeops.domain.manufacturing_order import (
    CreateManufacturingOrderProps,
    ManufacturingOrder,
)
from forgeops.exceptions import (
    BusinessRuleViolationError,
    InvalidStatusTransitionError,
    ValidationError,
)
from tests.factories import make_order

S = ManufacturingOrderStatus

TRANSITION_METHODS = {
    S.CONFIRMED: ("confirm", "can_be_confirmed"),
    S.IN_PROGRESS: ("start", "can_be_started"),
    S.COMPLETED: ("complete", "can_be_completed"),
    S.CANCELLED: ("cancel", "can_be_cancelled"),
}


def _props(**overrides):
    values = dict(product_id="prod-1", bom_id="bom-1", quantity="5", quantity_unit="ea")
    values.update(overrides)
    return CreateManufacturingOrderProps(**values)


class TestCreate:

    def test_create_defaults(self):
        order = ManufacturingOrder.create(_props(notes="  rush job  "), "MO2025010001", "user-1")

        assert order.status == S.DRAFT
        assert order.priority == PriorityLevel.NORMAL
        assert order.quantity.value == Decimal("5.0000")
        assert order.quantity_unit == "EA"
        assert order.notes == "rush job"
        assert dict(order.metadata) == {}
        assert order.created_at == order.updated_at

    @pytest.mark.parametrize("quantity", ["0", "0.00001"])
    def test_quantity_must_be_positive(self, quantity):
        with pytest.raises(ValidationError):
            ManufacturingOrder.create(_props(quantity=quantity), "MO2025010001", "user-1")

    def test_mo_number_rules(self):
        with pytest.raises(ValidationError):
            ManufacturingOrder.create(_props(), "", "user-1")
        with pytest.raises(ValidationError):
            ManufacturingOrder.create(_props(), "M" * 51, "user-1")

    def test_planned_dates_ordered(self):
        start = datetime(2025, 1, 10)
        with pytest.raises(ValidationError):
            ManufacturingOrder.create(
                _props(planned_start_date=start, planned_end_date=start), "MO2025010001", "user-1"
            )

    def test_notes_length(self):
        with pytest.raises(ValidationError):
            ManufacturingOrder.create(_props(notes="x" * 1001), "MO2025010001", "user-1")

    def test_aware_datetimes_normalized_to_utc(self):
        start = datetime(2025, 1, 10, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        order = ManufacturingOrder.create(_props(planned_start_date=start), "MO2025010001", "user-1")
        assert order.planned_start_date == datetime(2025, 1, 10, 10, 0)

    def test_metadata_is_read_only(self):
        order = ManufacturingOrder.create(_props(metadata={"line": "A"}), "MO2025010001", "user-1")
        with pytest.raises(TypeError):
            order.metadata["line"] = "B"


class TestTransitions:

    @pytest.mark.parametrize("current", list(S))
    @pytest.mark.parametrize("target", list(TRANSITION_METHODS))
    def test_method_succeeds_iff_predicate(self, current, target):
        order = make_order(status=current)
        method, predicate = TRANSITION_METHODS[target]
        allowed = getattr(order, predicate)()

        assert allowed == (target in MANUFACTURING_ORDER_TRANSITIONS[current])
        if allowed:
            assert getattr(order, method)().status == target
        else:
            with pytest.raises(InvalidStatusTransitionError):
                getattr(order, method)()

    def test_transition_returns_new_instance(self):
        draft = make_order()
        confirmed = draft.confirm()

        assert draft.status == S.DRAFT
        assert confirmed.status == S.CONFIRMED
        assert confirmed is not draft
        assert confirmed.equals(draft)

    def test_confirm_twice_fails(self):
        confirmed = make_order().confirm()
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            confirmed.confirm()
        assert exc_info.value.details["current_status"] == "confirmed"
        assert exc_info.value.details["allowed_statuses"] == ["cancelled", "in_progress"]

    def test_start_sets_actual_start_once(self):
        first = datetime(2025, 3, 1, 8, 0)
        started = make_order(status=S.CONFIRMED).start(now=first)
        assert started.actual_start_date == first

        # Second start fails the transition check before touching the date
        with pytest.raises(InvalidStatusTransitionError):
            started.start(now=first + timedelta(hours=1))
        assert started.actual_start_date == first

    def test_start_keeps_existing_actual_start(self):
        earlier = datetime(2025, 3, 1, 6, 0)
        order = make_order(status=S.CONFIRMED, actual_start_date=earlier)
        assert order.start(now=datetime(2025, 3, 1, 8, 0)).actual_start_date == earlier

    def test_complete_sets_actual_end(self):
        start = datetime(2025, 3, 1, 8, 0)
        end = start + timedelta(hours=5)
        done = make_order(status=S.CONFIRMED).start(now=start).complete(now=end)

        assert done.status == S.COMPLETED
        assert done.actual_end_date == end
        assert done.duration() == timedelta(hours=5)


class TestUpdates:

    @pytest.mark.parametrize("status", [S.COMPLETED, S.CANCELLED])
    def test_terminal_orders_reject_planning_changes(self, status):
        order = make_order(status=status)
        with pytest.raises(BusinessRuleViolationError):
            order.update_priority(PriorityLevel.URGENT)
        with pytest.raises(BusinessRuleViolationError):
            order.update_planned_dates(end_date=datetime(2030, 1, 1))
        with pytest.raises(BusinessRuleViolationError):
            order.assign_to("user-2")

    def test_terminal_orders_accept_notes_and_metadata(self):
        order = make_order(status=S.CANCELLED)
        updated = order.update_notes("supplier failed").update_metadata({"reason_code": "SUP"})
        assert updated.notes == "supplier failed"
        assert updated.metadata["reason_code"] == "SUP"

    def test_update_planned_dates_keeps_missing_side(self):
        start = datetime(2025, 5, 1)
        order = make_order(planned_start_date=start, planned_end_date=start + timedelta(days=2))
        updated = order.update_planned_dates(end_date=start + timedelta(days=5))
        assert updated.planned_start_date == start
        assert updated.planned_duration() == timedelta(days=5)

    def test_update_planned_dates_validates_order(self):
        start = datetime(2025, 5, 1)
        order = make_order(planned_start_date=start, planned_end_date=start + timedelta(days=2))
        with pytest.raises(ValidationError):
            order.update_planned_dates(end_date=start - timedelta(days=1))

    def test_assign_requires_user(self):
        with pytest.raises(ValidationError):
            make_order().assign_to(" ")

    def test_metadata_merges(self):
        order = make_order(metadata={"a": 1})
        assert dict(order.update_metadata({"b": 2}).metadata) == {"a": 1, "b": 2}


class TestDerived:

    def test_is_overdue(self):
        now = datetime(2025, 6, 10)
        past_due = make_order(planned_end_date=now - timedelta(hours=1))

        assert past_due.is_overdue(now)
        assert not past_due.is_overdue(now - timedelta(days=1))
        assert not make_order().is_overdue(now)
        assert not make_order(status=S.COMPLETED, planned_end_date=now - timedelta(days=1)).is_overdue(now)
        assert not make_order(status=S.CANCELLED, planned_end_date=now - timedelta(days=1)).is_overdue(now)

    def test_durations_none_without_dates(self):
        order = make_order()
        assert order.duration() is None
        assert order.planned_duration() is None


class TestPersistence:

    def test_round_trip(self):
        order = make_order(
            status=S.IN_PROGRESS,
            priority=PriorityLevel.HIGH,
            planned_start_date=datetime(2025, 1, 1),
            planned_end_date=datetime(2025, 1, 5),
            actual_start_date=datetime(2025, 1, 2),
            assigned_to="user-7",
            notes="line 2",
            metadata={"customer": "ACME"},
        )
        restored = ManufacturingOrder.from_persistence(order.to_persistence())

        assert restored.equals(order)
        assert restored == order
        assert restored.to_persistence() == order.to_persistence()

    def test_from_persistence_validates(self):
        props = make_order().to_persistence()
        props["mo_number"] = ""
        with pytest.raises(ValidationError):
            ManufacturingOrder.from_persistence(props)

    def test_from_persistence_accepts_string_enums(self):
        props = make_order().to_persistence()
        props["status"] = "confirmed"
        props["priority"] = "urgent"
        order = ManufacturingOrder.from_persistence(props)
        assert order.status == S.CONFIRMED
        assert order.priority == PriorityLevel.URGENT

    @pytest.mark.parametrize("field_name", ["status", "priority"])
    def test_unknown_enum_values_are_validation_errors(self, field_name):
        props = make_order().to_persistence()
        props[field_name] = "bogus"
        with pytest.raises(ValidationError) as exc_info:
            ManufacturingOrder.from_persistence(props)
        assert exc_info.value.details["field"] == field_name
        assert exc_info.value.details["value"] == "bogus"

    def test_update_priority_rejects_unknown_level(self):
        with pytest.raises(ValidationError) as exc_info:
            make_order().update_priority("bogus")
        assert exc_info.value.details["allowed"] == [p.value for p in PriorityLevel]
