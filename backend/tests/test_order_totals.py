"""Order total arithmetic and order numbering."""

import pytest
from datetime import date
from decimal import Decimal

from siampos.core.errors import ValidationError
from siampos.models.order import Order, OrderSequence
from siampos.services import order_service
from siampos.services.order_service import LineItem, allocate_order_number, calculate_order_totals, round2


def D(value: str) -> Decimal:
    return Decimal(value)


class TestCalculateOrderTotals:
    def test_pad_thai_and_iced_tea(self):
        totals = calculate_order_totals([LineItem(D("180.00"), 1), LineItem(D("45.00"), 1)], 10, 7)
        assert totals.subtotal == D("225.00")
        assert totals.service_charge == D("22.50")
        assert totals.tax == D("15.75")
        assert totals.total == D("263.25")

    def test_defaults_are_ten_and_seven_percent(self):
        totals = calculate_order_totals([LineItem(D("100"), 1)])
        assert totals.service_charge == D("10.00")
        assert totals.tax == D("7.00")
        assert totals.total == D("117.00")

    def test_quantity_multiplies_line(self):
        totals = calculate_order_totals([LineItem(D("59.50"), 3)], 0, 0)
        assert totals.line_totals == [D("178.50")]
        assert totals.total == D("178.50")

    def test_subtotal_is_sum_of_lines(self):
        items = [LineItem(D("12.34"), 2), LineItem(D("0.99"), 7), LineItem(D("250"), 1)]
        totals = calculate_order_totals(items, 10, 7)
        assert sum(totals.line_totals) == totals.subtotal
        assert totals.total == totals.subtotal + totals.service_charge + totals.tax

    def test_half_up_rounding_applied_separately(self):
        # 10.05 * 5% = 0.5025 -> 0.50 ; 10.05 * 7% = 0.7035 -> 0.70
        totals = calculate_order_totals([LineItem(D("10.05"), 1)], 5, 7)
        assert totals.service_charge == D("0.50")
        assert totals.tax == D("0.70")
        # 0.10 * 5% = 0.005 -> 0.01 (half up, not banker's rounding)
        totals = calculate_order_totals([LineItem(D("0.10"), 1)], 5, 0)
        assert totals.service_charge == D("0.01")

    def test_tax_does_not_compound_on_service_charge(self):
        totals = calculate_order_totals([LineItem(D("1000"), 1)], 10, 7)
        assert totals.tax == D("70.00")

    def test_zero_rates(self):
        totals = calculate_order_totals([LineItem(D("80"), 2)], 0, 0)
        assert totals.service_charge == D("0.00")
        assert totals.tax == D("0.00")
        assert totals.total == D("160.00")

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError, match="Order must have at least one item"):
            calculate_order_totals([])

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
    def test_bad_quantity_rejected(self, quantity):
        with pytest.raises(ValidationError) as exc:
            calculate_order_totals([LineItem(D("10"), quantity)])
        assert exc.value.code == "INVALID_QUANTITY"

    @pytest.mark.parametrize("price", ["0", "-5.00"])
    def test_bad_price_rejected(self, price):
        with pytest.raises(ValidationError) as exc:
            calculate_order_totals([LineItem(D(price), 1)])
        assert exc.value.code == "INVALID_PRICE"

    @pytest.mark.parametrize("service, tax", [(21, 7), (10, -1), (-0.5, 0), (10, 20.01)])
    def test_rates_outside_range_rejected(self, service, tax):
        with pytest.raises(ValidationError) as exc:
            calculate_order_totals([LineItem(D("10"), 1)], service, tax)
        assert exc.value.code == "INVALID_RATE"

    def test_twenty_percent_is_allowed(self):
        totals = calculate_order_totals([LineItem(D("10"), 1)], 20, 20)
        assert totals.total == D("14.00")

    def test_round2(self):
        assert round2("2.675") == D("2.68")
        assert round2(D("2.665")) == D("2.67")


def _insert_order(db, restaurant, user, number: str) -> Order:
    order = Order(
        restaurant_id=restaurant.id,
        user_id=user.id,
        order_number=number,
        subtotal=D("10.00"),
        tax=D("0.00"),
        service_charge=D("0.00"),
        total=D("10.00"),
    )
    db.add(order)
    db.commit()
    return order


class TestAllocateOrderNumber:
    def test_first_order_of_day(self, db_session, restaurant):
        assert allocate_order_number(db_session, restaurant.id, date(2024, 3, 15)) == "20240315-001"

    def test_uses_highest_suffix(self, db_session, restaurant, staff):
        _insert_order(db_session, restaurant, staff, "20240315-001")
        _insert_order(db_session, restaurant, staff, "20240315-007")
        assert allocate_order_number(db_session, restaurant.id, date(2024, 3, 15)) == "20240315-008"

    def test_sequence_restarts_each_day(self, db_session, restaurant, staff):
        _insert_order(db_session, restaurant, staff, "20240315-004")
        assert allocate_order_number(db_session, restaurant.id, date(2024, 3, 16)) == "20240316-001"

    def test_sequence_is_per_restaurant(self, db_session, restaurant, other_restaurant, staff):
        _insert_order(db_session, restaurant, staff, "20240315-002")
        assert allocate_order_number(db_session, other_restaurant.id, date(2024, 3, 15)) == "20240315-001"

    def test_grows_past_three_digits(self, db_session, restaurant, staff):
        _insert_order(db_session, restaurant, staff, "20240315-999")
        assert allocate_order_number(db_session, restaurant.id, date(2024, 3, 15)) == "20240315-1000"

    def test_defaults_to_business_day(self, db_session, restaurant, monkeypatch):
        monkeypatch.setattr(order_service, "business_today", lambda: date(2025, 1, 2))
        assert allocate_order_number(db_session, restaurant.id) == "20250102-001"

    def test_consecutive_allocations_increment(self, db_session, restaurant):
        numbers = [allocate_order_number(db_session, restaurant.id, date(2024, 3, 15)) for _ in range(3)]
        assert numbers == ["20240315-001", "20240315-002", "20240315-003"]

    def test_counter_row_tracks_last_number(self, db_session, restaurant):
        allocate_order_number(db_session, restaurant.id, date(2024, 3, 15))
        allocate_order_number(db_session, restaurant.id, date(2024, 3, 15))
        db_session.commit()
        counter = db_session.get(OrderSequence, (restaurant.id, "20240315"))
        assert counter.last_seq == 2

    def test_counter_catches_up_with_inserted_orders(self, db_session, restaurant, staff):
        assert allocate_order_number(db_session, restaurant.id, date(2024, 3, 15)) == "20240315-001"
        _insert_order(db_session, restaurant, staff, "20240315-005")
        assert allocate_order_number(db_session, restaurant.id, date(2024, 3, 15)) == "20240315-006"
        assert allocate_order_number(db_session, restaurant.id, date(2024, 3, 15)) == "20240315-007"

    def test_rollback_releases_the_number(self, db_session, restaurant):
        allocate_order_number(db_session, restaurant.id, date(2024, 3, 15))
        db_session.commit()
        allocate_order_number(db_session, restaurant.id, date(2024, 3, 15))
        db_session.rollback()
        assert allocate_order_number(db_session, restaurant.id, date(2024, 3, 15)) == "20240315-002"
