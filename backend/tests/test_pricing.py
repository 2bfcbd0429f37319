# backend/tests/test_pricing.py
from datetime import date
from decimal import Decimal

from garagehub.services.pricing import apply_payment, compute_totals, due_date_for, line_total, money


def test_labor_line_uses_hours_times_rate():
    unit, total = line_total("labor", quantity=5, unit_price=999, hours=Decimal("2.5"), hourly_rate=Decimal("80"))
    assert unit == Decimal("80.00")
    assert total == Decimal("200.00")


def test_part_line_uses_quantity_times_price():
    unit, total = line_total("part", quantity=3, unit_price=Decimal("19.99"))
    assert unit == Decimal("19.99")
    assert total == Decimal("59.97")


def test_totals_are_subtotal_plus_tax():
    subtotal, tax, total = compute_totals([Decimal("200.00"), Decimal("59.97")], 15)
    assert subtotal == Decimal("259.97")
    assert tax == Decimal("39.00")  # 38.9955 rounds half-up
    assert total == subtotal + tax


def test_totals_of_empty_quote_are_zero():
    assert compute_totals([], 15) == (Decimal("0.00"), Decimal("0.00"), Decimal("0.00"))


def test_money_rounds_half_up():
    assert money("0.125") == Decimal("0.13")
    assert money(None) == Decimal("0.00")


def test_partial_then_overpayment_never_goes_negative():
    paid, due, is_paid = apply_payment(Decimal("100.00"), Decimal("0"), Decimal("40"))
    assert (paid, due, is_paid) == (Decimal("40.00"), Decimal("60.00"), False)

    paid, due, is_paid = apply_payment(Decimal("100.00"), paid, Decimal("75"))
    assert paid == Decimal("115.00")
    assert due == Decimal("0")
    assert is_paid is True


def test_due_date_adds_days():
    assert due_date_for(date(2025, 1, 20), 30) == date(2025, 2, 19)
    assert due_date_for(date(2025, 1, 20), None) == date(2025, 1, 20)
