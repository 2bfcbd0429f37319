# backend/garagehub/services/pricing.py
"""
Money arithmetic for quotes and invoices.

All amounts are Decimal and rounded half-up to cents; tax rates are
percentages (15 means 15%).
"""
from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

from sqlalchemy.orm import Session

from ..models import Quote

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

LABOR = "labor"
PART = "part"
SERVICE = "service"
ITEM_TYPES = (LABOR, PART, SERVICE)


def D(x) -> Decimal:
    if x is None:
        return ZERO
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))


def money(x) -> Decimal:
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(
    item_type: str,
    quantity=None,
    unit_price=None,
    hours=None,
    hourly_rate=None,
) -> Tuple[Decimal, Decimal]:
    """
    Returns (unit_price, total_price) for a line item.

    Labor lines are priced hours x hourly_rate and the unit price is the
    rate; every other type is quantity x unit_price.
    """
    if item_type == LABOR:
        rate = D(hourly_rate)
        return money(rate), money(D(hours) * rate)
    price = D(unit_price)
    qty = D(quantity) if quantity is not None else Decimal("1")
    return money(price), money(qty * price)


def compute_totals(item_totals: Iterable, tax_rate) -> Tuple[Decimal, Decimal, Decimal]:
    """(subtotal, tax_amount, total_amount) with total == subtotal + tax."""
    subtotal = money(sum((D(t) for t in item_totals), ZERO))
    tax_amount = money(subtotal * D(tax_rate) / HUNDRED)
    return subtotal, tax_amount, subtotal + tax_amount


def recalculate_quote_totals(db: Session, quote: Quote) -> Quote:
    """Re-sum the quote's items and write subtotal/tax/total back. Caller commits."""
    db.flush()
    db.expire(quote, ["items"])
    subtotal, tax_amount, total_amount = compute_totals(
        (item.total_price for item in quote.items), quote.tax_rate
    )
    quote.subtotal = subtotal
    quote.tax_amount = tax_amount
    quote.total_amount = total_amount
    return quote


def apply_payment(total_amount, amount_paid, payment) -> Tuple[Decimal, Decimal, bool]:
    """
    Adds a payment to what was already paid.
    Returns (new_amount_paid, amount_due, is_paid); amount_due never drops below 0.
    """
    new_paid = money(D(amount_paid) + D(payment))
    remaining = money(D(total_amount) - new_paid)
    is_paid = remaining <= ZERO
    return new_paid, max(ZERO, remaining), is_paid


def due_date_for(issue_date: date, due_days: Optional[int]) -> date:
    return issue_date + timedelta(days=int(due_days or 0))
