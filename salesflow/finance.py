"""
salesflow/finance.py

Financial calculator: pure, stateless money helpers.

All monetary values are Decimal quantized to 2 decimal places with
ROUND_HALF_UP. Every helper accepts Decimal/int/float/str/None and converts
through str() so float artefacts never leak into totals. Re-running any helper
on its own output returns the same value.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

GST_RATE = Decimal("0.18")
LOCAL_QUOTATION = "local"

_CENTS = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Convert Numeric/None to Decimal safely."""
    if value is None or value == "":
        return Decimal("0.00")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value) -> Decimal:
    return to_decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP)


def scaled(value, places: int = 2) -> Decimal | None:
    """Round an optional input to its stored scale; None stays None."""
    if value is None or value == "":
        return None
    return to_decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def line_total(quantity, unit_price) -> Decimal:
    """quantity * unit_price."""
    return money(to_decimal(quantity) * to_decimal(unit_price))


def subtotal(line_totals: Iterable) -> Decimal:
    total = Decimal("0.00")
    for value in line_totals:
        total += to_decimal(value)
    return money(total)


def quotation_surcharge(subtotal_amount, quotation_type: str | None, manual_freight=None) -> Decimal:
    """
    Surcharge added on top of the subtotal.

    - local quotations: 18% GST derived from the subtotal
    - foreign/import quotations: the caller-supplied freight amount, never derived
    """
    if (quotation_type or LOCAL_QUOTATION) == LOCAL_QUOTATION:
        return money(money(subtotal_amount) * GST_RATE)
    return money(manual_freight)


def gst(subtotal_amount) -> Decimal:
    """Fixed 18% GST (invoices)."""
    return money(money(subtotal_amount) * GST_RATE)


def grand_total(subtotal_amount, surcharge) -> Decimal:
    return money(money(subtotal_amount) + money(surcharge))


def supplier_unit_price(supplier_price, profit_factor, exchange_rate) -> Decimal | None:
    """
    Internal costing figure: supplier_price * profit_factor * exchange_rate.

    Returns None when any factor is missing so an unpriced line stays unpriced.
    """
    if supplier_price in (None, "") or profit_factor in (None, "") or exchange_rate in (None, ""):
        return None
    return money(to_decimal(supplier_price) * to_decimal(profit_factor) * to_decimal(exchange_rate))


def purchase_order_total(total_price, freight_charges) -> Decimal:
    """PO grand total: freight is always manual, no percentage rule."""
    return money(money(total_price) + money(freight_charges))
