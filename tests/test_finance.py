from decimal import Decimal

from salesflow import finance


def test_line_total_rounds_half_up():
    assert finance.line_total(3, "0.335") == Decimal("1.01")
    assert finance.line_total(None, "5") == Decimal("0.00")


def test_local_quotation_surcharge_is_18_percent():
    assert finance.quotation_surcharge(Decimal("100.00"), "local", Decimal("999")) == Decimal("18.00")
    assert finance.quotation_surcharge("33.33", None) == Decimal("6.00")


def test_non_local_surcharge_is_manual_freight():
    assert finance.quotation_surcharge(Decimal("100.00"), "foreign", "25") == Decimal("25.00")
    assert finance.quotation_surcharge(Decimal("100.00"), "import", None) == Decimal("0.00")


def test_grand_total_and_purchase_order_total():
    assert finance.grand_total("100", "18") == Decimal("118.00")
    assert finance.purchase_order_total("250.50", "49.50") == Decimal("300.00")


def test_supplier_unit_price():
    assert finance.supplier_unit_price("60", "1.25", "1.0") == Decimal("75.00")
    assert finance.supplier_unit_price("10", "1.333", "83.1") == Decimal("1107.72")
    assert finance.supplier_unit_price("10", None, "1") is None


def test_recomputation_is_idempotent():
    sub = finance.subtotal([finance.line_total(3, "19.99"), finance.line_total(1, "0.01")])
    surcharge = finance.quotation_surcharge(sub, "local")
    assert finance.money(sub) == sub
    assert finance.quotation_surcharge(sub, "local") == surcharge
    assert finance.grand_total(sub, surcharge) == finance.grand_total(finance.money(sub), finance.money(surcharge))
