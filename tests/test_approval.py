"""Quotation -> invoice approval."""

from datetime import date
from decimal import Decimal

import pytest

from salesflow import lifecycle
from salesflow.approval import approve_quotation_to_invoice
from salesflow.documents import create_document, get_document, update_document
from salesflow.errors import Forbidden, NotFound, ValidationError
from salesflow.linkage import related_documents
from salesflow.models import ActivityLog, Invoice
from salesflow.security import Actor, Permissions

ITEMS = [
    {
        "description": "Valve",
        "quantity": 3,
        "unit_price": "100",
        "supplier_price": "60",
        "profit_factor": "1.25",
        "exchange_rate": "1.0",
    }
]


@pytest.fixture
def quotation_id(admin):
    query_id = lifecycle.create_query(admin, {"client_name": "Acme"}, [])
    return create_document(
        admin,
        "quotation",
        {"quotation_number": "Q-77", "to_client": "Acme", "query_id": query_id},
        ITEMS,
    )


def test_round_trip_copies_header_items_and_totals(admin, quotation_id):
    quotation = get_document(admin, "quotation", quotation_id)
    invoice = get_document(admin, "invoice", approve_quotation_to_invoice(admin, quotation_id))

    assert invoice.ref_no == "Q-77"
    assert invoice.to_client == "Acme"
    assert invoice.date == date.today()
    assert invoice.quotation_id == quotation_id
    assert invoice.query_id == quotation.query_id

    assert invoice.total_without_gst == Decimal("300.00")
    assert invoice.gst_amount == Decimal("54.00")
    assert invoice.grand_total == Decimal("354.00")

    assert len(invoice.items) == 1
    line = invoice.items[0]
    assert line.serial_number == 1
    assert line.unit_price == Decimal("100.00")
    assert line.total_price == Decimal("300.00")
    assert line.supplier_up == Decimal("60.00")
    assert line.profit_factor == Decimal("1.25")
    assert line.exchange_rate == Decimal("1.0")
    assert line.calculated_price == Decimal("75.00")


def test_totals_are_copied_verbatim_for_freight_quotations(admin):
    quotation_id = create_document(
        admin,
        "quotation",
        {"quotation_number": "Q-F", "quotation_type": "foreign", "freight_amount": "40"},
        ITEMS,
    )
    invoice = get_document(admin, "invoice", approve_quotation_to_invoice(admin, quotation_id))
    assert invoice.gst_amount == Decimal("40.00")
    assert invoice.grand_total == Decimal("340.00")


def test_later_quotation_edits_do_not_touch_invoice(admin, quotation_id):
    invoice_id = approve_quotation_to_invoice(admin, quotation_id)
    update_document(admin, "quotation", quotation_id, {"quotation_number": "Q-78"}, [])

    invoice = get_document(admin, "invoice", invoice_id)
    assert invoice.ref_no == "Q-77"
    assert len(invoice.items) == 1


def test_approval_is_logged_as_invoice_creation(admin, quotation_id):
    invoice_id = approve_quotation_to_invoice(admin, quotation_id)
    entry = ActivityLog.query.filter_by(action="create", entity_type="invoice").one()
    assert entry.entity_type == "invoice"
    assert entry.entity_id == invoice_id
    assert "Q-77" in entry.details


def test_duplicate_approvals_allowed_by_default(admin, quotation_id):
    approve_quotation_to_invoice(admin, quotation_id)
    approve_quotation_to_invoice(admin, quotation_id)
    assert Invoice.query.filter_by(quotation_id=quotation_id).count() == 2


def test_duplicate_approval_can_be_refused(app, admin, quotation_id):
    app.config["APPROVAL_ALLOW_DUPLICATES"] = False
    approve_quotation_to_invoice(admin, quotation_id)

    with pytest.raises(ValidationError):
        approve_quotation_to_invoice(admin, quotation_id)
    assert Invoice.query.count() == 1


def test_unknown_quotation(admin):
    with pytest.raises(NotFound):
        approve_quotation_to_invoice(admin, 999)


def test_requires_quotations_and_invoices(quotation_id):
    quotations_only = Actor(user_id=None, username="q", permissions=Permissions(quotations=True))
    with pytest.raises(Forbidden):
        approve_quotation_to_invoice(quotations_only, quotation_id)
    assert Invoice.query.count() == 0


def test_edited_invoice_keeps_its_provenance(admin, quotation_id):
    invoice_id = approve_quotation_to_invoice(admin, quotation_id)

    update_document(admin, "invoice", invoice_id, {"invoice_number": "INV-9"})

    invoice = get_document(admin, "invoice", invoice_id)
    assert invoice.invoice_number == "INV-9"
    assert invoice.quotation_id == quotation_id
    related = related_documents(admin, "quotation", quotation_id)
    assert [row["id"] for row in related["invoices"]] == [invoice_id]
