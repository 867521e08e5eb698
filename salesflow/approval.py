"""
salesflow/approval.py

Quotation -> Invoice approval.

The new invoice is a copy of the quotation at the moment of approval:
- header: to_client, totals verbatim (no recomputation), ref_no is the
  quotation number, date is today, query/quotation provenance set
- items: copied 1:1 in serial order; the costing columns are renamed on the
  way (supplier_price -> supplier_up, supplier_up -> calculated_price)

Later edits to the quotation do not touch invoices already approved from it.
"""

from __future__ import annotations

import logging
from datetime import date

from flask import current_app

from .audit import record
from .errors import ValidationError
from .extensions import db
from .models import Invoice, InvoiceItem, Quotation
from .security import Actor, Capability, require
from .store import load, transaction

logger = logging.getLogger(__name__)

COPIED_ITEM_FIELDS = (
    "serial_number",
    "manufacturer_number",
    "stockist_number",
    "coo",
    "brand",
    "description",
    "au",
    "quantity",
    "unit_price",
    "total_price",
    "profit_factor",
    "exchange_rate",
)


def _invoice_item_from(line) -> InvoiceItem:
    item = InvoiceItem(**{name: getattr(line, name) for name in COPIED_ITEM_FIELDS})
    item.supplier_up = line.supplier_price
    item.calculated_price = line.supplier_up
    return item


def approve_quotation_to_invoice(actor: Actor, quotation_id) -> int:
    """Create an invoice from a quotation and return the new invoice id."""
    require(actor, Capability.QUOTATIONS, Capability.INVOICES)

    with transaction():
        quotation = load(Quotation, quotation_id, lock=True)

        if not current_app.config.get("APPROVAL_ALLOW_DUPLICATES", True):
            existing = Invoice.query.filter_by(quotation_id=quotation.id).first()
            if existing is not None:
                raise ValidationError(
                    f"Quotation {quotation.id} was already approved as invoice {existing.id}",
                    field="quotation_id",
                )

        invoice = Invoice(
            ref_no=quotation.quotation_number,
            date=date.today(),
            to_client=quotation.to_client,
            query_id=quotation.query_id,
            quotation_id=quotation.id,
            total_without_gst=quotation.total_without_gst,
            gst_amount=quotation.gst_amount,
            grand_total=quotation.grand_total,
        )
        invoice.items = [_invoice_item_from(line) for line in quotation.items]
        db.session.add(invoice)
        db.session.flush()

        invoice_id = invoice.id
        quotation_number = quotation.quotation_number

    logger.info("Quotation %s approved as invoice %s by %s", quotation_id, invoice_id, actor.username)
    record(
        actor,
        "create",
        "invoice",
        invoice_id,
        f"Invoice {invoice_id}",
        None,
        f"Approved from quotation {quotation_number or quotation_id}",
    )
    return invoice_id
