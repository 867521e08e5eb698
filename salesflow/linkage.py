"""
salesflow/linkage.py

Document linkage resolver.

Given one document, answer "which other documents belong to the same deal"
using only the explicit references (query_id, quotation_id,
purchase_order_id). No free-text matching. Read-only.
"""

from __future__ import annotations

from sqlalchemy import or_

from .models import Invoice, PurchaseOrder, Query, Quotation
from .security import Actor, Capability, require
from .store import load

KIND_MODELS = {
    "query": (Query, Capability.QUERIES),
    "quotation": (Quotation, Capability.QUOTATIONS),
    "purchase_order": (PurchaseOrder, Capability.PURCHASE_ORDERS),
    "invoice": (Invoice, Capability.INVOICES),
}


def _summary(document) -> dict:
    if isinstance(document, Query):
        return {
            "id": document.id,
            "client_case_number": document.client_case_number,
            "nsets_case_number": document.nsets_case_number,
            "client_name": document.client_name,
            "status": document.status,
            "deleted": document.is_deleted,
        }
    if isinstance(document, Quotation):
        return {
            "id": document.id,
            "quotation_number": document.quotation_number,
            "date": document.date.isoformat() if document.date else None,
            "quotation_type": document.quotation_type,
            "grand_total": str(document.grand_total),
        }
    if isinstance(document, PurchaseOrder):
        return {
            "id": document.id,
            "po_number": document.po_number,
            "supplier_name": document.supplier_name,
            "grand_total": str(document.grand_total),
        }
    return {
        "id": document.id,
        "invoice_number": document.invoice_number,
        "ref_no": document.ref_no,
        "grand_total": str(document.grand_total),
    }


def _result(queries=(), quotations=(), purchase_orders=(), invoices=()) -> dict:
    def unique(rows):
        seen = {}
        for row in rows:
            if row is not None and row.id not in seen:
                seen[row.id] = row
        return [_summary(row) for row in sorted(seen.values(), key=lambda r: r.id)]

    return {
        "queries": unique(queries),
        "quotations": unique(quotations),
        "purchase_orders": unique(purchase_orders),
        "invoices": unique(invoices),
    }


def _optional(model, key):
    return load(model, key) if key is not None else None


def _for_query(query: Query) -> dict:
    quotations = Quotation.query.filter_by(query_id=query.id).all()
    quotation_ids = [q.id for q in quotations]

    po_filter = PurchaseOrder.query_id == query.id
    inv_filter = Invoice.query_id == query.id
    if quotation_ids:
        po_filter = or_(po_filter, PurchaseOrder.quotation_id.in_(quotation_ids))
        inv_filter = or_(inv_filter, Invoice.quotation_id.in_(quotation_ids))

    return _result(
        quotations=quotations,
        purchase_orders=PurchaseOrder.query.filter(po_filter).all(),
        invoices=Invoice.query.filter(inv_filter).all(),
    )


def _for_quotation(quotation: Quotation) -> dict:
    return _result(
        queries=[quotation.origin_query],
        purchase_orders=PurchaseOrder.query.filter_by(quotation_id=quotation.id).all(),
        invoices=Invoice.query.filter_by(quotation_id=quotation.id).all(),
    )


def _for_purchase_order(po: PurchaseOrder) -> dict:
    quotation = _optional(Quotation, po.quotation_id)
    query_id = po.query_id if po.query_id is not None else (quotation.query_id if quotation else None)

    inv_filter = Invoice.purchase_order_id == po.id
    if po.quotation_id is not None:
        inv_filter = or_(inv_filter, Invoice.quotation_id == po.quotation_id)

    return _result(
        queries=[_optional(Query, query_id)],
        quotations=[quotation],
        invoices=Invoice.query.filter(inv_filter).all(),
    )


def _for_invoice(invoice: Invoice) -> dict:
    quotation = _optional(Quotation, invoice.quotation_id)
    query_id = invoice.query_id if invoice.query_id is not None else (quotation.query_id if quotation else None)
    return _result(
        queries=[_optional(Query, query_id)],
        quotations=[quotation],
        purchase_orders=[_optional(PurchaseOrder, invoice.purchase_order_id)],
    )


RESOLVERS = {
    "query": _for_query,
    "quotation": _for_quotation,
    "purchase_order": _for_purchase_order,
    "invoice": _for_invoice,
}


def related_documents(actor: Actor, kind: str, document_id) -> dict:
    """
    Related documents of one document, grouped by type.

    The document itself is never part of its own result. Unknown ids raise
    NotFound; a document with no links yields four empty lists.
    """
    if kind not in KIND_MODELS:
        raise ValueError(f"Unknown document kind: {kind}")
    model, capability = KIND_MODELS[kind]
    require(actor, capability)

    document = load(model, document_id)
    return RESOLVERS[kind](document)
