"""
salesflow/documents.py

Quotation, purchase order and invoice lifecycle (create / update / delete / read).

Shared rules:
- Items are replaced wholesale on update, serial numbers follow input order.
- Totals are recomputed server-side from the item rows:
    quotation: 18% GST for local, manual freight otherwise
    purchase order: total_price + manual freight_charges
    invoice: fixed 18% GST
- Linkage fields (query_id, quotation_id, purchase_order_id) must point to
  existing documents. A quotation may only originate from an active query.
  When only a quotation is given, the query reference is inherited from it.
  Updates keep stored links unless the payload names the link key.
- Deletion is hard. References held by other documents are nulled in the
  same transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Type

from .audit import record
from .errors import ValidationError
from .extensions import db
from .models import (
    Invoice,
    InvoiceItem,
    PurchaseOrder,
    PurchaseOrderItem,
    Query,
    Quotation,
    QuotationItem,
    QUOTATION_TYPES,
    utcnow,
)
from .security import Actor, Capability, require
from .store import load, replace_items, transaction
from .utils import parse_choice, parse_date, parse_decimal, parse_int, parse_item_fields, parse_item_list, parse_text

PART_FIELDS = {
    "manufacturer_number": "text",
    "stockist_number": "text",
    "coo": "text",
    "brand": "text",
    "description": "text",
    "au": "text",
    "quantity": "int",
    "unit_price": "decimal",
}


@dataclass(frozen=True)
class DocumentKind:
    """How one document type is parsed, linked, labelled and guarded."""

    key: str
    label: str
    model: Type
    item_model: Type
    capability: str
    fields: Mapping[str, str]
    item_fields: Mapping[str, str]
    links: tuple[str, ...]
    order_by: Callable


QUOTATION = DocumentKind(
    key="quotation",
    label="Quotation",
    model=Quotation,
    item_model=QuotationItem,
    capability=Capability.QUOTATIONS,
    fields={
        "quotation_number": "text",
        "date": "date",
        "to_client": "text",
        "currency": "text",
        "attachment": "text",
    },
    item_fields={
        **PART_FIELDS,
        "supplier_price": "decimal",
        "profit_factor": "decimal",
        "exchange_rate": "decimal",
        "supplier_up": "decimal",
    },
    links=("query_id",),
    order_by=lambda: (Quotation.created_at.desc(), Quotation.id.desc()),
)

PURCHASE_ORDER = DocumentKind(
    key="purchase_order",
    label="Purchase Order",
    model=PurchaseOrder,
    item_model=PurchaseOrderItem,
    capability=Capability.PURCHASE_ORDERS,
    fields={
        "po_number": "text",
        "date": "date",
        "supplier_name": "text",
        "supplier_address": "text",
        "po_currency": "text",
    },
    item_fields={
        **PART_FIELDS,
        "delivery_time": "text",
        "remarks": "text",
    },
    links=("query_id", "quotation_id"),
    order_by=lambda: (PurchaseOrder.date.desc(), PurchaseOrder.id.desc()),
)

INVOICE = DocumentKind(
    key="invoice",
    label="Invoice",
    model=Invoice,
    item_model=InvoiceItem,
    capability=Capability.INVOICES,
    fields={
        "ref_no": "text",
        "ar_no": "text",
        "date": "date",
        "invoice_number": "text",
        "to_client": "text",
    },
    item_fields={
        **PART_FIELDS,
        "supplier_up": "decimal",
        "profit_factor": "decimal",
        "exchange_rate": "decimal",
        "calculated_price": "decimal",
    },
    links=("query_id", "quotation_id", "purchase_order_id"),
    order_by=lambda: (Invoice.created_at.desc(), Invoice.id.desc()),
)

KINDS = {kind.key: kind for kind in (QUOTATION, PURCHASE_ORDER, INVOICE)}

DEFAULT_CURRENCY = {"quotation": ("currency", "USD"), "purchase_order": ("po_currency", "INR")}


def get_kind(key: str) -> DocumentKind:
    try:
        return KINDS[key]
    except KeyError:
        raise ValueError(f"Unknown document kind: {key}") from None


# ---------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------
def _parse_fields(kind: DocumentKind, fields: Mapping[str, Any]) -> dict:
    parsed = {}
    for name, kind_of in kind.fields.items():
        value = fields.get(name)
        parsed[name] = parse_date(value, name) if kind_of == "date" else parse_text(value)

    if kind.key in DEFAULT_CURRENCY:
        name, default = DEFAULT_CURRENCY[kind.key]
        parsed[name] = (parsed[name] or default).upper()

    if kind is QUOTATION:
        parsed["quotation_type"] = parse_choice(fields.get("quotation_type"), "quotation_type", QUOTATION_TYPES, default="local")
    return parsed


def _parse_manual_amount(kind: DocumentKind, fields: Mapping[str, Any]):
    """Manual surcharge: quotation freight (non-local only) or PO freight charges."""
    if kind is QUOTATION:
        raw = fields.get("freight_amount", fields.get("gst_amount"))
        amount = parse_decimal(raw, "freight_amount")
    elif kind is PURCHASE_ORDER:
        amount = parse_decimal(fields.get("freight_charges"), "freight_charges")
    else:
        return None
    if amount is not None and amount < 0:
        raise ValidationError("Freight must not be negative", field="freight_amount")
    return amount


def _build_items(kind: DocumentKind, raw_items: Any) -> list:
    entries = parse_item_list(raw_items)
    return [
        kind.item_model(serial_number=position, **parse_item_fields(entry, kind.item_fields, position))
        for position, entry in enumerate(entries, start=1)
    ]


def _resolve_links(kind: DocumentKind, fields: Mapping[str, Any], document=None) -> dict:
    """
    Validate linkage ids; inherit query (and quotation) references from parents.

    On update a link key absent from fields keeps its stored value; an explicit
    null clears it. A deleted query may only be linked if it already was.
    """
    links: dict = {name: getattr(document, name, None) for name in kind.links}
    current_query_id = links.get("query_id")
    ids = {name: parse_int(fields.get(name), name) for name in kind.links if name in fields}

    if "purchase_order_id" in ids:
        links["purchase_order_id"] = None
        if ids["purchase_order_id"] is not None:
            po = db.session.get(PurchaseOrder, ids["purchase_order_id"])
            if po is None:
                raise ValidationError(f"Purchase order {ids['purchase_order_id']} does not exist", field="purchase_order_id")
            links["purchase_order_id"] = po.id
            links["quotation_id"] = po.quotation_id
            links["query_id"] = po.query_id

    if "quotation_id" in ids:
        if ids["quotation_id"] is None:
            links["quotation_id"] = None
        else:
            quotation = db.session.get(Quotation, ids["quotation_id"])
            if quotation is None:
                raise ValidationError(f"Quotation {ids['quotation_id']} does not exist", field="quotation_id")
            links["quotation_id"] = quotation.id
            links["query_id"] = quotation.query_id

    if "query_id" in ids:
        if ids["query_id"] is None:
            links["query_id"] = None
        else:
            query = db.session.get(Query, ids["query_id"])
            if query is None:
                raise ValidationError(f"Query {ids['query_id']} does not exist", field="query_id")
            if kind is QUOTATION and query.is_deleted and query.id != current_query_id:
                raise ValidationError(f"Query {query.id} is deleted", field="query_id")
            links["query_id"] = query.id

    return links


def _recalc(kind: DocumentKind, document, manual_amount) -> None:
    if kind is QUOTATION:
        document.recalc_totals(manual_freight=manual_amount)
    elif kind is PURCHASE_ORDER:
        document.freight_charges = manual_amount if manual_amount is not None else 0
        document.recalc_totals()
    else:
        document.recalc_totals()


def _name(kind: DocumentKind, document_id: int) -> str:
    return f"{kind.label} {document_id}"


# ---------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------
def list_documents(actor: Actor, kind_key: str) -> list[dict]:
    kind = get_kind(kind_key)
    require(actor, kind.capability)

    rows = kind.model.query.order_by(*kind.order_by()).all()
    result = []
    for row in rows:
        data = row.to_dict(with_items=False)
        if kind is QUOTATION:
            origin = row.origin_query
            data["client_name"] = origin.client_name if origin else None
            data["nsets_case_number"] = origin.nsets_case_number if origin else None
        result.append(data)
    return result


def get_document(actor: Actor, kind_key: str, document_id):
    kind = get_kind(kind_key)
    require(actor, kind.capability)
    return load(kind.model, document_id, entity_type=kind.label)


# ---------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------
def create_document(actor: Actor, kind_key: str, fields: Mapping[str, Any], items: Any = None) -> int:
    kind = get_kind(kind_key)
    require(actor, kind.capability)

    scalar = _parse_fields(kind, fields)
    manual_amount = _parse_manual_amount(kind, fields)
    item_rows = _build_items(kind, items if items is not None else [])

    with transaction():
        links = _resolve_links(kind, fields)
        document = kind.model(**scalar, **links)
        document.items = item_rows
        _recalc(kind, document, manual_amount)
        db.session.add(document)
        db.session.flush()
        document_id = document.id

    record(
        actor,
        "create",
        kind.key,
        document_id,
        _name(kind, document_id),
        scalar.get("attachment"),
        f"{kind.label} created",
    )
    return document_id


def update_document(actor: Actor, kind_key: str, document_id, fields: Mapping[str, Any], items: Any = None):
    """Full replace of scalar fields and (when given) the whole item list; totals recomputed."""
    kind = get_kind(kind_key)
    require(actor, kind.capability)

    scalar = _parse_fields(kind, fields)
    manual_amount = _parse_manual_amount(kind, fields)
    item_rows = _build_items(kind, items) if items is not None else None

    with transaction():
        document = load(kind.model, document_id, entity_type=kind.label, lock=True)
        links = _resolve_links(kind, fields, document)

        for name, value in {**scalar, **links}.items():
            setattr(document, name, value)
        document.updated_at = utcnow()

        if item_rows is not None:
            replace_items(document.items, item_rows)
        _recalc(kind, document, manual_amount)

    record(
        actor,
        "update",
        kind.key,
        document.id,
        _name(kind, document.id),
        scalar.get("attachment"),
        f"{kind.label} updated",
    )
    return document


def delete_document(actor: Actor, kind_key: str, document_id) -> None:
    kind = get_kind(kind_key)
    require(actor, kind.capability)

    with transaction():
        document = load(kind.model, document_id, entity_type=kind.label, lock=True)
        key = document.id

        if kind is QUOTATION:
            PurchaseOrder.query.filter_by(quotation_id=key).update({"quotation_id": None}, synchronize_session=False)
            Invoice.query.filter_by(quotation_id=key).update({"quotation_id": None}, synchronize_session=False)
        elif kind is PURCHASE_ORDER:
            Invoice.query.filter_by(purchase_order_id=key).update({"purchase_order_id": None}, synchronize_session=False)

        db.session.delete(document)

    record(actor, "delete", kind.key, key, _name(kind, key), None, f"{kind.label} deleted")

