"""
salesflow/exports.py

Excel export of a single document.

Only "active" item columns are written: a column is active when at least one
item row has a populated value for it. Purchase orders additionally treat a
zero money value as empty.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

from flask import current_app
from openpyxl import Workbook
from openpyxl.styles import Font

from .audit import record
from .linkage import KIND_MODELS
from .security import Actor, require
from .store import load


@dataclass(frozen=True)
class Column:
    key: str
    header: str
    width: int
    money: bool = False


_PART_COLUMNS = (
    Column("serial_number", "Serial#", 10),
    Column("manufacturer_number", "Manufacturer#", 15),
    Column("stockist_number", "Stockist#", 15),
    Column("coo", "COO", 12),
    Column("brand", "Brand", 12),
    Column("description", "Description", 30),
    Column("au", "A/U", 10),
    Column("quantity", "Quantity", 10),
)

_PRICE_COLUMNS = (
    Column("unit_price", "U/P", 12, money=True),
    Column("total_price", "T/P", 12, money=True),
)

COLUMNS = {
    "query": _PART_COLUMNS + (Column("remarks", "Remarks", 20),),
    "quotation": _PART_COLUMNS
    + _PRICE_COLUMNS
    + (
        Column("supplier_price", "Supplier Price", 15, money=True),
        Column("profit_factor", "Profit Factor", 15),
        Column("exchange_rate", "Exchange Rate", 15),
        Column("supplier_up", "Supplier U/P", 15, money=True),
    ),
    "purchase_order": (Column("serial_number", "Sr No.", 10),)
    + _PART_COLUMNS[1:]
    + _PRICE_COLUMNS
    + (
        Column("delivery_time", "Delivery Time", 15),
        Column("remarks", "Remarks", 20),
    ),
    "invoice": _PART_COLUMNS
    + _PRICE_COLUMNS
    + (
        Column("supplier_up", "Supplier U/P", 15, money=True),
        Column("profit_factor", "Profit Factor", 15),
        Column("exchange_rate", "Exchange Rate", 15),
        Column("calculated_price", "Calculated Price", 15, money=True),
    ),
}

HEADER_FIELDS = {
    "query": (
        ("NSETS Case Number:", "nsets_case_number"),
        ("Enquiry Date:", "enquiry_date"),
        ("Last Date of Submission:", "last_submission_excel_date"),
    ),
    "quotation": (
        ("Quotation Number:", "quotation_number"),
        ("Date:", "date"),
        ("To:", "to_client"),
        ("Currency:", "currency"),
    ),
    "purchase_order": (
        ("PO Number:", "po_number"),
        ("Date:", "date"),
        ("Currency:", "po_currency"),
        ("Supplier Name:", "supplier_name"),
        ("Supplier Address:", "supplier_address"),
    ),
    "invoice": (
        ("Invoice Number:", "invoice_number"),
        ("Ref No:", "ref_no"),
        ("AR No:", "ar_no"),
        ("Date:", "date"),
        ("To:", "to_client"),
    ),
}

TOTAL_FIELDS = {
    "query": (),
    "quotation": (
        ("Total without GST:", "total_without_gst"),
        ("GST Amount:", "gst_amount"),
        ("Grand Total:", "grand_total"),
    ),
    "purchase_order": (
        ("Total Price:", "total_price"),
        ("Freight Charges:", "freight_charges"),
        ("Grand Total:", "grand_total"),
    ),
    "invoice": (
        ("Total without GST:", "total_without_gst"),
        ("GST Amount:", "gst_amount"),
        ("Grand Total:", "grand_total"),
    ),
}

TITLES = {
    "query": "Query Datasheet",
    "quotation": "Quotation",
    "purchase_order": "Purchase Order",
    "invoice": "Invoice",
}

CATEGORIES = {
    "query": "queries",
    "quotation": "quotations",
    "purchase_order": "purchase_orders",
    "invoice": "invoices",
}


def _is_empty(kind: str, column: Column, value) -> bool:
    if value is None or value == "":
        return True
    if kind == "purchase_order" and column.money:
        return Decimal(str(value)) == 0
    return False


def document_snapshot(kind: str, document) -> dict:
    """Plain view of a document for export: header, items, active columns, totals."""
    columns = COLUMNS[kind]
    items = list(document.items)
    active = [
        column
        for column in columns
        if any(not _is_empty(kind, column, getattr(item, column.key)) for item in items)
    ]
    return {
        "kind": kind,
        "id": document.id,
        "title": TITLES[kind],
        "header": [(label, getattr(document, attr)) for label, attr in HEADER_FIELDS[kind]],
        "active_columns": [column.key for column in active],
        "columns": active,
        "rows": [[getattr(item, column.key) for column in active] for item in items],
        "totals": [(label, getattr(document, attr)) for label, attr in TOTAL_FIELDS[kind]],
    }


def write_workbook(snapshot: dict, filepath: str | Path) -> Path:
    """Write a snapshot to an .xlsx file. Returns the path written."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = snapshot["title"][:31]

    if snapshot["kind"] != "query":
        ws.append([snapshot["title"].upper()])
    for label, value in snapshot["header"]:
        ws.append([label, value])
    ws.append([])

    ws.append([column.header for column in snapshot["columns"]])
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True)

    for row in snapshot["rows"]:
        ws.append(["" if value is None else value for value in row])

    if snapshot["totals"]:
        ws.append([])
        for label, value in snapshot["totals"]:
            ws.append(["", "", "", "", "", "", label, value])

    for index, column in enumerate(snapshot["columns"], start=1):
        ws.column_dimensions[ws.cell(row=1, column=index).column_letter].width = column.width

    wb.save(filepath)
    return filepath


def export_document(actor: Actor, kind: str, document_id, attachment_store=None) -> Path:
    """Export one document to the uploads folder and log an 'export' activity."""
    if kind not in KIND_MODELS:
        raise ValueError(f"Unknown document kind: {kind}")
    model, capability = KIND_MODELS[kind]
    require(actor, capability)

    document = load(model, document_id)
    snapshot = document_snapshot(kind, document)

    store = attachment_store if attachment_store is not None else current_app.extensions["salesflow.attachments"]
    filename = f"{kind}_{document.id}_{int(time.time() * 1000)}.xlsx"
    filepath = write_workbook(snapshot, store.directory(CATEGORIES[kind]) / filename)

    label = TITLES[kind] if kind != "query" else "Query"
    record(actor, "export", kind, document.id, f"{label} {document.id}", store.web_path(filepath), "Excel export")
    return filepath
