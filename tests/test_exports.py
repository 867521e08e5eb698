"""Excel export with active-column filtering."""

from openpyxl import load_workbook

from salesflow import lifecycle
from salesflow.documents import create_document, get_document
from salesflow.exports import document_snapshot, export_document
from salesflow.models import ActivityLog


def test_snapshot_keeps_only_populated_columns(admin):
    query_id = lifecycle.create_query(
        admin,
        {"nsets_case_number": "N-1"},
        [{"description": "Valve", "quantity": 2}, {"description": "Gasket", "brand": "ACME"}],
    )
    snapshot = document_snapshot("query", lifecycle.get_query(admin, query_id))

    assert snapshot["active_columns"] == ["serial_number", "brand", "description", "quantity"]
    assert snapshot["rows"] == [[1, None, "Valve", 2], [2, "ACME", "Gasket", None]]
    assert snapshot["header"][0] == ("NSETS Case Number:", "N-1")


def test_purchase_order_treats_zero_money_as_empty(admin):
    po_id = create_document(admin, "purchase_order", {"po_number": "PO-1"}, [{"description": "Free sample", "quantity": 1}])
    snapshot = document_snapshot("purchase_order", get_document(admin, "purchase_order", po_id))

    assert "unit_price" not in snapshot["active_columns"]
    assert "total_price" not in snapshot["active_columns"]
    assert snapshot["active_columns"] == ["serial_number", "description", "quantity"]


def test_quotation_keeps_zero_money_columns(admin):
    quotation_id = create_document(admin, "quotation", {"quotation_number": "Q-1"}, [{"quantity": 1, "unit_price": "0"}])
    snapshot = document_snapshot("quotation", get_document(admin, "quotation", quotation_id))
    assert "unit_price" in snapshot["active_columns"]


def test_export_writes_workbook_and_logs(admin, sample_items):
    quotation_id = create_document(admin, "quotation", {"quotation_number": "Q-9", "to_client": "Acme"}, sample_items)

    path = export_document(admin, "quotation", quotation_id)

    assert path.exists()
    assert path.parent.name == "quotations"
    sheet = load_workbook(path).active
    values = [cell for row in sheet.iter_rows(values_only=True) for cell in row if cell is not None]
    assert "Q-9" in values
    assert "Manufacturer#" in values
    assert "Grand Total:" in values

    entry = ActivityLog.query.filter_by(action="export").one()
    assert entry.entity_id == quotation_id
    assert entry.file_name == path.name
