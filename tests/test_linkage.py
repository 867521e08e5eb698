"""Related-document resolution over explicit references."""

import pytest

from salesflow import lifecycle
from salesflow.approval import approve_quotation_to_invoice
from salesflow.documents import create_document
from salesflow.errors import Forbidden, NotFound
from salesflow.linkage import related_documents


def _ids(result, key):
    return [row["id"] for row in result[key]]


@pytest.fixture
def deal(admin):
    """query -> quotation -> (purchase order, invoice via approval)."""
    query_id = lifecycle.create_query(admin, {"client_name": "Acme"}, [])
    quotation_id = create_document(admin, "quotation", {"quotation_number": "Q-1", "query_id": query_id}, [])
    po_id = create_document(admin, "purchase_order", {"po_number": "PO-1", "quotation_id": quotation_id}, [])
    invoice_id = approve_quotation_to_invoice(admin, quotation_id)
    return {"query": query_id, "quotation": quotation_id, "purchase_order": po_id, "invoice": invoice_id}


def test_query_sees_whole_deal(admin, deal):
    result = related_documents(admin, "query", deal["query"])
    assert _ids(result, "queries") == []
    assert _ids(result, "quotations") == [deal["quotation"]]
    assert _ids(result, "purchase_orders") == [deal["purchase_order"]]
    assert _ids(result, "invoices") == [deal["invoice"]]


def test_quotation_sees_origin_and_downstream(admin, deal):
    result = related_documents(admin, "quotation", deal["quotation"])
    assert _ids(result, "queries") == [deal["query"]]
    assert _ids(result, "quotations") == []
    assert _ids(result, "purchase_orders") == [deal["purchase_order"]]
    assert _ids(result, "invoices") == [deal["invoice"]]


def test_purchase_order_sees_invoices_sharing_its_quotation(admin, deal):
    result = related_documents(admin, "purchase_order", deal["purchase_order"])
    assert _ids(result, "queries") == [deal["query"]]
    assert _ids(result, "quotations") == [deal["quotation"]]
    assert _ids(result, "invoices") == [deal["invoice"]]


def test_invoice_sees_its_parents(admin, deal):
    invoice_id = create_document(admin, "invoice", {"purchase_order_id": deal["purchase_order"]}, [])
    result = related_documents(admin, "invoice", invoice_id)
    assert _ids(result, "queries") == [deal["query"]]
    assert _ids(result, "quotations") == [deal["quotation"]]
    assert _ids(result, "purchase_orders") == [deal["purchase_order"]]


def test_unlinked_document_has_no_relations(admin):
    po_id = create_document(admin, "purchase_order", {"po_number": "PO-X"}, [])
    result = related_documents(admin, "purchase_order", po_id)
    assert result == {"queries": [], "quotations": [], "purchase_orders": [], "invoices": []}


def test_query_with_free_text_match_only_is_not_related(admin):
    query_id = lifecycle.create_query(admin, {"client_name": "Acme"}, [])
    create_document(admin, "quotation", {"quotation_number": "Q-2", "to_client": "Acme"}, [])
    assert _ids(related_documents(admin, "query", query_id), "quotations") == []


def test_unknown_id(admin):
    with pytest.raises(NotFound):
        related_documents(admin, "invoice", 42)


def test_requires_capability_of_the_document(queries_only, deal):
    with pytest.raises(Forbidden):
        related_documents(queries_only, "quotation", deal["quotation"])
    assert _ids(related_documents(queries_only, "query", deal["query"]), "quotations") == [deal["quotation"]]
