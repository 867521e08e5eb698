"""
Invoice routes (JSON API).

Provides:
- GET    /api/invoices
- GET    /api/invoices/<id>
- POST   /api/invoices
- PUT    /api/invoices/<id>
- DELETE /api/invoices/<id>
- GET    /api/invoices/<id>/related
- GET    /api/invoices/<id>/excel

Invoices created by quotation approval go through /api/quotations/<id>/approve.
"""

from flask import Blueprint, jsonify
from flask_login import login_required

from ...documents import create_document, delete_document, get_document, list_documents, update_document
from ...exports import export_document
from ...http import items_from, payload, send_export
from ...linkage import related_documents
from ...security import current_actor

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")

KIND = "invoice"


@invoices_bp.route("", methods=["GET"])
@login_required
def list_invoices():
    return jsonify(list_documents(current_actor(), KIND))


@invoices_bp.route("/<int:invoice_id>", methods=["GET"])
@login_required
def get_invoice(invoice_id: int):
    return jsonify(get_document(current_actor(), KIND, invoice_id).to_dict())


@invoices_bp.route("", methods=["POST"])
@login_required
def create_invoice():
    data = payload()
    invoice_id = create_document(current_actor(), KIND, data, items_from(data))
    return jsonify({"id": invoice_id, "message": "Invoice created successfully"}), 201


@invoices_bp.route("/<int:invoice_id>", methods=["PUT"])
@login_required
def update_invoice(invoice_id: int):
    data = payload()
    invoice = update_document(current_actor(), KIND, invoice_id, data, items_from(data))
    return jsonify({"id": invoice.id, "message": "Invoice updated successfully"})


@invoices_bp.route("/<int:invoice_id>", methods=["DELETE"])
@login_required
def delete_invoice(invoice_id: int):
    delete_document(current_actor(), KIND, invoice_id)
    return jsonify({"message": "Invoice deleted successfully"})


@invoices_bp.route("/<int:invoice_id>/related", methods=["GET"])
@login_required
def related(invoice_id: int):
    return jsonify(related_documents(current_actor(), KIND, invoice_id))


@invoices_bp.route("/<int:invoice_id>/excel", methods=["GET"])
@login_required
def excel(invoice_id: int):
    return send_export(export_document(current_actor(), KIND, invoice_id))
