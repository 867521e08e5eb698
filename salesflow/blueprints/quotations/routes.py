"""
Quotation routes (JSON API).

Provides:
- GET    /api/quotations
- GET    /api/quotations/<id>
- POST   /api/quotations
- PUT    /api/quotations/<id>
- DELETE /api/quotations/<id>          (hard delete)
- POST   /api/quotations/<id>/approve  (creates an invoice)
- GET    /api/quotations/<id>/related
- GET    /api/quotations/<id>/excel

Totals in the payload are ignored except the manual freight amount of
foreign/import quotations ('freight_amount', or 'gst_amount' as the legacy
front end sends it).
"""

from flask import Blueprint, jsonify
from flask_login import login_required

from ...approval import approve_quotation_to_invoice
from ...documents import create_document, delete_document, get_document, list_documents, update_document
from ...exports import export_document
from ...http import items_from, payload, send_export
from ...linkage import related_documents
from ...security import current_actor

quotations_bp = Blueprint("quotations", __name__, url_prefix="/api/quotations")

KIND = "quotation"


@quotations_bp.route("", methods=["GET"])
@login_required
def list_quotations():
    return jsonify(list_documents(current_actor(), KIND))


@quotations_bp.route("/<int:quotation_id>", methods=["GET"])
@login_required
def get_quotation(quotation_id: int):
    return jsonify(get_document(current_actor(), KIND, quotation_id).to_dict())


@quotations_bp.route("", methods=["POST"])
@login_required
def create_quotation():
    data = payload()
    quotation_id = create_document(current_actor(), KIND, data, items_from(data))
    return jsonify({"id": quotation_id, "message": "Quotation created successfully"}), 201


@quotations_bp.route("/<int:quotation_id>", methods=["PUT"])
@login_required
def update_quotation(quotation_id: int):
    data = payload()
    quotation = update_document(current_actor(), KIND, quotation_id, data, items_from(data))
    return jsonify({"id": quotation.id, "message": "Quotation updated successfully"})


@quotations_bp.route("/<int:quotation_id>", methods=["DELETE"])
@login_required
def delete_quotation(quotation_id: int):
    delete_document(current_actor(), KIND, quotation_id)
    return jsonify({"message": "Quotation deleted successfully"})


@quotations_bp.route("/<int:quotation_id>/approve", methods=["POST"])
@login_required
def approve(quotation_id: int):
    invoice_id = approve_quotation_to_invoice(current_actor(), quotation_id)
    return jsonify({"invoice_id": invoice_id, "message": "Quotation approved and invoice created"}), 201


@quotations_bp.route("/<int:quotation_id>/related", methods=["GET"])
@login_required
def related(quotation_id: int):
    return jsonify(related_documents(current_actor(), KIND, quotation_id))


@quotations_bp.route("/<int:quotation_id>/excel", methods=["GET"])
@login_required
def excel(quotation_id: int):
    return send_export(export_document(current_actor(), KIND, quotation_id))
