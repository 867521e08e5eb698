"""
Purchase order routes (JSON API).

Provides:
- GET    /api/purchase-orders
- GET    /api/purchase-orders/<id>
- POST   /api/purchase-orders
- PUT    /api/purchase-orders/<id>
- DELETE /api/purchase-orders/<id>
- GET    /api/purchase-orders/<id>/related
- GET    /api/purchase-orders/<id>/excel

grand_total is always total_price + freight_charges, computed server-side.
"""

from flask import Blueprint, jsonify
from flask_login import login_required

from ...documents import create_document, delete_document, get_document, list_documents, update_document
from ...exports import export_document
from ...http import items_from, payload, send_export
from ...linkage import related_documents
from ...security import current_actor

purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")

KIND = "purchase_order"


@purchase_orders_bp.route("", methods=["GET"])
@login_required
def list_purchase_orders():
    return jsonify(list_documents(current_actor(), KIND))


@purchase_orders_bp.route("/<int:po_id>", methods=["GET"])
@login_required
def get_purchase_order(po_id: int):
    return jsonify(get_document(current_actor(), KIND, po_id).to_dict())


@purchase_orders_bp.route("", methods=["POST"])
@login_required
def create_purchase_order():
    data = payload()
    po_id = create_document(current_actor(), KIND, data, items_from(data))
    return jsonify({"id": po_id, "message": "Purchase order created successfully"}), 201


@purchase_orders_bp.route("/<int:po_id>", methods=["PUT"])
@login_required
def update_purchase_order(po_id: int):
    data = payload()
    po = update_document(current_actor(), KIND, po_id, data, items_from(data))
    return jsonify({"id": po.id, "message": "Purchase order updated successfully"})


@purchase_orders_bp.route("/<int:po_id>", methods=["DELETE"])
@login_required
def delete_purchase_order(po_id: int):
    delete_document(current_actor(), KIND, po_id)
    return jsonify({"message": "Purchase order deleted successfully"})


@purchase_orders_bp.route("/<int:po_id>/related", methods=["GET"])
@login_required
def related(po_id: int):
    return jsonify(related_documents(current_actor(), KIND, po_id))


@purchase_orders_bp.route("/<int:po_id>/excel", methods=["GET"])
@login_required
def excel(po_id: int):
    return send_export(export_document(current_actor(), KIND, po_id))
