"""
Query routes (JSON API).

Provides:
- GET    /api/queries                  ?status=pending|submitted  ?deleted=true
- GET    /api/queries/for-quotation    (quotation form dropdown)
- GET    /api/queries/<id>
- POST   /api/queries                  (JSON, or multipart with 'attachment')
- PUT    /api/queries/<id>
- DELETE /api/queries/<id>             (soft delete)
- PUT    /api/queries/<id>/status      (supplier_attachment_<i> files allowed)
- GET    /api/queries/<id>/related
- GET    /api/queries/<id>/excel

Every route resolves the session into an Actor; capability checks happen in
the lifecycle functions.
"""

from flask import Blueprint, jsonify, request
from flask_login import login_required

from ... import lifecycle
from ...exports import export_document
from ...http import indexed_uploads, items_from, payload, query_flag, send_export, uploaded
from ...linkage import related_documents
from ...security import current_actor

queries_bp = Blueprint("queries", __name__, url_prefix="/api/queries")


@queries_bp.route("", methods=["GET"])
@login_required
def list_queries():
    rows = lifecycle.list_queries(
        current_actor(),
        status=request.args.get("status") or None,
        deleted=query_flag("deleted"),
    )
    return jsonify([row.to_dict(with_items=False) for row in rows])


@queries_bp.route("/for-quotation", methods=["GET"])
@login_required
def for_quotation():
    return jsonify(lifecycle.queries_for_quotation(current_actor()))


@queries_bp.route("/<int:query_id>", methods=["GET"])
@login_required
def get_query(query_id: int):
    return jsonify(lifecycle.get_query(current_actor(), query_id).to_dict())


@queries_bp.route("", methods=["POST"])
@login_required
def create_query():
    data = payload()
    query_id = lifecycle.create_query(
        current_actor(),
        data,
        items_from(data),
        attachment=uploaded("attachment"),
    )
    return jsonify({"id": query_id, "message": "Query created successfully"}), 201


@queries_bp.route("/<int:query_id>", methods=["PUT"])
@login_required
def update_query(query_id: int):
    data = payload()
    query = lifecycle.update_query(
        current_actor(),
        query_id,
        data,
        items_from(data),
        attachment=uploaded("attachment"),
    )
    return jsonify({"id": query.id, "message": "Query updated successfully"})


@queries_bp.route("/<int:query_id>", methods=["DELETE"])
@login_required
def delete_query(query_id: int):
    lifecycle.soft_delete_query(current_actor(), query_id)
    return jsonify({"message": "Query deleted successfully"})


@queries_bp.route("/<int:query_id>/status", methods=["PUT"])
@login_required
def change_status(query_id: int):
    data = payload()
    query = lifecycle.change_status(
        current_actor(),
        query_id,
        data.get("status"),
        supplier_responses=data.get("supplier_responses"),
        files=indexed_uploads("supplier_attachment_"),
    )
    return jsonify({"id": query.id, "status": query.status, "message": "Status updated successfully"})


@queries_bp.route("/<int:query_id>/related", methods=["GET"])
@login_required
def related(query_id: int):
    return jsonify(related_documents(current_actor(), "query", query_id))


@queries_bp.route("/<int:query_id>/excel", methods=["GET"])
@login_required
def excel(query_id: int):
    return send_export(export_document(current_actor(), "query", query_id))
