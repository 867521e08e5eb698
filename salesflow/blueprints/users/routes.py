"""
User management routes (admin only).

Provides:
- GET    /api/users
- GET    /api/users/<id>
- POST   /api/users
- PUT    /api/users/<id>
- PUT    /api/users/<id>/password
- DELETE /api/users/<id>            (deactivates; users are never hard-deleted)
"""

from flask import Blueprint, jsonify
from flask_login import login_required

from ... import accounts
from ...http import payload
from ...security import admin_required, current_actor

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.route("", methods=["GET"])
@login_required
@admin_required
def list_users():
    return jsonify([user.to_dict() for user in accounts.list_users(current_actor())])


@users_bp.route("/<int:user_id>", methods=["GET"])
@login_required
@admin_required
def get_user(user_id: int):
    data = accounts.get_user(current_actor(), user_id).to_dict()
    data["status"] = "active" if data["is_active"] else "inactive"
    return jsonify(data)


@users_bp.route("", methods=["POST"])
@login_required
@admin_required
def create_user():
    user_id = accounts.create_user(current_actor(), payload())
    return jsonify({"id": user_id, "message": "User created successfully"}), 201


@users_bp.route("/<int:user_id>", methods=["PUT"])
@login_required
@admin_required
def update_user(user_id: int):
    accounts.update_user(current_actor(), user_id, payload())
    return jsonify({"message": "User updated successfully"})


@users_bp.route("/<int:user_id>/password", methods=["PUT"])
@login_required
@admin_required
def change_password(user_id: int):
    accounts.change_password(current_actor(), user_id, payload().get("password"))
    return jsonify({"message": "Password updated successfully"})


@users_bp.route("/<int:user_id>", methods=["DELETE"])
@login_required
@admin_required
def deactivate_user(user_id: int):
    accounts.deactivate_user(current_actor(), user_id)
    return jsonify({"message": "User deactivated successfully"})
