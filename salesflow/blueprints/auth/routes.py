"""
Authentication routes.

Provides:
- POST /api/login       (session login, returns user + CSRF token)
- POST /api/logout
- GET  /api/auth/check  (current session, refreshed CSRF token)

Rules:
- Only active users may log in.
- Credentials are validated via the Werkzeug password hash.
- Login is exempt from CSRF (there is no token before the first request);
  every other mutating request must send X-CSRFToken.
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from ...errors import Unauthenticated, ValidationError
from ...extensions import csrf
from ...models import User
from ...security import Permissions

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api")


def _session_payload(user: User) -> dict:
    data = user.to_dict()
    data["permissions"] = Permissions.all().to_dict() if user.is_admin else Permissions.from_mapping(user.permissions).to_dict()
    return {"user": data, "csrf_token": generate_csrf()}


@auth_bp.route("/login", methods=["POST"])
@csrf.exempt
def login():
    data = request.get_json(silent=True) or request.form.to_dict()
    username = str(data.get("username", "")).strip()
    password = str(data.get("password", ""))

    if not username or not password:
        raise ValidationError("Username and password are required")

    user = User.query.filter_by(username=username).first()
    if not user or not user.check_password(password):
        logger.info("Failed login for '%s'", username)
        raise Unauthenticated("Invalid username or password")

    if not user.is_active:
        raise Unauthenticated("Account is deactivated")

    login_user(user)
    return jsonify(_session_payload(user))


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/auth/check")
def check():
    """Session probe used by the front end on page load."""
    if not current_user.is_authenticated:
        return jsonify({"authenticated": False}), 401
    return jsonify({"authenticated": True, **_session_payload(current_user)})
