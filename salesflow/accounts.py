"""
salesflow/accounts.py

User administration, activity-log browsing and system info (admin capability).

Rules:
- Users are never hard-deleted; "delete" deactivates the account.
- An admin cannot deactivate their own account.
- Stored permissions are normalized to the fixed capability set; unknown keys
  are dropped and missing keys are stored as False.
- Password hashes never leave this module (User.to_dict excludes them).
"""

from __future__ import annotations

import platform
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

from flask import current_app
from sqlalchemy import func

from .audit import record
from .errors import ValidationError
from .extensions import db
from .models import ActivityLog, Invoice, PurchaseOrder, Query, Quotation, ROLES, User, utcnow
from .security import Actor, Capability, Permissions, require
from .store import load, transaction
from .utils import parse_choice, parse_int, parse_text

DEFAULT_PERMISSIONS = {"queries": True}
ACTIVITY_PAGE_LIMIT = 200


def _permissions(raw: Any, default: Mapping[str, Any] | None = None) -> dict:
    if raw is None:
        raw = default or {}
    if not isinstance(raw, Mapping):
        raise ValidationError("permissions must be an object", field="permissions")
    return Permissions.from_mapping(raw).to_dict()


def _bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in {"true", "false", "1", "0"}:
        return value.strip().lower() in {"true", "1"}
    raise ValidationError(f"{field} must be true or false", field=field)


def list_users(actor: Actor) -> list[User]:
    require(actor, Capability.ADMIN)
    return User.query.order_by(User.created_at.desc(), User.id.desc()).all()


def get_user(actor: Actor, user_id) -> User:
    require(actor, Capability.ADMIN)
    return load(User, user_id)


def create_user(actor: Actor, fields: Mapping[str, Any]) -> int:
    require(actor, Capability.ADMIN)

    username = parse_text(fields.get("username"))
    password = fields.get("password") or ""
    if not username or not password:
        raise ValidationError("Username and password required")

    with transaction():
        if User.query.filter(func.lower(User.username) == username.lower()).first():
            raise ValidationError("Username already exists", field="username")

        user = User(
            username=username,
            email=parse_text(fields.get("email")),
            full_name=parse_text(fields.get("full_name")),
            role=parse_choice(fields.get("role"), "role", ROLES, default="user"),
            permissions=_permissions(fields.get("permissions"), DEFAULT_PERMISSIONS),
            is_active=True,
        )
        user.set_password(password)
        db.session.add(user)
        db.session.flush()
        user_id = user.id

    record(actor, "create", "user", user_id, username, None, "User created")
    return user_id


def update_user(actor: Actor, user_id, fields: Mapping[str, Any]) -> User:
    """Profile, role, permissions and active flag. Omitted keys keep their value."""
    require(actor, Capability.ADMIN)

    with transaction():
        user = load(User, user_id, lock=True)

        if "email" in fields:
            user.email = parse_text(fields.get("email"))
        if "full_name" in fields:
            user.full_name = parse_text(fields.get("full_name"))
        if "role" in fields:
            user.role = parse_choice(fields.get("role"), "role", ROLES, default=user.role)
        if "permissions" in fields:
            user.permissions = _permissions(fields.get("permissions"))
        if "is_active" in fields:
            active = _bool(fields.get("is_active"), "is_active")
            if not active and user.id == actor.user_id:
                raise ValidationError("Cannot deactivate your own account", field="is_active")
            user.is_active = active
        user.updated_at = utcnow()

    record(actor, "update", "user", user.id, user.username, None, "User updated")
    return user


def change_password(actor: Actor, user_id, password: Any) -> None:
    require(actor, Capability.ADMIN)
    if not password:
        raise ValidationError("Password required", field="password")

    with transaction():
        user = load(User, user_id, lock=True)
        user.set_password(str(password))
        user.updated_at = utcnow()

    record(actor, "update", "user", user.id, user.username, None, "Password changed")


def deactivate_user(actor: Actor, user_id) -> None:
    require(actor, Capability.ADMIN)

    with transaction():
        user = load(User, user_id, lock=True)
        if user.id == actor.user_id:
            raise ValidationError("Cannot delete your own account")
        user.is_active = False
        user.updated_at = utcnow()

    record(actor, "delete", "user", user.id, user.username, None, "User deactivated")


def activity_logs(actor: Actor, filters: Mapping[str, Any], page: Any = 1, limit: Any = 50) -> dict:
    """Newest-first activity entries with optional action/entity_type/user_id filters."""
    require(actor, Capability.ADMIN)

    page = max(parse_int(page, "page") or 1, 1)
    limit = min(max(parse_int(limit, "limit") or 50, 1), ACTIVITY_PAGE_LIMIT)

    q = ActivityLog.query
    action = parse_text(filters.get("action"))
    entity_type = parse_text(filters.get("entity_type"))
    user_id = parse_int(filters.get("user_id"), "user_id")
    if action:
        q = q.filter(ActivityLog.action == action)
    if entity_type:
        q = q.filter(ActivityLog.entity_type == entity_type)
    if user_id is not None:
        q = q.filter(ActivityLog.user_id == user_id)

    result = q.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).paginate(
        page=page,
        per_page=limit,
        error_out=False,
    )
    return {
        "logs": [entry.to_dict() for entry in result.items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": result.total,
            "totalPages": result.pages,
        },
    }


def _database_facts() -> dict:
    engine = db.engine
    facts: dict[str, Any] = {"type": engine.dialect.name}
    database = engine.url.database
    if engine.dialect.name == "sqlite" and database and database != ":memory:" and Path(database).is_file():
        stat = Path(database).stat()
        facts["size_kb"] = round(stat.st_size / 1024)
        facts["last_modified"] = datetime.fromtimestamp(stat.st_mtime).isoformat()
    return facts


def system_info(actor: Actor) -> dict:
    """Version, database facts and record counts for the admin dashboard."""
    require(actor, Capability.ADMIN)
    return {
        "version": current_app.config.get("APP_VERSION"),
        "database": _database_facts(),
        "statistics": {
            "total_users": User.query.count(),
            "active_users": User.query.filter_by(is_active=True).count(),
            "total_queries": Query.query.filter(Query.deleted_at.is_(None)).count(),
            "deleted_queries": Query.query.filter(Query.deleted_at.isnot(None)).count(),
            "quotations": Quotation.query.count(),
            "purchase_orders": PurchaseOrder.query.count(),
            "invoices": Invoice.query.count(),
        },
        "server": {"status": "running", "python_version": platform.python_version()},
    }
