"""
salesflow/seed.py

Bootstrap the first admin account.

Rules:
- Safe to run multiple times (idempotent).
- Only seeds when the users table is empty; an existing installation is
  never touched, even if the configured admin was renamed or deactivated.
"""

from __future__ import annotations

import logging

from flask import current_app

from .extensions import db
from .models import User
from .security import Permissions

logger = logging.getLogger(__name__)


def seed_default_admin() -> User | None:
    """Create the configured admin user if no user exists. Returns the new user or None."""
    if User.query.count() > 0:
        return None

    username = current_app.config["ADMIN_USERNAME"]
    user = User(
        username=username,
        full_name="Administrator",
        role="admin",
        permissions=Permissions.all().to_dict(),
        is_active=True,
    )
    user.set_password(current_app.config["ADMIN_PASSWORD"])

    db.session.add(user)
    db.session.commit()
    logger.warning("Seeded default admin user '%s'; change its password", username)
    return user
