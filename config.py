"""
Application configuration.
This module defines the configuration settings for the Flask application, including database connection, secret key,
upload location, retention policy and the seed admin account. It uses environment variables for sensitive information
and defaults for development. In production, make sure to set the appropriate environment variables and secure the
secret key.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Base configuration shared by all environments."""

    # IMPORTANT: change this in production
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me-please")

    # Database: SQLite for development (simple file in project folder)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'salesflow.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Create missing tables and the seed admin at startup (use `flask db upgrade` in production)
    AUTO_CREATE_SCHEMA = _env_bool("AUTO_CREATE_SCHEMA", True)

    # CSRF protection (token is returned by /api/login and /api/auth/check)
    WTF_CSRF_ENABLED = True

    # Uploaded attachments and generated spreadsheets
    UPLOAD_DIR = os.environ.get("UPLOAD_DIR", str(BASE_DIR / "uploads"))
    MAX_CONTENT_LENGTH = 20 * 1024 * 1024

    # Seed admin, created only when the users table is empty
    ADMIN_USERNAME = os.environ.get("ADMIN_USERNAME", "admin")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "change-me-now")

    # Soft-deleted queries are purged after this many days
    RETENTION_DAYS = int(os.environ.get("RETENTION_DAYS", "30"))
    # Seconds between background sweeps; 0 disables the sweeper thread
    RETENTION_SWEEP_INTERVAL = int(os.environ.get("RETENTION_SWEEP_INTERVAL", str(24 * 60 * 60)))

    # A quotation may be approved into more than one invoice (partial invoicing)
    APPROVAL_ALLOW_DUPLICATES = _env_bool("APPROVAL_ALLOW_DUPLICATES", True)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # App name (used in exports) and version (reported by /api/admin/system-info)
    APP_NAME = "SalesFlow"
    APP_VERSION = "1.0.0"


class TestingConfig(Config):
    """Configuration used by the test suite."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    WTF_CSRF_ENABLED = False
    RETENTION_SWEEP_INTERVAL = 0
    ADMIN_USERNAME = "admin"
    ADMIN_PASSWORD = "admin-pass"
