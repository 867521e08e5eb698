"""
salesflow/audit.py

Activity logger.

Goals:
- Capture WHO did WHAT to WHICH entity, with optional file reference and detail.
- Store username snapshot to preserve identity even if username changes later.
- Store IP address and user agent for traceability (when called inside a request).

IMPORTANT:
- record() is best-effort. It runs AFTER the business transaction committed,
  in its own commit, and any failure is written to the application log only.
  A failed audit write can never fail or roll back the triggering operation.
- Entries are never updated or deleted by the application.
"""

from __future__ import annotations

import logging
from typing import Optional

from flask import has_request_context, request

from .extensions import db
from .models import ACTIVITY_ACTIONS, ActivityLog
from .security import Actor

logger = logging.getLogger(__name__)


def _request_metadata() -> tuple[Optional[str], Optional[str]]:
    """
    Requester IP and user agent.

    SECURITY NOTE:
    - request.remote_addr is as Flask sees it. Behind a reverse proxy,
      configure ProxyFix / trusted proxy headers to capture real client IP.
    """
    if not has_request_context():
        return None, None
    forwarded = request.headers.get("X-Forwarded-For", "")
    ip_address = forwarded.split(",")[0].strip() if forwarded else request.remote_addr
    user_agent = request.headers.get("User-Agent")
    return ip_address, (user_agent[:255] if user_agent else None)


def record(
    actor: Actor,
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    entity_name: Optional[str] = None,
    file_ref: Optional[str] = None,
    detail: Optional[str] = None,
) -> None:
    """Append an ActivityLog entry. Never raises."""
    try:
        if action not in ACTIVITY_ACTIONS:
            raise ValueError(f"Unknown activity action: {action}")
        ip_address, user_agent = _request_metadata()
        entry = ActivityLog(
            user_id=actor.user_id,
            username=actor.username,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name,
            file_path=file_ref,
            file_name=file_ref.rsplit("/", 1)[-1] if file_ref else None,
            details=detail,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.session.add(entry)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception(
            "Activity log write failed (%s %s %s by %s)",
            action,
            entity_type,
            entity_id,
            actor.username,
        )
