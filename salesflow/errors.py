"""
salesflow/errors.py

Typed error taxonomy for lifecycle operations.

Every error carries:
- kind: stable machine-readable code (API-safe)
- status_code: HTTP status used by the JSON error handler
- message: human readable text

Lifecycle code raises these; the app factory registers a single handler that
renders them as {"error": {"kind": ..., "message": ...}}.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SalesFlowError(Exception):
    """Base class for all domain errors."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFound(SalesFlowError):
    """Unknown entity id."""

    kind = "not_found"
    status_code = 404

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(
            f"{entity_type} {entity_id} not found",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationError(SalesFlowError):
    """Malformed fields or an unmet transition precondition."""

    kind = "validation_error"
    status_code = 400

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message, details={"field": field} if field else None)
        self.field = field


class Forbidden(SalesFlowError):
    """Authenticated, but lacking the capability."""

    kind = "forbidden"
    status_code = 403

    def __init__(self, capability: str):
        super().__init__(f"Permission denied: '{capability}' is required", details={"capability": capability})
        self.capability = capability


class Unauthenticated(SalesFlowError):
    """No valid session."""

    kind = "unauthenticated"
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class PersistenceError(SalesFlowError):
    """Store-level failure. Retryable by the caller, never retried internally."""

    kind = "persistence_error"
    status_code = 500
