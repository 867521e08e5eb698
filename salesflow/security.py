"""
salesflow/security.py

Access control gate.

Key rules:
- UI is never trusted; all permission checks are server-side.
- role == "admin": every capability is granted, whatever the stored flags say.
- Other users: only the capabilities whose flag is explicitly true.
  Unknown keys in the stored map are ignored, missing keys are false.

Lifecycle operations never read the ambient Flask-Login user. Routes resolve
it once into an Actor (current_actor()) and pass it explicitly.

IMPORTANT:
- Decorators must preserve wrapped function metadata to avoid Flask endpoint collisions.
  We use functools.wraps everywhere.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Callable, Mapping, Optional

from flask_login import current_user

from .errors import Forbidden, Unauthenticated
from .models import CAPABILITIES


class Capability:
    QUERIES = "queries"
    QUOTATIONS = "quotations"
    PURCHASE_ORDERS = "purchase_orders"
    INVOICES = "invoices"
    ADMIN = "admin"


@dataclass(frozen=True)
class Permissions:
    """Explicit capability flags; unset flags are False."""

    queries: bool = False
    quotations: bool = False
    purchase_orders: bool = False
    invoices: bool = False
    admin: bool = False

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "Permissions":
        raw = raw or {}
        return cls(**{name: raw.get(name) is True for name in CAPABILITIES})

    @classmethod
    def all(cls) -> "Permissions":
        return cls(**{name: True for name in CAPABILITIES})

    def to_dict(self) -> dict:
        return {name: getattr(self, name) for name in CAPABILITIES}


@dataclass(frozen=True)
class Actor:
    """Resolved caller: {user_id, username, role, permissions}."""

    user_id: Optional[int]
    username: str
    role: str = "user"
    permissions: Permissions = field(default_factory=Permissions)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(
            user_id=user.id,
            username=user.username,
            role=user.role,
            permissions=Permissions.from_mapping(user.permissions),
        )


# Background jobs (retention sweep) act as this principal
SYSTEM_ACTOR = Actor(user_id=None, username="system", role="admin", permissions=Permissions.all())


def authorize(actor: Actor, capability: str) -> bool:
    """True if actor is admin, else True iff the capability flag is set."""
    if capability not in CAPABILITIES:
        raise ValueError(f"Unknown capability: {capability}")
    if actor.is_admin:
        return True
    return bool(getattr(actor.permissions, capability))


def require(actor: Optional[Actor], *capabilities: str) -> None:
    """Raise Unauthenticated/Forbidden unless actor holds every capability."""
    if actor is None:
        raise Unauthenticated()
    for capability in capabilities:
        if not authorize(actor, capability):
            raise Forbidden(capability)


def current_actor() -> Actor:
    """Resolve the Flask-Login session into an Actor."""
    if not current_user.is_authenticated:
        raise Unauthenticated()
    return Actor.from_user(current_user)


def admin_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator: 'admin' capability (admin role short-circuits)."""
    @wraps(view_func)
    def wrapper(*args: Any, **kwargs: Any):
        require(current_actor(), Capability.ADMIN)
        return view_func(*args, **kwargs)

    return wrapper
