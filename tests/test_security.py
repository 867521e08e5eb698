"""Access control gate."""

import pytest

from salesflow import lifecycle
from salesflow.documents import create_document, list_documents
from salesflow.errors import Forbidden, Unauthenticated
from salesflow.models import Query
from salesflow.security import Actor, Permissions, authorize, require


def test_admin_role_grants_everything_regardless_of_flags():
    actor = Actor(user_id=1, username="boss", role="admin", permissions=Permissions())
    for capability in ("queries", "quotations", "purchase_orders", "invoices", "admin"):
        assert authorize(actor, capability)


def test_user_needs_explicit_true_flag():
    permissions = Permissions.from_mapping({"queries": True, "invoices": "yes", "unknown": True})
    actor = Actor(user_id=2, username="clerk", permissions=permissions)

    assert authorize(actor, "queries")
    assert not authorize(actor, "invoices")
    assert not authorize(actor, "quotations")
    assert not authorize(actor, "admin")


def test_unknown_capability_is_a_programming_error():
    with pytest.raises(ValueError):
        authorize(Actor(user_id=1, username="x"), "reports")


def test_require_without_actor_is_unauthenticated():
    with pytest.raises(Unauthenticated):
        require(None, "queries")


def test_forbidden_operation_has_no_side_effects(queries_only, admin):
    with pytest.raises(Forbidden):
        create_document(queries_only, "quotation", {"quotation_number": "Q"}, [])
    with pytest.raises(Forbidden):
        list_documents(queries_only, "invoice")

    no_rights = Actor(user_id=None, username="nobody")
    with pytest.raises(Forbidden):
        lifecycle.create_query(no_rights, {"client_name": "Acme"}, [])
    assert Query.query.count() == 0
    assert list_documents(admin, "quotation") == []
