"""Retention sweep of soft-deleted queries."""

from datetime import timedelta

from salesflow import lifecycle
from salesflow.documents import create_document
from salesflow.extensions import db
from salesflow.models import ActivityLog, Query, QueryItem, Quotation, utcnow
from salesflow.retention import RetentionSweeper, purge_deleted_queries


def _deleted_query(admin, days_ago):
    query_id = lifecycle.create_query(admin, {"client_name": "Acme"}, [{"description": "Valve", "quantity": 1}])
    lifecycle.soft_delete_query(admin, query_id)
    db.session.get(Query, query_id).deleted_at = utcnow() - timedelta(days=days_ago)
    db.session.commit()
    return query_id


def test_purges_only_queries_past_retention(admin):
    old = _deleted_query(admin, 31)
    recent = _deleted_query(admin, 5)
    active = lifecycle.create_query(admin, {"client_name": "Acme"}, [])

    assert purge_deleted_queries(30) == 1

    assert db.session.get(Query, old) is None
    assert QueryItem.query.filter_by(query_id=old).count() == 0
    assert db.session.get(Query, recent) is not None
    assert db.session.get(Query, active) is not None

    entry = ActivityLog.query.filter_by(entity_id=old, username="system").one()
    assert entry.action == "delete"


def test_purge_keeps_quotations_and_nulls_their_reference(admin):
    query_id = lifecycle.create_query(admin, {"client_name": "Acme"}, [])
    quotation_id = create_document(admin, "quotation", {"quotation_number": "Q-1", "query_id": query_id}, [])
    lifecycle.soft_delete_query(admin, query_id)
    db.session.get(Query, query_id).deleted_at = utcnow() - timedelta(days=40)
    db.session.commit()

    assert purge_deleted_queries() == 1
    db.session.expire_all()

    quotation = db.session.get(Quotation, quotation_id)
    assert quotation is not None
    assert quotation.query_id is None


def test_nothing_to_purge(admin):
    lifecycle.create_query(admin, {"client_name": "Acme"}, [])
    assert purge_deleted_queries() == 0


def test_sweeper_tick_runs_in_app_context(app, admin):
    _deleted_query(admin, 60)
    sweeper = RetentionSweeper(app, interval=3600, retention_days=30)

    assert sweeper.tick() == 1
    assert not sweeper.is_running


def test_sweeper_start_and_stop(app):
    sweeper = RetentionSweeper(app, interval=3600)
    sweeper.start()
    assert sweeper.is_running
    sweeper.stop(timeout=5)
    assert not sweeper.is_running
