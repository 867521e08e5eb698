"""
salesflow/retention.py

Retention sweep for soft-deleted queries.

A query whose deleted_at is older than RETENTION_DAYS is hard-deleted
together with its items and supplier responses. Documents that still point
at it keep existing; their query reference is nulled in the same transaction.

The sweep is never required for foreground correctness: active listings
already exclude soft-deleted queries.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Optional

from .audit import record
from .extensions import db
from .models import Invoice, PurchaseOrder, Query, Quotation, utcnow
from .security import SYSTEM_ACTOR
from .store import transaction

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30


def purge_deleted_queries(retention_days: int = DEFAULT_RETENTION_DAYS, now: Optional[datetime] = None) -> int:
    """Hard-delete queries soft-deleted more than retention_days ago. Returns the number purged."""
    cutoff = (now or utcnow()) - timedelta(days=retention_days)

    with transaction():
        expired = (
            Query.query.filter(Query.deleted_at.isnot(None), Query.deleted_at < cutoff)
            .order_by(Query.id.asc())
            .with_for_update()
            .all()
        )
        purged_ids = [query.id for query in expired]

        if purged_ids:
            for model in (Quotation, PurchaseOrder, Invoice):
                model.query.filter(model.query_id.in_(purged_ids)).update(
                    {"query_id": None}, synchronize_session=False
                )
            for query in expired:
                db.session.delete(query)

    if purged_ids:
        logger.info("Purged %d soft-deleted queries (cutoff %s)", len(purged_ids), cutoff.isoformat())
    for query_id in purged_ids:
        record(SYSTEM_ACTOR, "delete", "query", query_id, f"Query {query_id}", None, "Purged by retention sweep")
    return len(purged_ids)


class RetentionSweeper:
    """
    Background thread running purge_deleted_queries every `interval` seconds.

    - tick() is public so tests can drive a single sweep.
    - A failing sweep is logged and retried on the next interval.
    - stop() signals the loop and waits for the current sweep to finish.
    """

    def __init__(self, app, interval: int, retention_days: int = DEFAULT_RETENTION_DAYS):
        self._app = app
        self._interval = interval
        self._retention_days = retention_days
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def tick(self) -> int:
        with self._app.app_context():
            try:
                return purge_deleted_queries(self._retention_days)
            except Exception:
                logger.exception("Retention sweep failed")
                return 0

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="retention-sweeper", daemon=True)
        self._thread.start()
        logger.info("Retention sweeper started (interval %ss, %s days)", self._interval, self._retention_days)

    def stop(self, timeout: float = 30.0) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("Retention sweeper stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            self.tick()
            self._stop_event.wait(timeout=self._interval)
