"""
salesflow/store.py

Entity store helpers shared by the lifecycle modules.

- transaction(): one unit of work per lifecycle operation. Commits on
  success, rolls back on any error. SQLAlchemy failures surface as
  PersistenceError; domain errors propagate unchanged.
- load(): fetch by integer id or raise NotFound. lock=True issues
  SELECT ... FOR UPDATE where the backend supports it, which serializes
  concurrent writers on the same document.
- replace_items(): the "delete all items, reinsert in input order" contract,
  executed inside the caller's transaction so readers never see an empty list.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterable, Iterator, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from .errors import NotFound, PersistenceError
from .extensions import db

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


@contextmanager
def transaction() -> Iterator:
    try:
        yield db.session
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Store operation failed")
        raise PersistenceError(f"Database error: {exc.__class__.__name__}") from exc
    except Exception:
        db.session.rollback()
        raise


def load(model: Type[ModelT], entity_id, *, entity_type: str | None = None, lock: bool = False) -> ModelT:
    """Return model row by id or raise NotFound (ids that are not integers are unknown too)."""
    label = entity_type or model.__name__
    try:
        key = int(entity_id)
    except (TypeError, ValueError):
        raise NotFound(label, entity_id) from None

    try:
        instance = db.session.get(model, key, with_for_update=lock or None)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Loading %s %s failed", label, key)
        raise PersistenceError(f"Database error: {exc.__class__.__name__}") from exc

    if instance is None:
        raise NotFound(label, key)
    return instance


def replace_items(collection: list, new_items: Iterable) -> None:
    """
    Wholesale replacement of a parent's item collection.

    The old rows are deleted (delete-orphan cascade) and flushed before the
    new rows are attached, so serial numbers never collide.
    """
    collection.clear()
    db.session.flush()
    collection.extend(new_items)
