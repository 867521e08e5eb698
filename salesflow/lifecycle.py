"""
salesflow/lifecycle.py

Query lifecycle controller.

State machine:
    pending --change_status(submitted, >=1 "yes" response)--> submitted
    submitted --change_status(pending)--> pending (reopen, responses kept)
    any --soft_delete_query--> deleted_at set (status untouched)
    deleted_at older than RETENTION_DAYS --retention sweep--> purged

Rules:
- Items are replaced wholesale on every update (delete all, reinsert in input
  order, serial numbers 1..n). No per-item diffing.
- SupplierResponse rows are written only by a transition to "submitted" and
  are replaced wholesale each time.
- Soft-deleted queries can be read but not mutated.
- Every operation checks the 'queries' capability first and runs in a single
  transaction; the activity entry is recorded after commit.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Mapping, Optional, Sequence

from flask import current_app

from .audit import record
from .errors import ValidationError
from .extensions import db
from .models import Query, QueryItem, SupplierResponse, QUERY_STATUSES, utcnow
from .security import Actor, Capability, require
from .store import load, replace_items, transaction
from .utils import learn_suggestions, parse_choice, parse_date, parse_item_fields, parse_item_list, parse_text

QUERY_FIELDS = {
    "org_department": "text",
    "client_case_number": "text",
    "date": "date",
    "last_submission_date": "date",
    "client_name": "text",
    "query_sent_to": "text",
    "nsets_case_number": "text",
    "enquiry_date": "date",
    "last_submission_excel_date": "date",
}

QUERY_ITEM_FIELDS = {
    "manufacturer_number": "text",
    "stockist_number": "text",
    "coo": "text",
    "brand": "text",
    "description": "text",
    "au": "text",
    "quantity": "int",
    "remarks": "text",
}

SUBMITTED = "submitted"
PENDING = "pending"


# ---------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------
def _parse_query_fields(fields: Mapping[str, Any]) -> dict:
    parsed = {}
    for name, kind in QUERY_FIELDS.items():
        value = fields.get(name)
        parsed[name] = parse_date(value, name) if kind == "date" else parse_text(value)
    return parsed


def _build_items(raw_items: Any) -> list[QueryItem]:
    """Input order is authoritative: serial_number = 1-based position."""
    entries = parse_item_list(raw_items)
    return [
        QueryItem(serial_number=position, **parse_item_fields(entry, QUERY_ITEM_FIELDS, position))
        for position, entry in enumerate(entries, start=1)
    ]


def _parse_supplier_responses(raw: Any) -> list[dict]:
    entries = parse_item_list(raw, field="supplier_responses")
    responses = []
    for position, entry in enumerate(entries, start=1):
        supplier = parse_text(entry.get("supplier", entry.get("supplier_name")))
        response = parse_text(entry.get("response", entry.get("response_status")))
        if not supplier:
            raise ValidationError(f"supplier_responses[{position}].supplier is required", field="supplier_responses")
        if not response:
            raise ValidationError(f"supplier_responses[{position}].response is required", field="supplier_responses")
        responses.append({"supplier_name": supplier, "response_status": response})
    return responses


def _attachment_store(store):
    return store if store is not None else current_app.extensions["salesflow.attachments"]


@contextmanager
def _staged_uploads(store):
    """Collects web paths saved inside the block; they are removed again if it raises."""
    saved: list[str] = []
    try:
        yield saved
    except Exception:
        for web_path in saved:
            store.discard(web_path)
        raise


def _learn_from(query: Query) -> None:
    learn_suggestions("org", [query.org_department])
    learn_suggestions("client", [query.client_name])
    learn_suggestions("supplier", query.suppliers)


def _ensure_active(query: Query) -> None:
    if query.is_deleted:
        raise ValidationError(f"Query {query.id} is deleted and cannot be modified")


# ---------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------
def list_queries(actor: Actor, status: Optional[str] = None, deleted: bool = False) -> list[Query]:
    """
    Default: active (non-deleted) queries, optionally narrowed by status.
    deleted=True: only soft-deleted queries; the status filter is ignored.
    """
    require(actor, Capability.QUERIES)

    q = Query.query
    if deleted:
        q = q.filter(Query.deleted_at.isnot(None))
    else:
        q = q.filter(Query.deleted_at.is_(None))
        if status:
            q = q.filter(Query.status == parse_choice(status, "status", QUERY_STATUSES))

    return q.order_by(Query.created_at.desc(), Query.id.desc()).all()


def get_query(actor: Actor, query_id) -> Query:
    require(actor, Capability.QUERIES)
    return load(Query, query_id)


def queries_for_quotation(actor: Actor) -> list[dict]:
    """Active queries for the quotation form's origin dropdown."""
    require(actor, Capability.QUOTATIONS)
    rows = (
        Query.query.filter(Query.deleted_at.is_(None))
        .order_by(Query.created_at.desc(), Query.id.desc())
        .all()
    )
    return [
        {
            "id": row.id,
            "client_case_number": row.client_case_number,
            "nsets_case_number": row.nsets_case_number,
            "client_name": row.client_name,
        }
        for row in rows
    ]


# ---------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------
def create_query(
    actor: Actor,
    fields: Mapping[str, Any],
    items: Any = None,
    attachment=None,
    attachment_store=None,
) -> int:
    require(actor, Capability.QUERIES)

    scalar = _parse_query_fields(fields)
    item_rows = _build_items(items if items is not None else [])

    store = _attachment_store(attachment_store) if attachment is not None else None
    if store is not None:
        store.extension(attachment)

    attachment_path = None
    with _staged_uploads(store) as saved:
        if store is not None:
            attachment_path = store.save(attachment, "queries")
            saved.append(attachment_path)

        with transaction():
            query = Query(**scalar, attachment_path=attachment_path, status=PENDING, deleted_at=None)
            query.items = item_rows
            db.session.add(query)
            _learn_from(query)
            db.session.flush()
            query_id = query.id

    record(actor, "create", "query", query_id, f"Query {query_id}", attachment_path, "Query created")
    return query_id


def update_query(
    actor: Actor,
    query_id,
    fields: Mapping[str, Any],
    items: Any = None,
    attachment=None,
    attachment_store=None,
) -> Query:
    """
    Full replace of the scalar fields. When items is given (even empty) the
    whole item list is discarded and reinserted. Status is not writable here.
    """
    require(actor, Capability.QUERIES)

    scalar = _parse_query_fields(fields)
    item_rows = _build_items(items) if items is not None else None
    store = _attachment_store(attachment_store) if attachment is not None else None
    if store is not None:
        store.extension(attachment)

    with _staged_uploads(store) as saved, transaction():
        query = load(Query, query_id, lock=True)
        _ensure_active(query)

        attachment_path = parse_text(fields.get("existing_attachment", query.attachment_path))
        if store is not None:
            attachment_path = store.save(attachment, "queries")
            saved.append(attachment_path)

        for name, value in scalar.items():
            setattr(query, name, value)
        query.attachment_path = attachment_path
        query.updated_at = utcnow()

        if item_rows is not None:
            replace_items(query.items, item_rows)

        _learn_from(query)

    record(actor, "update", "query", query.id, f"Query {query.id}", attachment_path, "Query updated")
    return query


def soft_delete_query(actor: Actor, query_id) -> Query:
    """Mark deleted; status is left as is. Deleting twice keeps the first timestamp."""
    require(actor, Capability.QUERIES)

    with transaction():
        query = load(Query, query_id, lock=True)
        if query.deleted_at is None:
            query.deleted_at = utcnow()

    record(actor, "delete", "query", query.id, f"Query {query.id}", None, "Query deleted")
    return query


def change_status(
    actor: Actor,
    query_id,
    target_status: Any,
    supplier_responses: Any = None,
    files: Optional[Mapping[int, Any]] = None,
    attachment_store=None,
) -> Query:
    """
    Transition a query's status.

    Submitting requires at least one supplier response of "yes"; the supplied
    responses then replace every stored response of the query. files maps a
    response index to an uploaded attachment for that supplier.
    """
    require(actor, Capability.QUERIES)

    target = parse_choice(target_status, "status", QUERY_STATUSES)
    responses: Sequence[dict] = _parse_supplier_responses(supplier_responses) if supplier_responses else []
    files = dict(files or {})

    if target == SUBMITTED:
        if not any(r["response_status"].lower() == "yes" for r in responses):
            raise ValidationError(
                "At least one supplier must have responded 'yes' to submit a query",
                field="supplier_responses",
            )
    elif responses or files:
        raise ValidationError("Supplier responses are only accepted when submitting", field="supplier_responses")

    for index in files:
        if not isinstance(index, int) or not 0 <= index < len(responses):
            raise ValidationError(f"No supplier response for attachment #{index}", field="supplier_responses")

    store = _attachment_store(attachment_store) if files else None
    for index, file in files.items():
        store.extension(file, field_name=f"supplier_attachment_{index}")

    with _staged_uploads(store) as saved, transaction():
        query = load(Query, query_id, lock=True)
        _ensure_active(query)

        rows = []
        if target == SUBMITTED:
            for index, response in enumerate(responses):
                attachment_path = None
                if index in files:
                    attachment_path = store.save(files[index], "queries", field_name=f"supplier_attachment_{index}")
                    saved.append(attachment_path)
                rows.append(SupplierResponse(attachment_path=attachment_path, **response))
            replace_items(query.supplier_responses, rows)

        query.status = target
        query.updated_at = utcnow()

    detail = f"Status changed to {target}"
    if target == SUBMITTED:
        detail += f" ({len(rows)} supplier responses)"
    record(actor, "update", "query", query.id, f"Query {query.id}", None, detail)
    return query
