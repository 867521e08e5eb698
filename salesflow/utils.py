"""
Utility functions shared across the lifecycle modules. This includes:
- payload parsing helpers (text, int, decimal, date, item lists) that raise ValidationError on malformed input
- suggestion pools: learn_suggestions / get_suggestions for autocomplete
"""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from .errors import ValidationError
from .extensions import db
from .models import Suggestion

SUGGESTION_KINDS = ("org", "client", "supplier")


# ---------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------
def parse_text(value: Any) -> str | None:
    """Stripped text or None for empty input."""
    if value is None:
        return None
    raw = str(value).strip()
    return raw or None


def parse_int(value: Any, field: str) -> int | None:
    """Parse optional int from a payload."""
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number", field=field)
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a whole number", field=field) from None
    if number != number.to_integral_value():
        raise ValidationError(f"{field} must be a whole number", field=field)
    return int(number)


def parse_decimal(value: Any, field: str) -> Decimal | None:
    """Parse decimal from user input (accepts comma or dot)."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    raw = str(value).strip().replace(",", ".")
    if raw == "":
        return None
    try:
        number = Decimal(raw)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", field=field) from None
    if not number.is_finite():
        raise ValidationError(f"{field} must be a number", field=field)
    return number


def parse_date(value: Any, field: str) -> date | None:
    """Parse an ISO date (YYYY-MM-DD); a trailing time part is ignored."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    raw = str(value).strip()[:10]
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)", field=field) from None


def parse_choice(value: Any, field: str, choices: Iterable[str], default: str | None = None) -> str:
    raw = parse_text(value)
    if raw is None:
        if default is None:
            raise ValidationError(f"{field} is required", field=field)
        return default
    raw = raw.lower()
    if raw not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}", field=field)
    return raw


def parse_item_list(raw: Any, field: str = "items") -> list[Mapping[str, Any]]:
    """
    Items arrive either as a JSON list (application/json) or as a JSON string
    (multipart form field). Every entry must be an object.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw.strip() else []
        except ValueError:
            raise ValidationError(f"{field} must be a JSON list", field=field) from None
    if not isinstance(raw, list):
        raise ValidationError(f"{field} must be a list", field=field)
    for position, entry in enumerate(raw, start=1):
        if not isinstance(entry, Mapping):
            raise ValidationError(f"{field}[{position}] must be an object", field=field)
    return raw


def parse_item_fields(entry: Mapping[str, Any], schema: Mapping[str, str], position: int) -> dict:
    """
    Convert one item entry according to a {field: kind} schema
    (kind is text, int or decimal). Unknown keys are ignored.
    """
    parsed: dict = {}
    for name, kind in schema.items():
        label = f"items[{position}].{name}"
        value = entry.get(name)
        if kind == "int":
            number = parse_int(value, label)
            if number is not None and number < 0:
                raise ValidationError(f"{label} must not be negative", field=label)
            parsed[name] = number
        elif kind == "decimal":
            parsed[name] = parse_decimal(value, label)
        else:
            parsed[name] = parse_text(value)
    return parsed


# ---------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------
def learn_suggestions(kind: str, values: Iterable[str | None]) -> None:
    """Set-union values into a suggestion pool (duplicates ignored). Caller commits."""
    existing = {
        s.value for s in Suggestion.query.filter_by(kind=kind).all()
    }
    for value in values:
        value = parse_text(value)
        if not value or value in existing:
            continue
        db.session.add(Suggestion(kind=kind, value=value))
        existing.add(value)


def get_suggestions(kind: str) -> list[str]:
    if kind not in SUGGESTION_KINDS:
        raise ValidationError("Invalid suggestion type", field="type")
    rows = Suggestion.query.filter_by(kind=kind).order_by(Suggestion.value.asc()).all()
    return [row.value for row in rows]
