"""
Request helpers shared by the blueprints.

Payloads arrive either as application/json or as multipart/form-data (when a
file is attached). In the multipart case list fields (items,
supplier_responses) are JSON strings; the lifecycle parsers accept both.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from flask import request, send_file


def payload() -> dict[str, Any]:
    """Request body as a plain dict (JSON object or form fields)."""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def items_from(data: dict[str, Any], key: str = "items"):
    """The raw item list, or None when the client did not send one."""
    return data.get(key) if key in data else None


def uploaded(field_name: str):
    """A FileStorage for field_name, or None when no file was chosen."""
    file = request.files.get(field_name)
    if file is None or not file.filename:
        return None
    return file


def indexed_uploads(prefix: str) -> dict[int, Any]:
    """Files named <prefix><index> (e.g. supplier_attachment_0) keyed by index."""
    files = {}
    for name, file in request.files.items():
        if not name.startswith(prefix) or not file.filename:
            continue
        suffix = name[len(prefix):]
        if suffix.isdigit():
            files[int(suffix)] = file
    return files


def query_flag(name: str) -> bool:
    return request.args.get(name, "").strip().lower() in {"1", "true", "yes"}


def send_export(filepath: Path):
    return send_file(filepath, as_attachment=True, download_name=filepath.name)
