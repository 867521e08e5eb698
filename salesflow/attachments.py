"""
salesflow/attachments.py

Attachment store collaborator.

Given an uploaded file, return a stable web path (uploads/<category>/<name>)
that lifecycle code stores verbatim. File contents are never inspected beyond
the extension allow-list.
"""

from __future__ import annotations

import logging
import secrets
import time
from pathlib import Path

from werkzeug.utils import secure_filename

from .errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"jpeg", "jpg", "png", "pdf", "doc", "docx", "xls", "xlsx"}
CATEGORIES = ("queries", "quotations", "purchase_orders", "invoices", "attachments", "exports")


class LocalAttachmentStore:
    """Stores uploads below upload_dir/<category>/."""

    def __init__(self, upload_dir: str | Path):
        self.upload_dir = Path(upload_dir).resolve()

    def directory(self, category: str) -> Path:
        if category not in CATEGORIES:
            category = "attachments"
        path = self.upload_dir / category
        path.mkdir(parents=True, exist_ok=True)
        return path

    def extension(self, file_storage, field_name: str = "attachment") -> str:
        """The lower-cased extension, or ValidationError when it is not allowed."""
        original = secure_filename(file_storage.filename or "")
        extension = original.rsplit(".", 1)[-1].lower() if "." in original else ""
        if extension not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                "Only .png, .jpg, .jpeg, .pdf, .doc, .docx, .xls, .xlsx files are allowed",
                field=field_name,
            )
        return extension

    def save(self, file_storage, category: str, field_name: str = "attachment") -> str:
        """Persist a werkzeug FileStorage and return its web path."""
        extension = self.extension(file_storage, field_name)
        filename = f"{field_name}-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}.{extension}"
        target = self.directory(category) / filename
        file_storage.save(str(target))
        logger.info("Stored attachment %s", target)
        return self.web_path(target)

    def discard(self, web_path: str) -> None:
        """Remove a stored file whose database row was never committed."""
        path = self.resolve(web_path)
        if path is not None:
            path.unlink()
            logger.info("Discarded attachment %s", path)

    def web_path(self, absolute_path: Path) -> str:
        relative = Path(absolute_path).resolve().relative_to(self.upload_dir)
        return "uploads/" + relative.as_posix()

    def resolve(self, web_path: str) -> Path | None:
        """Map a stored web path back to a file inside upload_dir (None if outside or missing)."""
        relative = web_path[len("uploads/"):] if web_path.startswith("uploads/") else web_path
        candidate = (self.upload_dir / relative).resolve()
        if self.upload_dir not in candidate.parents or not candidate.is_file():
            return None
        return candidate
