"""Content checks for uploaded binary files (claim evidence, branding logos)."""

from __future__ import annotations

from io import BytesIO

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from app.core.errors import ValidationError

ALLOWED_EVIDENCE_TYPES = {"application/pdf", "image/jpeg", "image/png"}
ALLOWED_LOGO_TYPES = {"image/png", "image/jpeg", "image/svg+xml"}

_MAGIC = {
    "application/pdf": (b"%PDF-",),
    "image/png": (b"\x89PNG\r\n\x1a\n",),
    "image/jpeg": (b"\xff\xd8\xff",),
}


def _matches_declared_type(content_type: str, data: bytes) -> bool:
    if content_type == "image/svg+xml":
        head = data[:1024].lstrip().lower()
        return head.startswith(b"<?xml") or head.startswith(b"<svg")
    return data.startswith(_MAGIC[content_type])


def _check_pdf(data: bytes) -> int:
    """Return the page count; raise if pypdf cannot read the document."""
    try:
        reader = PdfReader(BytesIO(data))
        pages = len(reader.pages)
    except (PyPdfError, ValueError, KeyError, IndexError) as exc:
        raise ValidationError("Invalid file: PDF document could not be read", field="evidence_file") from exc
    if pages == 0:
        raise ValidationError("Invalid file: PDF document has no pages", field="evidence_file")
    return pages


def check_evidence_file(content_type: str | None, data: bytes, max_size: int) -> dict:
    """Validate claim evidence and return metadata describing it.

    Only PDF, JPEG and PNG are accepted, and the bytes must be what the
    declared type says they are.
    """
    content_type = (content_type or "").split(";")[0].strip().lower()
    if content_type not in ALLOWED_EVIDENCE_TYPES:
        raise ValidationError(
            "Invalid file type: evidence must be a PDF, JPEG or PNG document",
            field="evidence_file",
        )
    if not data:
        raise ValidationError("Evidence file is empty", field="evidence_file")
    if len(data) > max_size:
        raise ValidationError(
            f"File too large: maximum evidence size is {max_size // (1024 * 1024)}MB",
            field="evidence_file",
        )
    if not _matches_declared_type(content_type, data):
        raise ValidationError(
            f"Invalid file: content does not match declared type {content_type}",
            field="evidence_file",
        )
    meta: dict = {"mime_type": content_type, "size": len(data)}
    if content_type == "application/pdf":
        meta["pages"] = _check_pdf(data)
    return meta


def check_logo_file(content_type: str | None, data: bytes, max_size: int) -> str:
    content_type = (content_type or "").split(";")[0].strip().lower()
    if content_type not in ALLOWED_LOGO_TYPES:
        raise ValidationError("Invalid logo type: must be PNG, JPEG or SVG", field="logo")
    if not data or len(data) > max_size:
        raise ValidationError("Invalid logo: empty or too large", field="logo")
    if not _matches_declared_type(content_type, data):
        raise ValidationError("Invalid logo: content does not match declared type", field="logo")
    return content_type
