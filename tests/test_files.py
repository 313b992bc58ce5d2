"""Unit tests for evidence and logo content checks."""

from io import BytesIO

import pytest
from pypdf import PdfWriter

from app.core.errors import ValidationError
from app.services.files import check_evidence_file, check_logo_file

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 32
MAX = 1024 * 1024


def _pdf(pages: int = 2) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    buf = BytesIO()
    writer.write(buf)
    return buf.getvalue()


def test_pdf_evidence_reports_pages():
    meta = check_evidence_file("application/pdf", _pdf(2), MAX)
    assert meta["mime_type"] == "application/pdf"
    assert meta["pages"] == 2
    assert meta["size"] > 0


def test_image_evidence():
    assert check_evidence_file("image/png; charset=binary", PNG, MAX)["mime_type"] == "image/png"
    assert "pages" not in check_evidence_file("image/jpeg", JPEG, MAX)


@pytest.mark.parametrize(
    ("content_type", "data", "fragment"),
    [
        ("text/plain", b"hello", "Invalid file type"),
        (None, PNG, "Invalid file type"),
        ("image/png", b"", "empty"),
        ("image/png", JPEG, "does not match"),
        ("application/pdf", b"%PDF-1.7\nnot a real document\n", "could not be read"),
    ],
)
def test_bad_evidence(content_type, data, fragment):
    with pytest.raises(ValidationError) as exc_info:
        check_evidence_file(content_type, data, MAX)
    assert fragment in exc_info.value.message


def test_evidence_size_limit():
    with pytest.raises(ValidationError) as exc_info:
        check_evidence_file("image/png", PNG + b"\x00" * MAX, MAX)
    assert "File too large" in exc_info.value.message


def test_logo_types():
    assert check_logo_file("image/svg+xml", b'<?xml version="1.0"?><svg/>', MAX) == "image/svg+xml"
    assert check_logo_file("image/png", PNG, MAX) == "image/png"
    with pytest.raises(ValidationError):
        check_logo_file("image/gif", b"GIF89a", MAX)
    with pytest.raises(ValidationError):
        check_logo_file("image/svg+xml", b"<html></html>", MAX)
