"""Request payload validators.

Each validator raises ``ValidationError`` naming the offending field, or
returns the (possibly normalised) value.
"""

from __future__ import annotations

import re

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.core.errors import ValidationError

DOMAIN_RE = re.compile(r"^[a-z0-9-]+$")
HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
PHONE_RE = re.compile(r"^\+?[1-9]\d{7,14}$")
_PHONE_SEPARATORS = re.compile(r"[\s\-.()]")
_SPECIAL_CHARS = re.compile(r"""[!@#$%^&*()_+\-=\[\]{};':"\\|,.<>/?]""")

FONT_FAMILIES = ("Inter", "Roboto", "Arial", "Helvetica", "Georgia", "Times", "custom")
UPLOAD_TYPES = ("categories", "listings")
UPLOAD_EXTENSIONS: dict[str, str] = {
    "categories": ".json",
    "listings": ".csv",
}

_email_adapter = TypeAdapter(EmailStr)


def validate_tenant_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Missing required field: name", field="name")
    if len(name) < 3:
        raise ValidationError("Invalid name: must be at least 3 characters", field="name")
    if len(name) > 100:
        raise ValidationError("Invalid name: must be at most 100 characters", field="name")
    return name


def validate_domain(domain: str | None) -> str:
    if not domain:
        raise ValidationError("Missing required field: domain", field="domain")
    if not DOMAIN_RE.match(domain):
        raise ValidationError(
            "Invalid domain format: only lowercase letters, numbers, and hyphens allowed",
            field="domain",
        )
    if len(domain) < 3 or len(domain) > 63:
        raise ValidationError(
            "Invalid domain: must be between 3 and 63 characters", field="domain"
        )
    if domain.startswith("-") or domain.endswith("-"):
        raise ValidationError(
            "Invalid domain: cannot start or end with hyphen", field="domain"
        )
    return domain


def validate_hex_color(color: str | None, field: str) -> str:
    if not color:
        raise ValidationError(f"Missing required field: {field}", field=field)
    if not HEX_COLOR_RE.match(color):
        raise ValidationError(
            f"Invalid {field} format: must be hex color (e.g., #3B82F6)", field=field
        )
    return color


def validate_font_family(font_family: str | None) -> str:
    if not font_family:
        raise ValidationError("Missing required field: font_family", field="font_family")
    if font_family not in FONT_FAMILIES:
        raise ValidationError(
            f"Invalid font_family: must be one of {', '.join(FONT_FAMILIES)}",
            field="font_family",
        )
    return font_family


def validate_upload_type(upload_type: str | None) -> str:
    if not upload_type:
        raise ValidationError("Upload type is required", field="type")
    if upload_type not in UPLOAD_TYPES:
        raise ValidationError(
            f"Invalid type parameter: must be one of {', '.join(UPLOAD_TYPES)}",
            field="type",
        )
    return upload_type


def validate_upload_filename(filename: str | None, upload_type: str) -> str:
    """Reject files whose extension does not match the declared upload type."""
    expected = UPLOAD_EXTENSIONS[upload_type]
    if not filename or not filename.lower().endswith(expected):
        kind = expected.lstrip(".").upper()
        raise ValidationError(
            f"Invalid file type: {upload_type} upload requires {kind} file",
            field="file",
        )
    return filename


def validate_email(email: str | None, field: str = "email") -> str:
    if not email:
        raise ValidationError(f"Missing required field: {field}", field=field)
    try:
        return str(_email_adapter.validate_python(email))
    except PydanticValidationError as exc:
        raise ValidationError("Invalid email format", field=field) from exc


def validate_password(password: str | None) -> str:
    if not password:
        raise ValidationError("Missing required field: password", field="password")
    if len(password) < 8:
        raise ValidationError(
            "Password must be at least 8 characters long", field="password"
        )
    if len(password) > 128:
        raise ValidationError(
            "Password must be at most 128 characters long", field="password"
        )
    checks = (
        re.search(r"[A-Z]", password),
        re.search(r"[a-z]", password),
        re.search(r"\d", password),
        _SPECIAL_CHARS.search(password),
    )
    if not all(checks):
        raise ValidationError(
            "Password must contain at least one uppercase letter, lowercase letter, "
            "number, and special character",
            field="password",
        )
    return password


def normalize_phone(phone: str | None) -> str:
    """Strip common separators and check the E.164-like shape."""
    if not phone:
        raise ValidationError("Missing required field: phone_number", field="phone_number")
    compact = _PHONE_SEPARATORS.sub("", phone)
    if not PHONE_RE.match(compact):
        raise ValidationError(
            "Valid phone number is required for phone verification", field="phone_number"
        )
    return compact


def validate_person_name(name: str | None, field: str) -> str:
    if not name or not name.strip():
        raise ValidationError(f"Missing required field: {field}", field=field)
    if len(name) > 50:
        raise ValidationError(f"{field} must be at most 50 characters", field=field)
    return name.strip()
