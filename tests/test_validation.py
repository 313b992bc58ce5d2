"""Unit tests for request payload validators."""

import pytest

from app.core.errors import ValidationError
from app.core.validation import (
    normalize_phone,
    validate_domain,
    validate_email,
    validate_font_family,
    validate_hex_color,
    validate_password,
    validate_tenant_name,
    validate_upload_filename,
    validate_upload_type,
)


@pytest.mark.parametrize("domain", ["abc", "my-directory", "a1-b2-c3", "x" * 63])
def test_valid_domains(domain):
    assert validate_domain(domain) == domain


@pytest.mark.parametrize(
    ("domain", "fragment"),
    [
        (None, "Missing required field"),
        ("ab", "between 3 and 63"),
        ("x" * 64, "between 3 and 63"),
        ("My-Dir", "only lowercase"),
        ("my_dir", "only lowercase"),
        ("-mydir", "hyphen"),
        ("mydir-", "hyphen"),
    ],
)
def test_invalid_domains(domain, fragment):
    with pytest.raises(ValidationError) as exc_info:
        validate_domain(domain)
    assert fragment in exc_info.value.message
    assert exc_info.value.field == "domain"


def test_tenant_name_bounds():
    assert validate_tenant_name("abc") == "abc"
    assert validate_tenant_name("  My Directory  ") == "My Directory"
    for bad in (None, "   ", "ab", "  ab  ", "x" * 101):
        with pytest.raises(ValidationError):
            validate_tenant_name(bad)


def test_hex_colors():
    assert validate_hex_color("#3B82F6", "primary_color") == "#3B82F6"
    for bad in ("3B82F6", "#3B82F", "#GGGGGG", "blue"):
        with pytest.raises(ValidationError) as exc_info:
            validate_hex_color(bad, "primary_color")
        assert exc_info.value.field == "primary_color"


def test_font_family():
    assert validate_font_family("Inter") == "Inter"
    with pytest.raises(ValidationError):
        validate_font_family("Comic Sans")


def test_upload_type_and_extension():
    assert validate_upload_type("listings") == "listings"
    with pytest.raises(ValidationError):
        validate_upload_type(None)
    with pytest.raises(ValidationError):
        validate_upload_type("logos")

    assert validate_upload_filename("Cats.JSON", "categories") == "Cats.JSON"
    with pytest.raises(ValidationError) as exc_info:
        validate_upload_filename("listings.xlsx", "listings")
    assert "requires CSV file" in exc_info.value.message


@pytest.mark.parametrize(
    "password",
    ["Sh0rt!", "alllower1!", "ALLUPPER1!", "NoDigits!!", "NoSpecial12", "A1!" + "a" * 126],
)
def test_weak_passwords(password):
    with pytest.raises(ValidationError):
        validate_password(password)


def test_strong_password():
    assert validate_password("Str0ng!Passw0rd") == "Str0ng!Passw0rd"


def test_email():
    assert validate_email("owner@shop.com") == "owner@shop.com"
    with pytest.raises(ValidationError):
        validate_email("owner@")


def test_phone_normalisation():
    assert normalize_phone("+1 (555) 010-0100") == "+15550100100"
    assert normalize_phone("207.946.0958") == "2079460958"
    for bad in ("", "123", "+0123456789", "phone"):
        with pytest.raises(ValidationError):
            normalize_phone(bad)
