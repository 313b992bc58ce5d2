"""Text normalisation, slugs and search projections."""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable


def normalize_text(text: str) -> str:
    """Normalize unicode, collapse whitespace, strip control characters."""
    text = unicodedata.normalize("NFC", text)
    text = "".join(ch for ch in text if ch.isspace() or unicodedata.category(ch) != "Cc")
    text = re.sub(r"[^\S ]+", " ", text)
    text = re.sub(r" {2,}", " ", text)
    return text.strip()


def slugify(value: str, max_length: int = 255) -> str:
    """Lower-case, ASCII-only, hyphen-separated form of ``value``."""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return value[:max_length].rstrip("-")


def unique_slug(base: str, taken: set[str]) -> str:
    """Return ``base`` or the first free ``base-2``, ``base-3``... and reserve it."""
    base = base or "item"
    candidate = base
    n = 2
    while candidate in taken:
        candidate = f"{base}-{n}"
        n += 1
    taken.add(candidate)
    return candidate


def build_search_text(title: str, description: str, extra: Iterable[str] = ()) -> str:
    """Lower-cased projection of a listing's searchable fields."""
    parts = [title, description, *(str(v) for v in extra if v)]
    return normalize_text(" ".join(p for p in parts if p)).lower()
