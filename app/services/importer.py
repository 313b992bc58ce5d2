"""Category / listing import pipeline.

Uploads are parsed and validated in full before anything is written: every
record is checked against the file itself and the tenant's existing rows, all
errors are collected, and only a clean file is persisted (in one commit).
"""

from __future__ import annotations

import csv
import io
import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import UnprocessableError
from app.models.base import dump_json
from app.models.category import MAX_CATEGORY_DEPTH, Category
from app.models.listing import Listing
from app.services.text import build_search_text, normalize_text, slugify, unique_slug

logger = logging.getLogger(__name__)

LISTING_REQUIRED_HEADERS = ("title", "category", "description")
LISTING_KNOWN_HEADERS = frozenset({*LISTING_REQUIRED_HEADERS, "slug", "featured"})
_TRUE_VALUES = frozenset({"1", "true", "yes", "y"})


@dataclass
class RowError:
    line: int
    field: str
    message: str


@dataclass
class CategoryRecord:
    line: int
    name: str
    slug: str
    description: str = ""
    icon: str = ""
    sort_order: int = 0
    parent_slug: str | None = None


@dataclass
class ListingRecord:
    line: int
    title: str
    slug: str
    description: str
    category_id: uuid.UUID
    featured: bool = False
    data: dict[str, str] = field(default_factory=dict)


def _reject(errors: list[RowError]) -> UnprocessableError:
    return UnprocessableError("File validation failed", [asdict(e) for e in errors])


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise _reject([RowError(1, "file", "File must be UTF-8 encoded")]) from exc


# ── Categories (JSON) ────────────────────────────────────────

def parse_categories(content: bytes, existing: list[Category]) -> list[CategoryRecord]:
    """Validate a categories JSON file against the tenant's existing categories.

    Raises ``UnprocessableError`` listing every problem found.
    """
    text = _decode(content)
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise _reject([RowError(exc.lineno, "file", f"Invalid JSON format: {exc.msg}")]) from exc

    if not isinstance(raw, list):
        raise _reject([RowError(1, "file", "Categories must be an array")])
    if not raw:
        raise _reject([RowError(1, "file", "Categories file contains no records")])

    errors: list[RowError] = []
    records: list[CategoryRecord] = []
    existing_slugs = {c.slug for c in existing}
    seen: set[str] = set()

    for line, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            errors.append(RowError(line, "record", "Category must be an object"))
            continue
        name = item.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append(RowError(line, "name", "Name is required for category"))
            continue
        name = normalize_text(name)
        if len(name) > 255:
            errors.append(RowError(line, "name", "Name must be at most 255 characters"))
            continue

        slug_raw = item.get("slug")
        slug = slugify(slug_raw) if isinstance(slug_raw, str) and slug_raw.strip() else slugify(name)
        if not slug:
            errors.append(RowError(line, "slug", "Slug must contain letters or numbers"))
            continue
        if slug in seen:
            errors.append(RowError(line, "slug", f"Duplicate slug '{slug}' in file"))
            continue
        if slug in existing_slugs:
            errors.append(RowError(line, "slug", f"Category slug '{slug}' already exists"))
            continue
        seen.add(slug)

        sort_order = item.get("sort_order", 0)
        if isinstance(sort_order, bool) or not isinstance(sort_order, int):
            errors.append(RowError(line, "sort_order", "sort_order must be an integer"))
            continue

        parent = item.get("parent")
        if parent is not None and (not isinstance(parent, str) or not parent.strip()):
            errors.append(RowError(line, "parent", "parent must be a category slug"))
            continue

        records.append(CategoryRecord(
            line=line,
            name=name,
            slug=slug,
            description=str(item.get("description") or "")[:1000],
            icon=str(item.get("icon") or "")[:255],
            sort_order=sort_order,
            parent_slug=slugify(parent) if parent else None,
        ))

    errors.extend(_check_hierarchy(records, existing))
    if errors:
        raise _reject(sorted(errors, key=lambda e: e.line))
    return records


def _check_hierarchy(records: list[CategoryRecord], existing: list[Category]) -> list[RowError]:
    """Parents must resolve, chains must be acyclic and at most MAX_CATEGORY_DEPTH deep."""
    by_id = {c.id: c for c in existing}
    existing_by_slug = {c.slug: c for c in existing}
    new_by_slug = {r.slug: r for r in records}

    def existing_depth(cat: Category) -> int:
        depth = 1
        while cat.parent_id is not None and cat.parent_id in by_id:
            cat = by_id[cat.parent_id]
            depth += 1
        return depth

    errors: list[RowError] = []
    for rec in records:
        if rec.parent_slug is None:
            continue
        if rec.parent_slug not in new_by_slug and rec.parent_slug not in existing_by_slug:
            errors.append(RowError(rec.line, "parent", f"Unknown parent category '{rec.parent_slug}'"))
            continue

        depth = 1
        visited = {rec.slug}
        current: str | None = rec.parent_slug
        while current is not None:
            if current in visited:
                errors.append(RowError(rec.line, "parent", "Category hierarchy contains a cycle"))
                break
            visited.add(current)
            if current in new_by_slug:
                depth += 1
                current = new_by_slug[current].parent_slug
            elif current in existing_by_slug:
                depth += existing_depth(existing_by_slug[current])
                current = None
            else:
                # Reported on the record that names it
                current = None
        else:
            if depth > MAX_CATEGORY_DEPTH:
                errors.append(RowError(
                    rec.line, "parent",
                    f"Category hierarchy deeper than {MAX_CATEGORY_DEPTH} levels",
                ))
    return errors


async def import_categories(
    session: AsyncSession, tenant_id: uuid.UUID, content: bytes,
) -> list[Category]:
    """Validate and persist a categories file. Nothing is written on failure."""
    existing = await _tenant_categories(session, tenant_id)
    records = parse_categories(content, existing)

    by_slug = {c.slug: c for c in existing}
    created: list[Category] = []
    for rec in records:
        cat = Category(
            tenant_id=tenant_id,
            name=rec.name,
            slug=rec.slug,
            description=rec.description,
            icon=rec.icon,
            sort_order=rec.sort_order,
        )
        by_slug[rec.slug] = cat
        created.append(cat)
    # Parents may appear after their children in the file
    for rec, cat in zip(records, created):
        if rec.parent_slug:
            cat.parent_id = by_slug[rec.parent_slug].id

    session.add_all(created)
    logger.info("Importing %d categories for tenant %s", len(created), tenant_id)
    return created


# ── Listings (CSV) ───────────────────────────────────────────

def parse_listings(
    content: bytes, categories: list[Category], taken_slugs: set[str],
) -> list[ListingRecord]:
    """Validate a listings CSV file; ``category`` must name a tenant category.

    ``taken_slugs`` holds the tenant's existing listing slugs; generated slugs
    avoid them.
    """
    text = _decode(content)
    reader = csv.DictReader(io.StringIO(text))
    try:
        headers = [h.strip().lower() for h in (reader.fieldnames or [])]
    except csv.Error as exc:
        raise _reject([RowError(1, "file", f"Invalid CSV format: {exc}")]) from exc
    if not headers:
        raise _reject([RowError(1, "file", "CSV file is empty")])
    missing = [h for h in LISTING_REQUIRED_HEADERS if h not in headers]
    if missing:
        raise _reject([RowError(1, "headers", f"Missing required headers: {', '.join(missing)}")])
    reader.fieldnames = headers

    by_slug = {c.slug: c for c in categories}
    by_name = {c.name.lower(): c for c in categories}
    slugs = set(taken_slugs)

    errors: list[RowError] = []
    records: list[ListingRecord] = []
    try:
        rows = list(reader)
    except csv.Error as exc:
        raise _reject([RowError(reader.line_num, "file", f"Invalid CSV format: {exc}")]) from exc

    for index, row in enumerate(rows, start=2):
        if not any((v or "").strip() for k, v in row.items() if k is not None):
            continue
        values = {k: (v or "").strip() for k, v in row.items() if k is not None}
        row_errors = [
            RowError(index, h, f"{h} is required") for h in LISTING_REQUIRED_HEADERS if not values.get(h)
        ]
        if row_errors:
            errors.extend(row_errors)
            continue

        title = normalize_text(values["title"])
        if len(title) > 200:
            errors.append(RowError(index, "title", "title must be at most 200 characters"))
            continue
        ref = values["category"]
        category = by_slug.get(slugify(ref)) or by_name.get(ref.lower())
        if category is None:
            errors.append(RowError(index, "category", f"Unknown category '{ref}'"))
            continue

        slug = unique_slug(slugify(values.get("slug") or title), slugs)
        records.append(ListingRecord(
            line=index,
            title=title,
            slug=slug,
            description=values["description"],
            category_id=category.id,
            featured=values.get("featured", "").lower() in _TRUE_VALUES,
            data={k: v for k, v in values.items() if k and k not in LISTING_KNOWN_HEADERS and v},
        ))

    if errors:
        raise _reject(errors)
    if not records:
        raise _reject([RowError(1, "file", "Listings file contains no records")])
    return records


async def import_listings(
    session: AsyncSession, tenant_id: uuid.UUID, content: bytes,
) -> list[Listing]:
    """Validate and persist a listings file. Nothing is written on failure."""
    categories = await _tenant_categories(session, tenant_id)
    result = await session.execute(select(Listing.slug).where(Listing.tenant_id == tenant_id))
    records = parse_listings(content, categories, set(result.scalars().all()))

    names = {c.id: c.name for c in categories}
    created = [
        Listing(
            tenant_id=tenant_id,
            category_id=rec.category_id,
            title=rec.title,
            slug=rec.slug,
            description=rec.description,
            featured=rec.featured,
            data=dump_json(rec.data),
            search_text=build_search_text(
                rec.title, rec.description, [names[rec.category_id], *rec.data.values()],
            ),
        )
        for rec in records
    ]
    session.add_all(created)
    logger.info("Importing %d listings for tenant %s", len(created), tenant_id)
    return created


async def _tenant_categories(session: AsyncSession, tenant_id: uuid.UUID) -> list[Category]:
    result = await session.execute(select(Category).where(Category.tenant_id == tenant_id))
    return list(result.scalars().all())


def listing_search_text(listing: Listing, category_name: str) -> str:
    """Search projection for a stored listing."""
    data: dict[str, Any] = json.loads(listing.data) if listing.data else {}
    return build_search_text(listing.title, listing.description, [category_name, *data.values()])
