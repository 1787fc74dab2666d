"""
Query construction for pipeline listings.

Turns the raw ``limit`` / ``offset`` / ``order`` / ``search`` arguments into
a parsed QueryArgs and builds the ownership-aware filter document. Both the
MongoDB and in-memory repositories use these helpers so they select exactly
the same records.

Filter rules:
    - user mode:  {"$or": [{"userId": caller}, {"id": {"$in": accessible_ids}}]}
    - admin mode: {} (everything)
    - search:     AND-ed with the above as a case-insensitive regex on "name"
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from analytics_pipeline.errors import ValidationError

# Query argument -> stored document field
SORTABLE_FIELDS: dict[str, str] = {
    "name": "name",
    "id": "id",
    "createdat": "createdAt",
    "updatedat": "updatedAt",
}

ASCENDING = 1
DESCENDING = -1


@dataclass(frozen=True, slots=True)
class SortSpec:
    """A single sort key on a stored document field."""

    field: str
    direction: int = ASCENDING

    @property
    def descending(self) -> bool:
        return self.direction == DESCENDING


@dataclass(frozen=True, slots=True)
class QueryArgs:
    """Parsed listing arguments. ``None`` means "not given"."""

    limit: int | None = None
    offset: int | None = None
    sort: SortSpec | None = None
    search: str | None = None

    @classmethod
    def from_query(cls, query: Mapping[str, Any] | None) -> QueryArgs:
        """
        Parse raw query parameters.

        Values may be plain strings or lists of strings (first value wins),
        matching what HTTP frameworks hand out for repeated parameters.

        Raises:
            ValidationError: limit/offset not a non-negative integer, or an
                invalid search expression
        """
        if not query:
            return cls()

        limit = _parse_non_negative("limit", _first(query.get("limit")))
        offset = _parse_non_negative("offset", _first(query.get("offset")))
        sort = parse_order(_first(query.get("order")))

        search = _first(query.get("search"))
        if search is not None:
            try:
                re.compile(search)
            except re.error as e:
                raise ValidationError(f"invalid search expression: {e}") from e

        return cls(limit=limit, offset=offset, sort=sort, search=search)


def _first(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return str(value[0]) if value else None
    return str(value)


def _parse_non_negative(name: str, raw: str | None) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError as e:
        raise ValidationError(f"{name} must be an integer, got {raw!r}") from e
    if value < 0:
        raise ValidationError(f"{name} must not be negative, got {value}")
    return value


def parse_order(raw: str | None) -> SortSpec | None:
    """
    Parse ``field:direction``.

    Only fields in SORTABLE_FIELDS are honored (case-insensitive); anything
    else yields None so the store's default order applies. ``desc`` sorts
    descending, every other direction ascending.
    """
    if not raw:
        return None

    field_name, _, direction = raw.partition(":")
    stored = SORTABLE_FIELDS.get(field_name.strip().lower())
    if stored is None:
        return None

    if direction.strip().lower() == "desc":
        return SortSpec(stored, DESCENDING)
    return SortSpec(stored, ASCENDING)


def build_filter(
    user_id: str,
    *,
    admin: bool,
    accessible_ids: Iterable[str] = (),
    search: str | None = None,
) -> dict[str, Any]:
    """Build the MongoDB filter document for a listing."""
    if admin:
        predicate: dict[str, Any] = {}
    else:
        predicate = {
            "$or": [
                {"userId": user_id},
                {"id": {"$in": sorted(set(accessible_ids))}},
            ]
        }

    if search is None:
        return predicate

    name_match = {"name": {"$regex": search, "$options": "i"}}
    if not predicate:
        return name_match
    return {"$and": [predicate, name_match]}
