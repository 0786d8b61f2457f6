"""Parse and normalize mybook.ru catalog records."""
from typing import Any, Dict, Iterable, List, Optional
from mybook_sync.errors import MalformedRecord
from mybook_sync.models import Book, EntityRef, Genre, Niche, Tag

_MISSING = object()


def require_field(record: Dict[str, Any], field: str, resource: str) -> Any:
    """Return `record[field]`, failing on absent or null values."""
    if not isinstance(record, dict):
        raise MalformedRecord(resource, field)
    value = record.get(field, _MISSING)
    if value is _MISSING or value is None:
        raise MalformedRecord(resource, field, record)
    return value


def _refs(items: Iterable[Dict[str, Any]], resource: str) -> List[EntityRef]:
    # Sub-objects collapse to bare ids, first occurrence wins
    seen = set()
    refs = []
    for item in items:
        ref_id = require_field(item, "id", resource)
        if ref_id not in seen:
            seen.add(ref_id)
            refs.append(EntityRef(ref_id))
    return refs


def parse_genre(item: Dict[str, Any]) -> Genre:
    """
    Parse a single genre from the catalog API.

    Args:
        item: Raw genre record

    Returns:
        Genre, with niche set to None when the record has none

    Raises:
        MalformedRecord: If id, name or slug is missing
    """
    niche: Optional[Niche] = None
    raw_niche = item.get("niche") if isinstance(item, dict) else None
    if raw_niche:
        niche = Niche(
            id=require_field(raw_niche, "id", "niche"),
            name=require_field(raw_niche, "name", "niche")
        )

    return Genre(
        id=require_field(item, "id", "genre"),
        name=require_field(item, "name", "genre"),
        slug=require_field(item, "slug", "genre"),
        niche=niche
    )


def parse_tag(item: Dict[str, Any]) -> Tag:
    """Parse a single tag from the catalog API."""
    return Tag(
        id=require_field(item, "id", "tag"),
        name=require_field(item, "name", "tag"),
        slug=require_field(item, "slug", "tag")
    )


def parse_book(item: Dict[str, Any]) -> Book:
    """
    Parse a single book from the catalog API.

    The owning author is not part of the result; see reconcile.reconcile.

    Args:
        item: Raw book record

    Returns:
        Book with genre and tag sub-objects reduced to references

    Raises:
        MalformedRecord: If a required field is missing
    """
    return Book(
        id=require_field(item, "id", "book"),
        name=require_field(item, "name", "book"),
        annotation=item.get("annotation"),
        available=bool(require_field(item, "available", "book")),
        genres=_refs(require_field(item, "genres", "book"), "genre"),
        tags=_refs(require_field(item, "tags", "book"), "tag")
    )


def parse_genres_page(records: List[Dict[str, Any]]) -> List[Genre]:
    return [parse_genre(record) for record in records]


def parse_tags_page(records: List[Dict[str, Any]]) -> List[Tag]:
    return [parse_tag(record) for record in records]
