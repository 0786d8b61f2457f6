"""Group a page of books under their authors."""
from typing import Any, Dict, List
from mybook_sync.models import Author
from mybook_sync.parse import require_field, parse_book


def reconcile(raw_books: List[Dict[str, Any]]) -> Dict[int, Author]:
    """
    Build author aggregates from one page of raw book records.

    The mapping is built from scratch for every page. An author seen on an
    earlier page starts again with only this page's books, and the upsert
    that follows replaces the stored document.

    Args:
        raw_books: Raw book records, each embedding an `author` sub-object

    Returns:
        Author id -> Author, in order of first appearance on the page

    Raises:
        MalformedRecord: If a book or its author sub-object is incomplete
    """
    authors: Dict[int, Author] = {}

    for raw_book in raw_books:
        raw_author = require_field(raw_book, "author", "book")
        author_id = require_field(raw_author, "id", "author")

        author = authors.get(author_id)
        if author is None:
            author = Author(
                id=author_id,
                name=require_field(raw_author, "cover_name", "author"),
                slug=require_field(raw_author, "slug", "author")
            )
            authors[author_id] = author

        author.books.append(parse_book(raw_book))

    return authors
