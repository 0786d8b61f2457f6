"""Data models for the mybook catalog."""
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class EntityRef(Generic[T]):
    """Identifier of a Genre or Tag held by a Book.

    The referenced entity is never looked up; the id is only carried
    through to the stored document.
    """
    id: int


@dataclass
class Niche:
    id: int
    name: str

    def to_document(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class Genre:
    """Catalog genre, keyed by its API id."""
    id: int
    name: str
    slug: str
    niche: Optional[Niche] = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "niche": self.niche.to_document() if self.niche else None
        }


@dataclass
class Tag:
    """Catalog tag, keyed by its API id."""
    id: int
    name: str
    slug: str

    def to_document(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "slug": self.slug}


@dataclass
class Book:
    """Book as embedded in its author's document."""
    id: int
    name: str
    annotation: Optional[str]
    available: bool
    genres: List[EntityRef[Genre]] = field(default_factory=list)
    tags: List[EntityRef[Tag]] = field(default_factory=list)

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "annotation": self.annotation,
            "available": self.available,
            "genres": [ref.id for ref in self.genres],
            "tags": [ref.id for ref in self.tags]
        }


@dataclass
class Author:
    """Author aggregate with the books seen for it on one page."""
    id: int
    name: str
    slug: str
    books: List[Book] = field(default_factory=list)

    @property
    def book_count(self) -> int:
        """Number of books written with this aggregate (not a running total)."""
        return len(self.books)

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "book_count": self.book_count,
            "books": [book.to_document() for book in self.books]
        }


@dataclass
class Page:
    """One fetched page of a paginated resource."""
    number: int
    url: str
    records: List[Dict[str, Any]]
    next_url: Optional[str] = None


@dataclass
class StageResult:
    """Outcome of crawling one resource."""
    resource: str
    pages: int = 0
    records: int = 0
    saved: int = 0
    completed: bool = True
    error: Optional[str] = None

    @property
    def status(self) -> str:
        return "completed" if self.completed else "stopped early"


@dataclass
class SyncSummary:
    """Report of a full pipeline run."""
    stages: List[StageResult] = field(default_factory=list)
    books_processed: int = 0

    def stage(self, resource: str) -> Optional[StageResult]:
        for result in self.stages:
            if result.resource == resource:
                return result
        return None
