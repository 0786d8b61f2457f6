"""Exceptions raised while crawling and storing the catalog."""
from enum import Enum
from typing import Any, Dict, Optional


class SyncError(Exception):
    """Base class for catalog sync errors."""


class MalformedRecord(SyncError):
    """A raw API record is missing a field the transformers require."""
    
    def __init__(self, resource: str, field: str, record: Optional[Dict[str, Any]] = None):
        self.resource = resource
        self.field = field
        self.record = record
        record_id = record.get("id") if isinstance(record, dict) else None
        super().__init__(f"Malformed {resource} record (id={record_id}): missing '{field}'")


class CrawlAbortReason(Enum):
    PAGE_LIMIT_EXCEEDED = "page_limit_exceeded"


class CrawlAborted(SyncError):
    """A resource crawl was stopped before the server ran out of pages."""
    
    def __init__(self, reason: CrawlAbortReason, resource: str, detail: str = ""):
        self.reason = reason
        self.resource = resource
        self.detail = detail
        message = f"{resource} crawl aborted: {reason.value}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class UnknownCollection(SyncError):
    """A store operation referenced a collection that is not declared."""
