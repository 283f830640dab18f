"""Pagination - pure 1-indexed slicing of an ordered record list."""

import math
from dataclasses import dataclass, field

from campusreg.core.errors import ValidationError


@dataclass
class Page:
    """One page of records plus navigation metadata."""
    records: list[dict] = field(default_factory=list)
    page: int = 1
    limit: int = 10
    total: int = 0
    total_pages: int = 0
    has_next: bool = False
    has_prev: bool = False


def paginate_records(records: list[dict], page: int = 1, limit: int = 10) -> Page:
    """Slice records for a 1-indexed page. Pages past the end are empty, not errors."""
    if page < 1:
        raise ValidationError(f"page must be >= 1, got {page}", field="page")
    if limit < 1:
        raise ValidationError(f"limit must be >= 1, got {limit}", field="limit")

    total = len(records)
    total_pages = math.ceil(total / limit)
    start = (page - 1) * limit
    return Page(
        records=records[start:start + limit],
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )
