"""Event Browse - pure filter/sort helpers behind the student event browser.

Invariants:
    - Free text matches title, description, location or speaker
      (case-insensitive substring); campus/category/date match exactly
    - "all" or None for a filter means no filter
    - Sorting is stable: ties keep store order
    - popularity = registered / capacity, highest first; capacity <= 0 counts as 0
"""

from typing import Any, Mapping

from campusreg.core.domain_types import EventSort
from campusreg.core.errors import ValidationError

SEARCH_FIELDS = ("title", "description", "location", "speaker")
ANY = "all"


def exact_filters(**filters: str | None) -> dict[str, Any]:
    """Drop unset and "all" filters; the rest become equality conditions."""
    return {
        name: value for name, value in filters.items()
        if value is not None and value != ANY and value != ""
    }


def parse_sort(sort: EventSort | str) -> EventSort:
    try:
        return EventSort(sort)
    except ValueError:
        allowed = ", ".join(s.value for s in EventSort)
        raise ValidationError(f"Unknown sort '{sort}' (expected one of: {allowed})", field="sort")


def popularity(event: Mapping[str, Any]) -> float:
    try:
        capacity = float(event.get("capacity") or 0)
        registered = float(event.get("registered") or 0)
    except (TypeError, ValueError):
        return 0.0
    return registered / capacity if capacity > 0 else 0.0


def sort_events(events: list[dict], sort: EventSort) -> list[dict]:
    if sort is EventSort.DATE:
        return sorted(events, key=lambda e: str(e.get("date") or ""))
    if sort is EventSort.DATE_DESC:
        return sorted(events, key=lambda e: str(e.get("date") or ""), reverse=True)
    if sort is EventSort.POPULARITY:
        return sorted(events, key=popularity, reverse=True)
    return sorted(events, key=lambda e: str(e.get("title") or "").casefold())
