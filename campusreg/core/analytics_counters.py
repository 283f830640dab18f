"""Analytics Counters - per-day operation tallies kept alongside the collections.

Invariants:
    - Exactly one day record per YYYY-MM-DD, created lazily on first write that day
    - Each mutation bumps two counters: the operation name and the collection name
    - Day records are only ever appended or incremented, never removed here

Design Decisions:
    - Pure list-in/list-out: the store owns the read and the write of the analytics key
"""

from datetime import date

from campusreg.core.domain_types import OperationType


def new_day_record(day: str) -> dict:
    return {
        "id": day,
        "date": day,
        "operations": {},
        "user_activity": {},
        "event_stats": {},
    }


def record_operation(
    days: list[dict], day: str, collection: str, operation: OperationType,
) -> list[dict]:
    """Increment today's counters for operation and collection. Returns the new list."""
    updated = [dict(d) for d in days]
    target = next((d for d in updated if d.get("date") == day), None)
    if target is None:
        target = new_day_record(day)
        updated.append(target)

    counters = dict(target.get("operations") or {})
    for name in (operation.value, collection):
        counters[name] = counters.get(name, 0) + 1
    target["operations"] = counters
    return updated


def _as_date(value: str | date | None) -> date | None:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def days_between(
    days: list[dict], start: str | date | None = None, end: str | date | None = None,
) -> list[dict]:
    """Day records whose date lies within the inclusive bounds (None = unbounded)."""
    lower, upper = _as_date(start), _as_date(end)
    selected = []
    for record in days:
        try:
            day = date.fromisoformat(record["date"])
        except (KeyError, TypeError, ValueError):
            continue
        if lower and day < lower:
            continue
        if upper and day > upper:
            continue
        selected.append(record)
    return selected


def sum_operations(days: list[dict], names: tuple[str, ...] = ("create", "update", "delete")) -> int:
    return sum(
        int((d.get("operations") or {}).get(name, 0)) for d in days for name in names
    )
