"""Domain Types - rich types that replace bare primitives across the codebase.

Invariants:
    - RecordId, UserId, EventId wrap str; ids are opaque strings everywhere
    - Collection enumerates every persisted collection; nothing else is addressable
    - All valid states encoded as Enums - no raw string matching in rules

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (documents are JSON)
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

RecordId = NewType("RecordId", str)
UserId = NewType("UserId", str)
EventId = NewType("EventId", str)


# ─── Enums ───────────────────────────────────────────────────────

class Collection(str, Enum):
    """Named collections - each maps to one storage key."""
    USERS = "users"
    EVENTS = "events"
    ATTENDANCE = "attendance"
    REGISTRATIONS = "registrations"
    QR_CODES = "qr_codes"
    SESSIONS = "sessions"
    ANALYTICS = "analytics"


class Role(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"


class RegistrationStatus(str, Enum):
    REGISTERED = "registered"


class AttendanceStatus(str, Enum):
    PRESENT = "Present"


class OperationType(str, Enum):
    """Mutations counted by the per-day analytics and accepted by transaction()."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ReportingWindow(str, Enum):
    """Dashboard reporting periods."""
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"


class EventSort(str, Enum):
    """Orderings offered by the event browser."""
    DATE = "date"
    DATE_DESC = "date-desc"
    POPULARITY = "popularity"
    NAME = "name"


def parse_collection(name: str | Collection) -> Collection | None:
    """Resolve a collection name; None when the name is not a known collection."""
    if isinstance(name, Collection):
        return name
    try:
        return Collection(name)
    except ValueError:
        return None
