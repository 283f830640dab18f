"""Record Types - typed views over the documents held in each collection.

Invariants:
    - Every record has a string id; timestamps are ISO-8601 strings as persisted
    - Event enforces 0 <= registered <= capacity and capacity > 0
    - extra="allow": fields written by older clients survive a read/write cycle

Design Decisions:
    - The store engine works on dicts; these models are the typed boundary that
      DomainRules hands to callers (to_record) and validates against
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from campusreg.core.domain_types import (
    AttendanceStatus, Collection, RegistrationStatus, Role,
)

DEFAULT_EVENT_IMAGE = "assets/images/events/default.jpg"


class StoredRecord(BaseModel):
    """Fields every stored document carries."""
    model_config = ConfigDict(extra="allow")

    id: str
    created_at: str | None = None
    updated_at: str | None = None


class User(StoredRecord):
    name: str
    email: str
    student_id: str = ""
    campus: str = ""
    password: str = ""
    role: Role = Role.STUDENT


class Event(StoredRecord):
    title: str
    category: str = ""
    campus: str = ""
    date: str
    time: str = ""
    location: str = ""
    description: str = ""
    capacity: int = Field(gt=0)
    registered: int = Field(default=0, ge=0)
    speaker: str | None = None
    image: str = DEFAULT_EVENT_IMAGE

    @model_validator(mode="after")
    def check_registered_within_capacity(self) -> "Event":
        if self.registered > self.capacity:
            raise ValueError(
                f"registered ({self.registered}) exceeds capacity ({self.capacity})",
            )
        return self

    @property
    def available(self) -> int:
        return self.capacity - self.registered


class Registration(StoredRecord):
    event_id: str
    user_id: str
    student_id: str | None = None
    student_name: str | None = None
    campus: str | None = None
    status: RegistrationStatus = RegistrationStatus.REGISTERED
    registered_at: str


class Attendance(StoredRecord):
    student_id: str
    name: str | None = None
    campus: str | None = None
    timestamp: str
    status: AttendanceStatus = AttendanceStatus.PRESENT
    scan_method: str = "Admin Manual"


class SessionToken(StoredRecord):
    user_id: str
    started_at: str


class QRCodeRecord(StoredRecord):
    user_id: str
    payload: str


class AnalyticsDay(StoredRecord):
    date: str
    operations: dict[str, int] = Field(default_factory=dict)
    user_activity: dict[str, Any] = Field(default_factory=dict)
    event_stats: dict[str, Any] = Field(default_factory=dict)


RECORD_TYPES: dict[Collection, type[StoredRecord]] = {
    Collection.USERS: User,
    Collection.EVENTS: Event,
    Collection.REGISTRATIONS: Registration,
    Collection.ATTENDANCE: Attendance,
    Collection.SESSIONS: SessionToken,
    Collection.QR_CODES: QRCodeRecord,
    Collection.ANALYTICS: AnalyticsDay,
}


def to_record(collection: Collection, document: dict) -> StoredRecord:
    """Typed view of a stored document."""
    return RECORD_TYPES[collection].model_validate(document)
