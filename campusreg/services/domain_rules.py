"""Domain Rules - collection-aware invariants layered on the generic DocumentStore.

Invariants:
    - Event.registered stays within [0, capacity]: +1 per registration created,
      -1 (floored at 0) per registration removed, decrement BEFORE delete
    - One registration per (user_id, event_id)
    - Deleting a user or event leaves no registration referencing it
    - Cascade siblings are best-effort: a failing sibling is logged and reported,
      the cascade continues; failure to delete the owner itself propagates
    - Every multi-step sequence runs inside store.locked(); counter writes are
      additionally guarded with compare-and-swap (update(..., expected=...))

Design Decisions:
    - References are matched with query() (exact equality), never with read_all
      filters, whose string matching is substring-based
    - Store errors are not translated here - callers own user-facing messages
"""

import logging
from dataclasses import dataclass, field

from campusreg.core.credential import StudentCredential
from campusreg.core.domain_types import (
    Collection, EventId, EventSort, RecordId, RegistrationStatus, Role, UserId,
)
from campusreg.core.errors import (
    AlreadyRegisteredError, CampusRegError, CapacityExceededError, ErrorContext,
    NotFoundError, ValidationError,
)
from campusreg.core.event_browse import SEARCH_FIELDS, exact_filters, parse_sort, sort_events
from campusreg.core.pagination import Page, paginate_records
from campusreg.core.record_filters import matches_search
from campusreg.schemas.inputs import EventInput, UserCreate, validate_input
from campusreg.schemas.records import Event, Registration, SessionToken, User
from campusreg.services.document_store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class CascadeFailure:
    collection: str
    record_id: str
    error_code: str
    message: str


@dataclass
class CascadeReport:
    """What a cascade delete removed, and which siblings it could not clean up."""
    root_collection: str
    root_id: str
    deleted: dict[str, int] = field(default_factory=dict)
    events_adjusted: int = 0
    failures: list[CascadeFailure] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failures

    def log_fields(self) -> dict:
        return {
            "deleted": dict(self.deleted),
            "failures": len(self.failures),
            "events_adjusted": self.events_adjusted,
        }

    def count_deleted(self, collection: Collection) -> None:
        self.deleted[collection.value] = self.deleted.get(collection.value, 0) + 1

    def record_failure(self, collection: Collection, record_id: str, error: CampusRegError) -> None:
        logger.warning(
            f"Cascade cleanup failed: {error.message}",
            extra={
                "collection": collection.value,
                "record_id": record_id,
                "error_code": error.code,
            },
        )
        self.failures.append(
            CascadeFailure(collection.value, record_id, error.code, error.message),
        )


class DomainRules:
    """Cascade, capacity and account rules over one DocumentStore."""

    def __init__(self, store: DocumentStore):
        self.store = store

    # ─── Registration ────────────────────────────────────────────

    def _require_event(self, event_id: EventId) -> dict:
        event = self.store.read_one(Collection.EVENTS, event_id)
        if event is None:
            raise NotFoundError("Event", event_id, ErrorContext(collection="events"))
        return event

    def _require_user(self, user_id: UserId) -> dict:
        user = self.store.read_one(Collection.USERS, user_id)
        if user is None:
            raise NotFoundError("User", user_id, ErrorContext(collection="users"))
        return user

    def find_registration(self, user_id: UserId, event_id: EventId) -> dict | None:
        matches = self.store.query(
            Collection.REGISTRATIONS, {"user_id": user_id, "event_id": event_id},
        )
        return matches[0] if matches else None

    def _register(self, event: dict, snapshot: dict) -> Registration:
        """Check duplicate and capacity, then create + increment. Caller holds the lock."""
        user_id = snapshot["user_id"]
        if self.find_registration(user_id, event["id"]) is not None:
            raise AlreadyRegisteredError(user_id, event["id"])

        registered = int(event.get("registered", 0))
        capacity = int(event.get("capacity", 0))
        if registered >= capacity:
            raise CapacityExceededError(event["id"], capacity)

        registration = self.store.create(Collection.REGISTRATIONS, {
            "event_id": event["id"],
            **snapshot,
            "status": RegistrationStatus.REGISTERED.value,
            "registered_at": self.store.clock.now().isoformat(),
        })
        self.store.update(
            Collection.EVENTS, event["id"],
            {"registered": registered + 1},
            expected={"registered": event.get("registered")},
        )
        logger.info(
            "Registration created",
            extra={"user_id": user_id, "event_id": event["id"], "record_id": registration["id"]},
        )
        return Registration.model_validate(registration)

    def register_for_event(self, event_id: EventId, user_id: UserId) -> Registration:
        """Register a user, snapshotting their identity onto the registration."""
        with self.store.locked():
            event = self._require_event(event_id)
            user = self._require_user(user_id)
            return self._register(event, {
                "user_id": user["id"],
                "student_id": user.get("student_id"),
                "student_name": user.get("name"),
                "campus": user.get("campus"),
            })

    def register_with_credential(
        self, event_id: EventId, credential: StudentCredential,
    ) -> Registration:
        """Guest registration keyed by the student id carried in the QR credential."""
        with self.store.locked():
            event = self._require_event(event_id)
            return self._register(event, {
                "user_id": credential.student_id,
                "student_id": credential.student_id,
                "student_name": credential.name,
                "campus": credential.campus,
            })

    def _release_seat(self, event_id: EventId) -> bool:
        """Decrement registered, floored at 0. False when the event is gone or empty."""
        event = self.store.read_one(Collection.EVENTS, event_id)
        if event is None or int(event.get("registered", 0)) <= 0:
            return False
        self.store.update(
            Collection.EVENTS, event_id,
            {"registered": int(event["registered"]) - 1},
            expected={"registered": event["registered"]},
        )
        return True

    def cancel_registration(self, registration_id: RecordId) -> bool:
        """Remove one participant: release the seat, then delete the registration."""
        with self.store.locked():
            registration = self.store.read_one(Collection.REGISTRATIONS, registration_id)
            if registration is None:
                raise NotFoundError("Registration", registration_id)
            self._release_seat(registration["event_id"])
            return self.store.delete(Collection.REGISTRATIONS, registration_id)

    # ─── Cascades ────────────────────────────────────────────────

    def _delete_sibling(self, report: CascadeReport, collection: Collection, record_id: str) -> None:
        try:
            self.store.delete(collection, record_id)
            report.count_deleted(collection)
        except CampusRegError as e:
            report.record_failure(collection, record_id, e)

    def delete_user(self, user_id: UserId) -> CascadeReport:
        """Delete a user with their sessions, QR codes and registrations."""
        with self.store.locked():
            self._require_user(user_id)
            report = CascadeReport(Collection.USERS.value, user_id)

            for collection in (Collection.SESSIONS, Collection.QR_CODES):
                for record in self.store.query(collection, {"user_id": user_id}):
                    self._delete_sibling(report, collection, record["id"])

            for registration in self.store.query(Collection.REGISTRATIONS, {"user_id": user_id}):
                try:
                    if self._release_seat(registration["event_id"]):
                        report.events_adjusted += 1
                except CampusRegError as e:
                    report.record_failure(Collection.EVENTS, registration["event_id"], e)
                self._delete_sibling(report, Collection.REGISTRATIONS, registration["id"])

            self.store.delete(Collection.USERS, user_id)
            report.count_deleted(Collection.USERS)
        logger.info(
            "User deleted",
            extra={"user_id": user_id, "operation": "delete", **report.log_fields()},
        )
        return report

    def delete_event(self, event_id: EventId) -> CascadeReport:
        """Delete an event, then every registration referencing it."""
        with self.store.locked():
            self.store.delete(Collection.EVENTS, event_id)
            report = CascadeReport(Collection.EVENTS.value, event_id)
            report.count_deleted(Collection.EVENTS)
            for registration in self.store.query(Collection.REGISTRATIONS, {"event_id": event_id}):
                self._delete_sibling(report, Collection.REGISTRATIONS, registration["id"])
        logger.info(
            "Event deleted",
            extra={"event_id": event_id, "operation": "delete", **report.log_fields()},
        )
        return report

    # ─── Accounts ────────────────────────────────────────────────

    def sign_up(self, data: dict) -> User:
        """Create a student account. Raises ValidationError or DuplicateKeyError."""
        form = validate_input(UserCreate, data)
        created = self.store.create(Collection.USERS, {
            **form.model_dump(),
            "role": Role.STUDENT.value,
        })
        return User.model_validate(created)

    def authenticate(self, identifier: str, password: str) -> tuple[User, SessionToken] | None:
        """Match email or student id plus the stored password; opens a session.

        Passwords are compared as opaque strings.
        """
        if not identifier or not password:
            return None
        with self.store.locked():
            user = next(
                (
                    u for u in self.store.read_all(Collection.USERS)
                    if identifier in (u.get("email"), u.get("student_id"))
                    and u.get("password") == password
                ),
                None,
            )
            if user is None:
                return None
            session = self.store.create(Collection.SESSIONS, {
                "user_id": user["id"],
                "started_at": self.store.clock.now().isoformat(),
            })
        return User.model_validate(user), SessionToken.model_validate(session)

    def logout(self, session_id: RecordId) -> bool:
        return self.store.delete(Collection.SESSIONS, session_id)

    def promote_to_admin(self, user_id: UserId) -> User:
        updated = self.store.update(Collection.USERS, user_id, {"role": Role.ADMIN.value})
        return User.model_validate(updated)

    # ─── Events ──────────────────────────────────────────────────

    def save_event(self, data: dict, event_id: EventId | None = None) -> Event:
        """Create an event, or update one while preserving its registered count."""
        form = validate_input(EventInput, data)
        fields = form.model_dump()
        with self.store.locked():
            if event_id is None:
                created = self.store.create(Collection.EVENTS, {**fields, "registered": 0})
                return Event.model_validate(created)

            current = self._require_event(event_id)
            registered = int(current.get("registered", 0))
            if form.capacity < registered:
                raise ValidationError(
                    f"capacity ({form.capacity}) is below current registrations ({registered})",
                    field="capacity",
                )
            updated = self.store.update(
                Collection.EVENTS, event_id, {**fields, "registered": registered},
            )
            return Event.model_validate(updated)

    def list_events(self, newest_first: bool = True) -> list[Event]:
        events = [Event.model_validate(e) for e in self.store.read_all(Collection.EVENTS)]
        return sorted(events, key=lambda e: e.date, reverse=newest_first)

    def search_events(
        self,
        term: str | None = None,
        campus: str | None = None,
        category: str | None = None,
        date: str | None = None,
        sort: EventSort | str = EventSort.DATE,
        page: int = 1,
        limit: int = 6,
    ) -> Page:
        """Browse events: free-text term, exact campus/category/date, sorted, paginated.

        Page.records holds event documents; wrap them with Event.model_validate
        where a typed view is needed.
        """
        order = parse_sort(sort)
        conditions = exact_filters(campus=campus, category=category, date=date)
        events = self.store.query(Collection.EVENTS, conditions)
        term = (term or "").strip()
        if term:
            events = [e for e in events if matches_search(e, term, SEARCH_FIELDS)]
        return paginate_records(sort_events(events, order), page, limit)
