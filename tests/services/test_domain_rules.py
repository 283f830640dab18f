"""Domain Rules - registration capacity, cascades and accounts.

Invariants verified:
    - registered == number of registrations per event after any sequence of ops
    - a full event rejects registration; a duplicate registration is rejected
    - deleting a user/event leaves no dangling registrations
    - cascade siblings are best-effort and reported
"""

import logging
from datetime import datetime, timezone

import pytest

from campusreg.core.credential import StudentCredential
from campusreg.core.domain_types import Collection, Role
from campusreg.core.errors import (
    AlreadyRegisteredError, CapacityExceededError, DuplicateKeyError, NotFoundError,
    ValidationError,
)


def _registered(store, event_id):
    return store.read_one("events", event_id)["registered"]


def _registrations_for(store, event_id):
    return store.query("registrations", {"event_id": event_id})


# ─── registration ────────────────────────────────────────────────

def test_orientation_capacity_scenario(store, rules, make_user, make_event):
    event = make_event(title="Orientation", capacity=2)
    u1, u2, u3 = make_user(), make_user(), make_user()

    rules.register_for_event(event["id"], u1["id"])
    with pytest.raises(AlreadyRegisteredError):
        rules.register_for_event(event["id"], u1["id"])
    assert _registered(store, event["id"]) == 1
    rules.register_for_event(event["id"], u2["id"])
    assert _registered(store, event["id"]) == 2

    with pytest.raises(CapacityExceededError):
        rules.register_for_event(event["id"], u3["id"])
    assert _registered(store, event["id"]) == 2
    assert len(_registrations_for(store, event["id"])) == 2


def test_registration_snapshots_user_identity(rules, make_user, make_event):
    event = make_event()
    user = make_user(name="Juan", student_id="2023-00123", campus="Cainta Campus")
    registration = rules.register_for_event(event["id"], user["id"])
    assert registration.user_id == user["id"]
    assert registration.student_id == "2023-00123"
    assert registration.student_name == "Juan"
    assert registration.campus == "Cainta Campus"
    assert registration.status == "registered"


def test_duplicate_registration_rejected(store, rules, make_user, make_event):
    event = make_event()
    user = make_user()
    rules.register_for_event(event["id"], user["id"])
    with pytest.raises(AlreadyRegisteredError):
        rules.register_for_event(event["id"], user["id"])
    assert _registered(store, event["id"]) == 1


def test_register_unknown_event_or_user(rules, make_user, make_event):
    with pytest.raises(NotFoundError):
        rules.register_for_event("missing", make_user()["id"])
    with pytest.raises(NotFoundError):
        rules.register_for_event(make_event()["id"], "missing")


def test_register_with_credential(store, rules, make_event):
    event = make_event()
    credential = StudentCredential(
        student_id="2023-00234", name="Maria Santos", campus="Cainta Campus",
        generated_at=datetime(2025, 9, 15, tzinfo=timezone.utc),
    )
    registration = rules.register_with_credential(event["id"], credential)
    assert registration.user_id == "2023-00234"
    assert registration.student_name == "Maria Santos"
    assert _registered(store, event["id"]) == 1
    with pytest.raises(AlreadyRegisteredError):
        rules.register_with_credential(event["id"], credential)


def test_cancel_registration_releases_seat(store, rules, make_user, make_event):
    event = make_event()
    registration = rules.register_for_event(event["id"], make_user()["id"])
    assert rules.cancel_registration(registration.id) is True
    assert _registered(store, event["id"]) == 0
    assert store.read_one("registrations", registration.id) is None
    with pytest.raises(NotFoundError):
        rules.cancel_registration(registration.id)


def test_cancel_never_drops_registered_below_zero(store, rules, make_user, make_event):
    event = make_event()
    registration = rules.register_for_event(event["id"], make_user()["id"])
    store.update("events", event["id"], {"registered": 0})
    rules.cancel_registration(registration.id)
    assert _registered(store, event["id"]) == 0


# ─── cascades ────────────────────────────────────────────────────

def test_delete_user_cascades_everything(store, rules, make_user, make_event):
    e1, e2 = make_event(), make_event()
    user = make_user()
    other = make_user()
    rules.register_for_event(e1["id"], user["id"])
    rules.register_for_event(e2["id"], user["id"])
    rules.register_for_event(e1["id"], other["id"])
    store.create("sessions", {"user_id": user["id"], "started_at": "2025-09-15T10:00:00"})
    store.create("qr_codes", {"user_id": user["id"], "payload": "{}"})

    report = rules.delete_user(user["id"])

    assert report.complete
    assert report.deleted == {"sessions": 1, "qr_codes": 1, "registrations": 2, "users": 1}
    assert report.events_adjusted == 2
    assert store.read_one("users", user["id"]) is None
    assert store.query("registrations", {"user_id": user["id"]}) == []
    assert store.query("sessions", {"user_id": user["id"]}) == []
    assert _registered(store, e1["id"]) == 1
    assert _registered(store, e2["id"]) == 0


def test_delete_user_missing_raises(rules):
    with pytest.raises(NotFoundError):
        rules.delete_user("ghost")


def test_delete_user_with_vanished_event_still_removes_registration(store, rules, make_user, make_event):
    event = make_event()
    user = make_user()
    rules.register_for_event(event["id"], user["id"])
    # event removed without its cascade
    store.delete("events", event["id"])

    report = rules.delete_user(user["id"])
    assert report.events_adjusted == 0
    assert report.deleted["registrations"] == 1
    assert store.read_all("registrations") == []


def test_delete_user_reports_failed_seat_release(store, rules, make_user, make_event, monkeypatch):
    event = make_event()
    user = make_user()
    rules.register_for_event(event["id"], user["id"])

    def stale(*args, **kwargs):
        raise ValidationError("stale counter")

    monkeypatch.setattr(rules, "_release_seat", stale)
    report = rules.delete_user(user["id"])
    assert not report.complete
    assert report.failures[0].collection == "events"
    assert report.failures[0].record_id == event["id"]
    assert store.read_all("registrations") == []
    assert store.read_one("users", user["id"]) is None


def test_delete_event_cascades_registrations(store, rules, make_user, make_event):
    event, other = make_event(), make_event()
    rules.register_for_event(event["id"], make_user()["id"])
    rules.register_for_event(event["id"], make_user()["id"])
    kept = rules.register_for_event(other["id"], make_user()["id"])

    report = rules.delete_event(event["id"])
    assert report.deleted == {"events": 1, "registrations": 2}
    assert store.read_one("events", event["id"]) is None
    assert store.count("registrations", {"event_id": event["id"]}) == 0
    assert [r["id"] for r in store.read_all("registrations")] == [kept.id]


def test_delete_event_missing_raises(rules):
    with pytest.raises(NotFoundError):
        rules.delete_event("ghost")


def test_registered_matches_registrations_after_mixed_ops(store, rules, make_user, make_event):
    event = make_event(capacity=5)
    users = [make_user() for _ in range(4)]
    regs = [rules.register_for_event(event["id"], u["id"]) for u in users]
    rules.cancel_registration(regs[0].id)
    rules.delete_user(users[1]["id"])
    rules.register_for_event(event["id"], users[0]["id"])
    assert _registered(store, event["id"]) == len(_registrations_for(store, event["id"])) == 3


# ─── accounts ────────────────────────────────────────────────────

SIGN_UP = {
    "name": "  Ana Reyes ",
    "email": "ana@icct.edu.ph",
    "student_id": "2024-00001",
    "campus": "Main Campus",
    "password": "pw",
}


def test_sign_up_creates_student(store, rules):
    user = rules.sign_up(dict(SIGN_UP))
    assert user.name == "Ana Reyes"
    assert user.role == Role.STUDENT
    assert store.count(Collection.USERS) == 1


def test_sign_up_duplicate_email(rules):
    rules.sign_up(dict(SIGN_UP))
    with pytest.raises(DuplicateKeyError):
        rules.sign_up({**SIGN_UP, "student_id": "2024-00002"})


def test_sign_up_missing_field(rules):
    with pytest.raises(ValidationError) as exc:
        rules.sign_up({**SIGN_UP, "campus": "   "})
    assert exc.value.field == "campus"


def test_authenticate_by_email_or_student_id(store, rules, make_user):
    user = make_user(email="juan@icct.edu.ph", student_id="2023-00123", password="pw")
    found, session = rules.authenticate("juan@icct.edu.ph", "pw")
    assert found.id == user["id"]
    assert session.user_id == user["id"]
    assert rules.authenticate("2023-00123", "pw")[0].id == user["id"]
    assert store.count("sessions") == 2


def test_authenticate_rejects_bad_credentials(store, rules, make_user):
    make_user(email="juan@icct.edu.ph", password="pw")
    assert rules.authenticate("juan@icct.edu.ph", "wrong") is None
    assert rules.authenticate("nobody@icct.edu.ph", "pw") is None
    assert rules.authenticate("", "") is None
    assert store.count("sessions") == 0


def test_logout_removes_session(store, rules, make_user):
    make_user(email="juan@icct.edu.ph", password="pw")
    _, session = rules.authenticate("juan@icct.edu.ph", "pw")
    assert rules.logout(session.id) is True
    assert store.read_all("sessions") == []


def test_promote_to_admin(rules, make_user):
    user = make_user()
    assert rules.promote_to_admin(user["id"]).role == Role.ADMIN


# ─── events ──────────────────────────────────────────────────────

EVENT_FORM = {"title": "Tech Summit", "date": "2025-10-05", "capacity": 30, "campus": "Main Campus"}


def test_save_event_create_starts_at_zero(rules):
    event = rules.save_event({**EVENT_FORM, "registered": 12})
    assert event.registered == 0
    assert event.available == 30
    assert event.image.endswith("default.jpg")


def test_save_event_update_preserves_registered(store, rules, make_user):
    event = rules.save_event(dict(EVENT_FORM))
    rules.register_for_event(event.id, make_user()["id"])
    updated = rules.save_event({**EVENT_FORM, "capacity": 40, "location": "Gym"}, event.id)
    assert updated.capacity == 40
    assert updated.location == "Gym"
    assert updated.registered == 1


def test_save_event_rejects_capacity_below_registered(rules, make_user):
    event = rules.save_event({**EVENT_FORM, "capacity": 2})
    rules.register_for_event(event.id, make_user()["id"])
    rules.register_for_event(event.id, make_user()["id"])
    with pytest.raises(ValidationError) as exc:
        rules.save_event({**EVENT_FORM, "capacity": 1}, event.id)
    assert exc.value.field == "capacity"


@pytest.mark.parametrize("bad", [
    {"capacity": 0},
    {"date": "next friday"},
    {"title": "  "},
])
def test_save_event_validation(rules, bad):
    with pytest.raises(ValidationError):
        rules.save_event({**EVENT_FORM, **bad})


def test_list_events_sorted_by_date(rules):
    rules.save_event({**EVENT_FORM, "title": "A", "date": "2025-09-01"})
    rules.save_event({**EVENT_FORM, "title": "B", "date": "2025-11-01"})
    rules.save_event({**EVENT_FORM, "title": "C", "date": "2025-10-01"})
    assert [e.title for e in rules.list_events()] == ["B", "C", "A"]
    assert [e.title for e in rules.list_events(newest_first=False)] == ["A", "C", "B"]


# ─── event browsing ──────────────────────────────────────────────

@pytest.fixture
def catalog(store, make_event):
    make_event(id="fair", title="Career Fair", category="Career", campus="Main Campus",
               date="2025-10-10", location="Gym", capacity=100, registered=90)
    make_event(id="hack", title="hackathon", category="Tech", campus="Cainta Campus",
               date="2025-09-20", description="Build apps overnight", capacity=50, registered=10)
    make_event(id="talk", title="AI Talk", category="Tech", campus="Main Campus",
               date="2025-11-05", speaker="Dr. Reyes", capacity=20, registered=19)


def _ids(page):
    return [e["id"] for e in page.records]


def test_search_events_default_sort_is_date(rules, catalog):
    page = rules.search_events()
    assert _ids(page) == ["hack", "fair", "talk"]
    assert page.total == 3


@pytest.mark.parametrize("sort, expected", [
    ("date", ["hack", "fair", "talk"]),
    ("date-desc", ["talk", "fair", "hack"]),
    ("popularity", ["talk", "fair", "hack"]),
    ("name", ["talk", "fair", "hack"]),
])
def test_search_events_sort_modes(rules, catalog, sort, expected):
    assert _ids(rules.search_events(sort=sort)) == expected


@pytest.mark.parametrize("term, expected", [
    ("FAIR", ["fair"]),
    ("overnight", ["hack"]),
    ("gym", ["fair"]),
    ("reyes", ["talk"]),
    ("nothing-matches", []),
])
def test_search_events_term_covers_text_fields(rules, catalog, term, expected):
    assert _ids(rules.search_events(term=term)) == expected


def test_search_events_exact_filters(rules, catalog):
    assert _ids(rules.search_events(campus="Main Campus")) == ["fair", "talk"]
    assert _ids(rules.search_events(campus="Main")) == []
    assert _ids(rules.search_events(category="Tech")) == ["hack", "talk"]
    assert _ids(rules.search_events(date="2025-10-10")) == ["fair"]
    assert _ids(rules.search_events(campus="all", category="all")) == ["hack", "fair", "talk"]


def test_search_events_combines_term_and_filters(rules, catalog):
    assert _ids(rules.search_events(term="a", category="Tech", campus="Main Campus")) == ["talk"]


def test_search_events_paginates(rules, catalog):
    page = rules.search_events(page=2, limit=2)
    assert _ids(page) == ["talk"]
    assert page.has_prev and not page.has_next
    assert page.total_pages == 2


def test_search_events_unknown_sort(rules, catalog):
    with pytest.raises(ValidationError):
        rules.search_events(sort="random")


def test_cascade_outcome_is_logged(caplog, rules, make_user, make_event):
    event = make_event()
    user = make_user()
    rules.register_for_event(event["id"], user["id"])
    with caplog.at_level(logging.INFO, logger="campusreg.services.domain_rules"):
        rules.delete_user(user["id"])
    record = next(r for r in caplog.records if r.getMessage() == "User deleted")
    assert record.failures == 0
    assert record.events_adjusted == 1
    assert record.deleted == {"registrations": 1, "users": 1}


def test_credential_registration_is_keyed_by_student_id(store, rules, make_user, make_event):
    event = make_event()
    user = make_user(student_id="2023-00234")
    credential = StudentCredential(
        student_id="2023-00234", name=user["name"], campus=user["campus"],
        generated_at=datetime(2025, 9, 15, tzinfo=timezone.utc),
    )
    registration = rules.register_with_credential(event["id"], credential)

    report = rules.delete_user(user["id"])

    assert "registrations" not in report.deleted
    assert store.read_one("registrations", registration.id)["user_id"] == "2023-00234"
