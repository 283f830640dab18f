"""Attendance Service - check-ins from credentials, student ids and walk-ins."""

import pytest

from campusreg.core.errors import MalformedCredentialError, ValidationError
from campusreg.services.attendance_service import (
    ADMIN_MANUAL, QR_SCAN, AttendanceService,
)


@pytest.fixture
def attendance(store, credentials):
    return AttendanceService(store, credentials)


def test_scan_of_credential(attendance, credentials, clock):
    credentials.generate("2023-00123", "Juan Dela Cruz", "Main Campus")
    record = attendance.record_scan(credentials.active_text())
    assert record.student_id == "2023-00123"
    assert record.name == "Juan Dela Cruz"
    assert record.scan_method == QR_SCAN
    assert record.status == "Present"
    assert record.timestamp == clock.now().isoformat()


def test_manual_entry_resolves_student_id(attendance, make_user):
    make_user(name="Maria Santos", student_id="2023-00234", campus="Cainta Campus")
    record = attendance.record_scan("  2023-00234 ")
    assert record.name == "Maria Santos"
    assert record.campus == "Cainta Campus"
    assert record.scan_method == ADMIN_MANUAL


def test_manual_entry_resolves_user_id(attendance, make_user):
    user = make_user(student_id="2023-00999")
    assert attendance.record_scan(user["id"]).student_id == "2023-00999"


def test_unknown_id_is_recorded_as_walk_in(store, attendance):
    record = attendance.record_scan("visitor-7", scan_method="Front Desk")
    assert record.student_id == "visitor-7"
    assert record.name is None
    assert record.scan_method == "Front Desk"
    assert store.count("attendance") == 1


def test_blank_scan_rejected(attendance):
    with pytest.raises(ValidationError):
        attendance.record_scan("   ")


def test_malformed_credential_rejected(store, attendance):
    with pytest.raises(MalformedCredentialError):
        attendance.record_scan('{"studentId": "x"')
    assert store.read_all("attendance") == []


def test_credential_with_non_ascii_signature_rejected(store, attendance):
    with pytest.raises(MalformedCredentialError):
        attendance.record_scan('{"studentId":"1","sig":"é"}')
    assert store.read_all("attendance") == []


def test_list_recent_newest_first(attendance, clock):
    for sid in ("a", "b", "c"):
        attendance.record_scan(sid)
        clock.advance(minutes=1)
    assert [r.student_id for r in attendance.list_recent(2)] == ["c", "b"]
    assert attendance.list_recent(0) == []
