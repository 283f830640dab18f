"""Attendance Service - records check-ins from scanned credentials or typed ids.

Invariants:
    - Text that looks like a credential must decode; a malformed one is rejected
      with MalformedCredentialError rather than stored as a raw id
    - Raw ids are resolved against users by student_id, then by user id;
      unknown ids are still recorded (walk-ins) with no name/campus
    - timestamp is ISO-8601 from the store clock, so day-based analytics can parse it
"""

import logging

from campusreg.core.credential import looks_like_credential
from campusreg.core.domain_types import AttendanceStatus, Collection
from campusreg.core.errors import ValidationError
from campusreg.schemas.records import Attendance
from campusreg.services.credential_service import CredentialService
from campusreg.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

ADMIN_MANUAL = "Admin Manual"
QR_SCAN = "QR Scan"


class AttendanceService:

    def __init__(self, store: DocumentStore, credentials: CredentialService):
        self.store = store
        self.credentials = credentials

    def _lookup_student(self, scanned_id: str) -> dict | None:
        matches = self.store.query(Collection.USERS, {"student_id": scanned_id})
        if matches:
            return matches[0]
        return self.store.read_one(Collection.USERS, scanned_id)

    def record_scan(self, scan_data: str, scan_method: str | None = None) -> Attendance:
        scan_data = (scan_data or "").strip()
        if not scan_data:
            raise ValidationError("Please enter QR data or ID", field="scan_data")

        if looks_like_credential(scan_data):
            credential = self.credentials.decode(scan_data)
            student_id, name, campus = credential.student_id, credential.name, credential.campus
            method = scan_method or QR_SCAN
        else:
            user = self._lookup_student(scan_data)
            student_id = (user.get("student_id") or scan_data) if user else scan_data
            name = user.get("name") if user else None
            campus = user.get("campus") if user else None
            method = scan_method or ADMIN_MANUAL

        record = self.store.create(Collection.ATTENDANCE, {
            "student_id": student_id,
            "name": name,
            "campus": campus,
            "timestamp": self.store.clock.now().isoformat(),
            "status": AttendanceStatus.PRESENT.value,
            "scan_method": method,
        })
        logger.info(
            "Attendance recorded",
            extra={"record_id": record["id"], "operation": "create", "collection": "attendance"},
        )
        return Attendance.model_validate(record)

    def list_recent(self, limit: int = 10) -> list[Attendance]:
        """Most recent check-ins first."""
        records = self.store.read_all(Collection.ATTENDANCE)
        return [Attendance.model_validate(r) for r in reversed(records[-limit:])] if limit > 0 else []
