"""User Export - CSV rendering of the users collection for admins."""

import csv
import io
from datetime import datetime

from campusreg.core.domain_types import Collection
from campusreg.core.errors import NotFoundError
from campusreg.services.document_store import DocumentStore

CSV_HEADERS = ["Name", "Email", "Student ID", "Campus", "Role", "Created At"]


def _created_date(value) -> str:
    try:
        return datetime.fromisoformat(str(value)).date().isoformat()
    except (TypeError, ValueError):
        return ""


def export_users_csv(store: DocumentStore) -> str:
    """All users as CSV, every cell quoted. Raises NotFoundError when there are none."""
    users = store.read_all(Collection.USERS)
    if not users:
        raise NotFoundError("Users", "*")

    buffer = io.StringIO()
    buffer.write(",".join(CSV_HEADERS) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for user in users:
        writer.writerow([
            user.get("name", ""),
            user.get("email", ""),
            user.get("student_id", ""),
            user.get("campus", ""),
            user.get("role", ""),
            _created_date(user.get("created_at")),
        ])
    return buffer.getvalue()
