"""Dashboard Stats - pure point-in-time statistics over collection snapshots.

Invariants:
    - All inputs are plain record lists plus `now` (no IO, no clock access)
    - participation_rate is 0 when there are no students, else rounded half-up
    - events_this_month uses the calendar month of `now` whatever the window is
    - Never raises on bad record data - unparseable dates/timestamps are skipped

Design Decisions:
    - Window bounds computed here so the aggregator and tests share one definition
    - "month" window starts on the same day of the previous month, clamped to
      that month's last day
"""

import calendar
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from campusreg.core.analytics_counters import days_between, sum_operations
from campusreg.core.domain_types import ReportingWindow, Role


@dataclass
class DashboardStats:
    """Admin dashboard figures for one reporting window."""
    window: ReportingWindow
    window_start: datetime | None
    window_end: datetime | None
    total_students: int
    events_this_month: int
    todays_attendance: int
    participation_rate: int
    operations_in_window: int


def _midnight(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _same_day_previous_month(moment: datetime) -> datetime:
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return _midnight(moment).replace(year=year, month=month, day=day)


def window_bounds(
    window: ReportingWindow, now: datetime,
) -> tuple[datetime | None, datetime | None]:
    """Start/end of a reporting window relative to now. (None, None) for ALL."""
    if window is ReportingWindow.TODAY:
        start = _midnight(now)
        return start, start + timedelta(days=1)
    if window is ReportingWindow.WEEK:
        return _midnight(now) - timedelta(days=7), now
    if window is ReportingWindow.MONTH:
        return _same_day_previous_month(now), now
    return None, None


def _parse_date(value) -> date | None:
    try:
        return date.fromisoformat(str(value)[:10])
    except (TypeError, ValueError):
        return None


def _parse_timestamp(value) -> datetime | None:
    try:
        return datetime.fromisoformat(str(value))
    except (TypeError, ValueError):
        return None


def _on_day(timestamp: datetime, now: datetime) -> bool:
    if timestamp.tzinfo is not None and now.tzinfo is not None:
        timestamp = timestamp.astimezone(now.tzinfo)
    return timestamp.date() == now.date()


def count_students(users: list[dict]) -> int:
    return sum(1 for u in users if u.get("role") == Role.STUDENT.value)


def count_events_in_month(events: list[dict], now: datetime) -> int:
    count = 0
    for event in events:
        day = _parse_date(event.get("date"))
        if day and day.year == now.year and day.month == now.month:
            count += 1
    return count


def count_attendance_on_day(attendance: list[dict], now: datetime) -> int:
    count = 0
    for record in attendance:
        stamp = _parse_timestamp(record.get("timestamp"))
        if stamp and _on_day(stamp, now):
            count += 1
    return count


def participation_rate(attendance: list[dict], total_students: int) -> int:
    if total_students <= 0:
        return 0
    active = {r.get("student_id") for r in attendance if r.get("student_id")}
    return math.floor(len(active) / total_students * 100 + 0.5)


def compute_dashboard_stats(
    users: list[dict],
    events: list[dict],
    attendance: list[dict],
    analytics_days: list[dict],
    now: datetime,
    window: ReportingWindow = ReportingWindow.ALL,
) -> DashboardStats:
    """Compute dashboard figures. Pure, no IO."""
    start, end = window_bounds(window, now)
    total_students = count_students(users)
    return DashboardStats(
        window=window,
        window_start=start,
        window_end=end,
        total_students=total_students,
        events_this_month=count_events_in_month(events, now),
        todays_attendance=count_attendance_on_day(attendance, now),
        participation_rate=participation_rate(attendance, total_students),
        operations_in_window=sum_operations(
            days_between(
                analytics_days,
                start.date() if start else None,
                end.date() if end else None,
            ),
        ),
    )
