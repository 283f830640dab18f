"""Clocks - wall-clock implementations of the core Clock protocol."""

from datetime import datetime, timedelta, timezone


class SystemClock:
    """Real wall clock, UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Settable clock for tests and replays."""

    def __init__(self, moment: datetime):
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        self._moment = moment

    def now(self) -> datetime:
        return self._moment

    def set(self, moment: datetime) -> None:
        self._moment = moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)

    def advance(self, **delta: float) -> datetime:
        self._moment = self._moment + timedelta(**delta)
        return self._moment
