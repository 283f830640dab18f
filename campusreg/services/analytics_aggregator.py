"""Analytics Aggregator - read-only dashboard statistics over the current store state.

Invariants:
    - Never writes: reads four collections and delegates to core.dashboard_stats
    - The clock is read once per compute() so every figure shares one "now"
"""

from campusreg.core.dashboard_stats import DashboardStats, compute_dashboard_stats
from campusreg.core.domain_types import Collection, ReportingWindow
from campusreg.core.repository_protocols import Clock
from campusreg.services.document_store import DocumentStore


class AnalyticsAggregator:

    def __init__(self, store: DocumentStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or store.clock

    def compute(self, window: ReportingWindow | str = ReportingWindow.ALL) -> DashboardStats:
        window = ReportingWindow(window)
        with self.store.locked():
            users = self.store.read_all(Collection.USERS)
            events = self.store.read_all(Collection.EVENTS)
            attendance = self.store.read_all(Collection.ATTENDANCE)
            days = self.store.read_all(Collection.ANALYTICS)
        return compute_dashboard_stats(
            users, events, attendance, days, self.clock.now(), window,
        )
