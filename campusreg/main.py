"""campusreg entry point - explicit construction of the service graph.

Invariants:
    - No global store: build_services() returns a fresh, fully wired Services
      object; callers keep it for the life of the process
    - Tests pass their own kv/clock to get an isolated in-memory instance
    - Sample data is seeded only into empty collections

Design Decisions:
    - Backend chosen from settings.storage_url: "memory://" or any SQLAlchemy URL
"""

import logging
from dataclasses import dataclass

from campusreg.config import Settings, get_settings
from campusreg.core.domain_types import Collection, Role
from campusreg.core.repository_protocols import Clock, KeyValueStore, QREncoder
from campusreg.core.storage_keys import StorageKeys
from campusreg.infrastructure.clock import SystemClock
from campusreg.infrastructure.kv_storage import MemoryKeyValueStore, SqlKeyValueStore
from campusreg.infrastructure.observability import setup_logging
from campusreg.infrastructure.qr_encoder import QRCodeImageEncoder
from campusreg.services.analytics_aggregator import AnalyticsAggregator
from campusreg.services.attendance_service import AttendanceService
from campusreg.services.cart_service import CartService
from campusreg.services.credential_service import CredentialService
from campusreg.services.document_store import DocumentStore
from campusreg.services.domain_rules import DomainRules

logger = logging.getLogger(__name__)

SAMPLE_USERS = [
    {
        "id": "user001",
        "name": "Juan Dela Cruz",
        "email": "juan.delacruz@icct.edu.ph",
        "student_id": "2023-00123",
        "campus": "Main Campus",
        "password": "password123",
        "role": Role.STUDENT.value,
    },
    {
        "id": "user002",
        "name": "Maria Santos",
        "email": "maria.santos@icct.edu.ph",
        "student_id": "2023-00234",
        "campus": "Cainta Campus",
        "password": "password123",
        "role": Role.STUDENT.value,
    },
]


@dataclass
class Services:
    settings: Settings
    store: DocumentStore
    rules: DomainRules
    cart: CartService
    analytics: AnalyticsAggregator
    credentials: CredentialService
    attendance: AttendanceService


def create_kv_store(settings: Settings) -> KeyValueStore:
    if settings.uses_memory_storage:
        return MemoryKeyValueStore(settings.storage_capacity_bytes)
    return SqlKeyValueStore(settings.storage_url, settings.storage_capacity_bytes)


def seed_sample_data(store: DocumentStore, events: list[dict] | None = None) -> int:
    """Insert sample users (and any given events) into empty collections."""
    created = 0
    if store.count(Collection.USERS) == 0:
        for user in SAMPLE_USERS:
            store.create(Collection.USERS, user)
            created += 1
    if events and store.count(Collection.EVENTS) == 0:
        for event in events:
            store.create(Collection.EVENTS, {"registered": 0, **event})
            created += 1
    if created:
        logger.info(f"Seeded {created} sample record(s)")
    return created


def build_services(
    settings: Settings | None = None,
    kv: KeyValueStore | None = None,
    clock: Clock | None = None,
    encoder: QREncoder | None = None,
    configure_logging: bool = False,
) -> Services:
    """Wire every service around one DocumentStore."""
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(settings.log_level, settings.log_format)

    store = DocumentStore(
        kv if kv is not None else create_kv_store(settings),
        clock or SystemClock(),
        StorageKeys(settings.key_namespace, settings.key_version),
    )
    if encoder is None:
        encoder = QRCodeImageEncoder()

    rules = DomainRules(store)
    credentials = CredentialService(
        store, settings.credential_salt, encoder,
        qr_size=settings.qr_size, error_correction=settings.qr_error_correction,
    )
    if settings.seed_sample_data:
        seed_sample_data(store)

    logger.info("campusreg services ready", extra={"operation": "startup"})
    return Services(
        settings=settings,
        store=store,
        rules=rules,
        cart=CartService(rules),
        analytics=AnalyticsAggregator(store),
        credentials=credentials,
        attendance=AttendanceService(store, credentials),
    )
