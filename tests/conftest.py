"""Root conftest - shared fixtures: fixed clock, in-memory backend, fresh store per test."""

import os
from datetime import datetime, timezone

import pytest

# Ensure tests never touch a real storage file
os.environ.setdefault("CAMPUSREG_STORAGE_URL", "memory://")
os.environ.setdefault("CAMPUSREG_SEED_SAMPLE_DATA", "false")

from campusreg.core.domain_types import Collection  # noqa: E402
from campusreg.infrastructure.clock import FixedClock  # noqa: E402
from campusreg.infrastructure.kv_storage import MemoryKeyValueStore  # noqa: E402
from campusreg.services.cart_service import CartService  # noqa: E402
from campusreg.services.credential_service import CredentialService  # noqa: E402
from campusreg.services.document_store import DocumentStore  # noqa: E402
from campusreg.services.domain_rules import DomainRules  # noqa: E402

TEST_SALT = "test-salt"
NOW = datetime(2025, 9, 15, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv, clock):
    return DocumentStore(kv, clock)


@pytest.fixture
def rules(store):
    return DomainRules(store)


@pytest.fixture
def cart(rules):
    return CartService(rules)


@pytest.fixture
def credentials(store):
    return CredentialService(store, TEST_SALT)


@pytest.fixture
def make_user(store):
    """Insert a student; returns the stored document."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        data = {
            "name": f"Student {n}",
            "email": f"student{n}@icct.edu.ph",
            "student_id": f"2025-{n:05d}",
            "campus": "Main Campus",
            "password": "secret",
            "role": "student",
        }
        data.update(overrides)
        return store.create(Collection.USERS, data)
    return _make


@pytest.fixture
def make_event(store):
    """Insert an event; returns the stored document."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "title": f"Event {counter['n']}",
            "category": "Seminar",
            "campus": "Main Campus",
            "date": "2025-09-20",
            "time": "09:00",
            "location": "Auditorium",
            "description": "",
            "capacity": 10,
            "registered": 0,
        }
        data.update(overrides)
        return store.create(Collection.EVENTS, data)
    return _make
