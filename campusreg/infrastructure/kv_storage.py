"""Key-Value Storage - capacity-limited byte stores behind the KeyValueStore protocol.

Invariants:
    - Usage counts utf-8 key bytes + value bytes across all entries
    - A write that would push usage over capacity raises StorageFullError and
      leaves the previous value untouched
    - remove() of an absent key is a no-op
    - SQLAlchemy exceptions never escape: mapped to StorageError with rollback

Design Decisions:
    - MemoryKeyValueStore for tests and ephemeral runs; SqlKeyValueStore for a
      durable local file (SQLite by default, any SQLAlchemy URL works)
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from campusreg.core.errors import StorageError, StorageFullError
from campusreg.db.base import Base
from campusreg.db.session import create_session_factory, create_storage_engine
from campusreg.models.kv_entry import KeyValueEntry

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY_BYTES = 5 * 1024 * 1024


def entry_size(key: str, value: bytes) -> int:
    return len(key.encode("utf-8")) + len(value)


class MemoryKeyValueStore:
    """Process-local dict-backed store."""

    def __init__(self, capacity_bytes: int = DEFAULT_CAPACITY_BYTES):
        self.capacity_bytes = capacity_bytes
        self._data: dict[str, bytes] = {}

    @property
    def used_bytes(self) -> int:
        return sum(entry_size(k, v) for k, v in self._data.items())

    def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        current = self._data.get(key)
        freed = entry_size(key, current) if current is not None else 0
        required = self.used_bytes - freed + entry_size(key, value)
        if required > self.capacity_bytes:
            logger.error("Storage quota exceeded", extra={"key": key})
            raise StorageFullError(key, required, self.capacity_bytes)
        self._data[key] = bytes(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class SqlKeyValueStore:
    """SQLAlchemy-backed store - one kv_entries row per key."""

    def __init__(
        self, database_url: str, capacity_bytes: int = DEFAULT_CAPACITY_BYTES,
    ):
        self.capacity_bytes = capacity_bytes
        self.engine = create_storage_engine(database_url)
        Base.metadata.create_all(self.engine)
        self._session_factory = create_session_factory(self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Provide session with auto-rollback on exception."""
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            session.rollback()
            logger.error(f"KV integrity error: {e}")
            raise StorageError("Integrity constraint violated", "commit")
        except OperationalError as e:
            session.rollback()
            logger.error(f"KV operational error: {e}")
            raise StorageError("Connection or operational error", "execute")
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"SQLAlchemy error: {e}")
            raise StorageError("Storage operation failed", "unknown")
        finally:
            session.close()

    def get(self, key: str) -> bytes | None:
        with self.session() as db:
            entry = db.get(KeyValueEntry, key)
            return bytes(entry.value) if entry is not None else None

    def set(self, key: str, value: bytes) -> None:
        size = entry_size(key, value)
        with self.session() as db:
            others = db.execute(
                select(func.coalesce(func.sum(KeyValueEntry.size), 0))
                .where(KeyValueEntry.key != key),
            ).scalar_one()
            required = int(others) + size
            if required > self.capacity_bytes:
                logger.error("Storage quota exceeded", extra={"key": key})
                raise StorageFullError(key, required, self.capacity_bytes)

            entry = db.get(KeyValueEntry, key)
            if entry is None:
                db.add(KeyValueEntry(key=key, value=bytes(value), size=size))
            else:
                entry.value = bytes(value)
                entry.size = size
            db.commit()

    def remove(self, key: str) -> None:
        with self.session() as db:
            entry = db.get(KeyValueEntry, key)
            if entry is not None:
                db.delete(entry)
                db.commit()

    def keys(self) -> list[str]:
        with self.session() as db:
            return list(db.execute(select(KeyValueEntry.key)).scalars())

    def health_check(self) -> bool:
        """Check backend connectivity."""
        try:
            self.keys()
            return True
        except StorageError as e:
            logger.error(f"KV health check failed: {e}")
            return False

    def dispose(self) -> None:
        self.engine.dispose()
