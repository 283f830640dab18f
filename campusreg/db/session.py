"""Session Factory - engine and sessionmaker construction for SQL-backed storage.

Invariants:
    - In-memory SQLite URLs share a single connection (StaticPool) so every
      session sees the same database
    - expire_on_commit=False: rows stay readable after the unit of work closes
"""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


def is_memory_sqlite(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:")


def create_storage_engine(database_url: str) -> Engine:
    if is_memory_sqlite(database_url):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a session factory bound to the given engine."""
    return sessionmaker(engine, class_=Session, expire_on_commit=False)
