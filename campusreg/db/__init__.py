"""Database Infrastructure - SQLAlchemy Base and sync session factory for the SQL key-value backend.

Invariants:
    - One engine per SqlKeyValueStore
    - All sessions are synchronous (the store contract is synchronous)
"""
