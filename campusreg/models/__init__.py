"""ORM Models - SQLAlchemy declarative models backing the SQL key-value store.

Invariants:
    - All models inherit from Base (db/base.py)
    - Documents are NOT mapped to tables: each collection is one opaque JSON value
"""

from campusreg.models.kv_entry import KeyValueEntry  # noqa: F401
