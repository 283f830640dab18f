"""Schemas - pydantic record types per collection and validated input models.

Invariants:
    - Record types tolerate extra fields (documents are schema-less on disk)
    - Input models reject missing/blank required fields before the store sees them
"""
