"""Core Layer - pure domain logic, no IO, no storage access.

Invariants:
    - No module in core/ imports from services/, infrastructure/, db/ or models/
    - All functions are pure and deterministic given their inputs (the clock is a parameter)

Design Decisions:
    - Functional core separated from imperative shell (services/ owns reads and writes)
"""
