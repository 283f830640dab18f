"""Services Layer - imperative shell: every read and write of the key-value backend.

Invariants:
    - Services receive their collaborators through __init__ (no module-level singletons)
    - Pure decisions are delegated to core/; services only orchestrate IO around them
"""
