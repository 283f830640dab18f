"""Infrastructure Layer - storage backends, clock, QR encoder and logging.

Invariants:
    - Infrastructure never imports from services/
    - Backend failures are mapped to StorageError / StorageFullError (core/errors.py)
"""
