"""Boundary Protocols - contracts between core and shell.

Invariants:
    - Core NEVER imports from shell - dependency arrows point inward only
    - All IO (bytes storage, wall clock, image encoding) accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test doubles need no inheritance
    - Synchronous methods: the backing store is local and never blocks on network
"""

from datetime import datetime
from typing import Any, Iterable, Protocol


class KeyValueStore(Protocol):
    """Persistent key-value byte store - capacity-limited, process-local."""
    def get(self, key: str) -> bytes | None: ...
    def set(self, key: str, value: bytes) -> None: ...
    def remove(self, key: str) -> None: ...
    def keys(self) -> Iterable[str]: ...


class Clock(Protocol):
    """Wall-clock source; returns timezone-aware datetimes."""
    def now(self) -> datetime: ...


class QREncoder(Protocol):
    """Turns credential text into a renderable image. Core never inspects the image."""
    def encode(self, text: str, size: int, error_correction: str) -> Any: ...
