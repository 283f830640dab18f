"""Document Store - generic CRUD engine over named JSON collections in a key-value store.

Invariants:
    - Each collection is one key holding a JSON array; insertion order = persisted order
    - create assigns a missing id and stamps created_at/updated_at; update refreshes
      updated_at and never changes id or created_at
    - Uniqueness rules (record id always included) run inside create, before
      anything is written
    - Every mutation bumps today's analytics counters (operation + collection)
    - All public methods run under one re-entrant writer lock; locked() lets
      callers extend it over multi-step read-modify-write sequences
    - transaction() is NOT atomic: the first failing op propagates and earlier
      ops stay applied

Design Decisions:
    - Documents are dicts internally; typed views live in schemas/records.py
    - Analytics counters are derived data: a failed counter write is logged at
      error level and does not fail the mutation that already persisted
"""

import json
import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping

from campusreg.core.analytics_counters import days_between, record_operation
from campusreg.core.domain_types import Collection, OperationType, parse_collection
from campusreg.core.errors import (
    ConcurrencyError, ErrorContext, NotFoundError, StorageError, StorageFullError,
    UnknownCollectionError, ValidationError,
)
from campusreg.core.pagination import Page, paginate_records
from campusreg.core.record_filters import matches_conditions, matches_filters, matches_search
from campusreg.core.repository_protocols import Clock, KeyValueStore
from campusreg.core.storage_keys import StorageKeys
from campusreg.core.uniqueness import DEFAULT_RULES, UniquenessRule, check_unique

logger = logging.getLogger(__name__)


@dataclass
class TransactionOp:
    """One step of transaction(). update/delete address the record by data["id"]."""
    collection: str | Collection
    type: OperationType | str
    data: dict = field(default_factory=dict)


def _resource_name(collection: Collection) -> str:
    return collection.value.rstrip("s").replace("_", " ").capitalize()


class DocumentStore:
    """CRUD, query and maintenance operations over the known collections."""

    def __init__(
        self,
        kv: KeyValueStore,
        clock: Clock,
        keys: StorageKeys | None = None,
        rules: Iterable[UniquenessRule] = DEFAULT_RULES,
    ):
        self.kv = kv
        self.clock = clock
        self.keys = keys or StorageKeys()
        self.rules = tuple(rules)
        self._lock = threading.RLock()

    # ─── Plumbing ────────────────────────────────────────────────

    @contextmanager
    def locked(self) -> Iterator["DocumentStore"]:
        """Hold the writer lock across several store calls."""
        with self._lock:
            yield self

    def _resolve(self, collection: str | Collection) -> Collection:
        resolved = parse_collection(collection)
        if resolved is None:
            raise UnknownCollectionError(str(collection))
        return resolved

    def _load(self, collection: Collection) -> list[dict]:
        raw = self.kv.get(self.keys.collection(collection))
        if raw is None:
            return []
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            logger.error(
                f"Corrupt collection payload: {e}",
                extra={"collection": collection.value},
            )
            raise StorageError(f"collection '{collection.value}' is not valid JSON", "read")
        return data if isinstance(data, list) else []

    def _save(self, collection: Collection, records: Any) -> None:
        payload = json.dumps(records, ensure_ascii=False).encode("utf-8")
        self.kv.set(self.keys.collection(collection), payload)

    def _now_iso(self) -> str:
        return self.clock.now().isoformat()

    def generate_id(self) -> str:
        millis = int(self.clock.now().timestamp() * 1000)
        return f"id_{millis}_{uuid.uuid4().hex[:9]}"

    def _bump_analytics(self, collection: Collection, operation: OperationType) -> None:
        day = self.clock.now().date().isoformat()
        try:
            days = self._load(Collection.ANALYTICS)
            self._save(
                Collection.ANALYTICS,
                record_operation(days, day, collection.value, operation),
            )
        except (StorageError, StorageFullError) as e:
            logger.error(
                f"Analytics counter update failed: {e.message}",
                extra={
                    "collection": collection.value,
                    "operation": operation.value,
                    "error_code": e.code,
                },
            )

    # ─── CRUD ────────────────────────────────────────────────────

    def create(self, collection: str | Collection, record: Mapping[str, Any]) -> dict:
        """Insert a record. Raises DuplicateKeyError on a uniqueness violation."""
        target = self._resolve(collection)
        with self._lock:
            document = dict(record)
            if not document.get("id"):
                document["id"] = self.generate_id()
            now = self._now_iso()
            document["created_at"] = now
            document["updated_at"] = now

            records = self._load(target)
            check_unique(target, document, records, self.rules)
            records.append(document)
            self._save(target, records)
            logger.debug(
                "Record created",
                extra={"collection": target.value, "record_id": document["id"], "operation": "create"},
            )
            self._bump_analytics(target, OperationType.CREATE)
            return dict(document)

    def read_one(self, collection: str | Collection, record_id: str) -> dict | None:
        """Return the record or None - absence is a valid outcome."""
        target = self._resolve(collection)
        with self._lock:
            return next((r for r in self._load(target) if r.get("id") == record_id), None)

    def read_all(
        self, collection: str | Collection, filters: Mapping[str, Any] | None = None,
    ) -> list[dict]:
        target = self._resolve(collection)
        with self._lock:
            return [r for r in self._load(target) if matches_filters(r, filters)]

    def update(
        self,
        collection: str | Collection,
        record_id: str,
        fields: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
    ) -> dict:
        """Merge fields into a record.

        expected, when given, is a compare-and-swap guard: each field must hold
        the given value or ConcurrencyError is raised and nothing is written.
        """
        target = self._resolve(collection)
        with self._lock:
            records = self._load(target)
            index = next((i for i, r in enumerate(records) if r.get("id") == record_id), None)
            if index is None:
                raise NotFoundError(
                    _resource_name(target), record_id,
                    ErrorContext(collection=target.value, operation="update"),
                )
            current = records[index]
            for name, value in (expected or {}).items():
                if current.get(name) != value:
                    raise ConcurrencyError(
                        f"{_resource_name(target)} '{record_id}' changed: "
                        f"{name} is {current.get(name)!r}, expected {value!r}",
                        ErrorContext(collection=target.value, record_id=record_id, operation="update"),
                    )

            merged = {**current, **fields}
            merged["id"] = current["id"]
            if "created_at" in current:
                merged["created_at"] = current["created_at"]
            merged["updated_at"] = self._now_iso()
            records[index] = merged
            self._save(target, records)
            logger.debug(
                "Record updated",
                extra={"collection": target.value, "record_id": record_id, "operation": "update"},
            )
            self._bump_analytics(target, OperationType.UPDATE)
            return dict(merged)

    def delete(self, collection: str | Collection, record_id: str) -> bool:
        target = self._resolve(collection)
        with self._lock:
            records = self._load(target)
            remaining = [r for r in records if r.get("id") != record_id]
            if len(remaining) == len(records):
                raise NotFoundError(
                    _resource_name(target), record_id,
                    ErrorContext(collection=target.value, operation="delete"),
                )
            self._save(target, remaining)
            logger.debug(
                "Record deleted",
                extra={"collection": target.value, "record_id": record_id, "operation": "delete"},
            )
            self._bump_analytics(target, OperationType.DELETE)
            return True

    # ─── Queries ─────────────────────────────────────────────────

    def query(self, collection: str | Collection, conditions: Mapping[str, Any]) -> list[dict]:
        """Conditional read: literal = equality, {"$op": operand} = operator match."""
        target = self._resolve(collection)
        with self._lock:
            return [r for r in self._load(target) if matches_conditions(r, conditions)]

    def count(
        self, collection: str | Collection, filters: Mapping[str, Any] | None = None,
    ) -> int:
        return len(self.read_all(collection, filters))

    def paginate(
        self,
        collection: str | Collection,
        page: int = 1,
        limit: int = 10,
        filters: Mapping[str, Any] | None = None,
    ) -> Page:
        return paginate_records(self.read_all(collection, filters), page, limit)

    def search(
        self, collection: str | Collection, term: str, fields: Iterable[str] = (),
    ) -> list[dict]:
        records = self.read_all(collection)
        if not term:
            return records
        fields = list(fields)
        return [r for r in records if matches_search(r, term, fields)]

    def get_analytics(self, start=None, end=None) -> list[dict]:
        """Per-day counters whose date lies within the inclusive bounds."""
        return days_between(self.read_all(Collection.ANALYTICS), start, end)

    # ─── Transactions ────────────────────────────────────────────

    def transaction(self, ops: Iterable[TransactionOp]) -> list:
        """Run ops in order under the writer lock. No rollback on failure."""
        results: list = []
        with self._lock:
            for step, op in enumerate(ops):
                try:
                    results.append(self._apply(op))
                except Exception:
                    logger.warning(
                        f"Transaction aborted at step {step}; {step} earlier step(s) stay applied",
                        extra={"collection": str(op.collection), "step": step},
                    )
                    raise
        return results

    def _apply(self, op: TransactionOp):
        try:
            kind = OperationType(op.type)
        except ValueError:
            raise ValidationError(f"Unknown transaction operation '{op.type}'", field="type")
        if kind is OperationType.CREATE:
            return self.create(op.collection, op.data)

        record_id = op.data.get("id")
        if not record_id:
            raise ValidationError(f"{kind.value} operation requires data['id']", field="id")
        if kind is OperationType.UPDATE:
            fields = {k: v for k, v in op.data.items() if k != "id"}
            return self.update(op.collection, record_id, fields)
        return self.delete(op.collection, record_id)

    # ─── Backup / Import / Export ────────────────────────────────

    def backup(self) -> dict[str, list[dict]]:
        with self._lock:
            return {c.value: self._load(c) for c in Collection}

    def restore(self, snapshot: Mapping[str, Any]) -> None:
        """Overwrite each named collection verbatim. Unknown names are ignored."""
        with self._lock:
            for name, records in snapshot.items():
                target = parse_collection(name)
                if target is None:
                    logger.warning(f"Restore skipped unknown collection '{name}'")
                    continue
                self._save(target, records)
        logger.info("Store restored from snapshot")

    def export_to_json(self, collection: str | Collection) -> str:
        return json.dumps(self.read_all(collection), indent=2, ensure_ascii=False)

    def import_from_json(self, collection: str | Collection, text: str) -> int:
        """Replace a collection with a JSON array. Returns the number of records."""
        target = self._resolve(collection)
        try:
            data = json.loads(text)
        except ValueError as e:
            raise ValidationError(f"Import payload is not valid JSON: {e}", field="json")
        if not isinstance(data, list):
            raise ValidationError("Import payload must be a JSON array", field="json")
        with self._lock:
            self._save(target, data)
        return len(data)

    def clear_all(self) -> None:
        """Remove every collection key. Carts and the credential are left alone."""
        with self._lock:
            for key in self.keys.all_collections().values():
                self.kv.remove(key)
        logger.warning("All collections cleared")
