"""Uniqueness Rules - pluggable per-collection validators run before insertion.

Invariants:
    - Record ids are unique within every collection; ID_UNIQUE is always
      applied, whatever rule set the caller passes
    - A rule fires only when the candidate carries its leading key field
      (a user without email, an event without title, is not checked)
    - Comparison is exact and case-sensitive, as stored
    - check_unique is pure: raises DuplicateKeyError, never mutates

Design Decisions:
    - Rules are data (collection + key fields) so the store stays generic and
      callers can pass a different rule set to DocumentStore
    - collection=None marks a rule that holds for every collection
"""

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from campusreg.core.domain_types import Collection
from campusreg.core.errors import DuplicateKeyError


@dataclass(frozen=True)
class UniquenessRule:
    """Records in `collection` may not share all of `fields`."""
    collection: Collection | None
    fields: tuple[str, ...]

    def covers(self, collection: Collection) -> bool:
        return self.collection is None or self.collection == collection

    def applies_to(self, candidate: Mapping[str, Any]) -> bool:
        return bool(candidate.get(self.fields[0]))

    def key_of(self, record: Mapping[str, Any]) -> tuple:
        return tuple(record.get(name) for name in self.fields)


ID_UNIQUE = UniquenessRule(None, ("id",))
USER_EMAIL_UNIQUE = UniquenessRule(Collection.USERS, ("email",))
EVENT_TITLE_DATE_UNIQUE = UniquenessRule(Collection.EVENTS, ("title", "date"))

DEFAULT_RULES: tuple[UniquenessRule, ...] = (USER_EMAIL_UNIQUE, EVENT_TITLE_DATE_UNIQUE)


def check_unique(
    collection: Collection,
    candidate: Mapping[str, Any],
    existing: Iterable[Mapping[str, Any]],
    rules: Iterable[UniquenessRule] = DEFAULT_RULES,
) -> None:
    """Raise DuplicateKeyError if candidate collides with an existing record."""
    existing = list(existing)
    for rule in (ID_UNIQUE, *rules):
        if not rule.covers(collection) or not rule.applies_to(candidate):
            continue
        key = rule.key_of(candidate)
        if any(rule.key_of(record) == key for record in existing):
            raise DuplicateKeyError(
                collection.value, dict(zip(rule.fields, key)),
            )
