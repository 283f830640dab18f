"""Cart Service - per-user event cart and best-effort batch checkout.

Invariants:
    - One cart per user id under its own storage key; guests share the guest key
    - An event appears at most once in a cart
    - checkout re-validates every item against live store state at processing time;
      each item succeeds or fails on its own and the cart is emptied afterwards
    - Only CampusRegError is reported per item; anything else propagates

Design Decisions:
    - Cart items are display snapshots; they never feed capacity decisions
"""

import json
import logging

from campusreg.core.domain_types import Collection
from campusreg.core.errors import (
    AlreadyInCartError, AlreadyRegisteredError, CampusRegError, CapacityExceededError,
    NotFoundError, StorageError,
)
from campusreg.core.storage_keys import StorageKeys
from campusreg.schemas.cart import CartItem, CheckoutOutcome, CheckoutResult
from campusreg.services.domain_rules import DomainRules

logger = logging.getLogger(__name__)


class CartService:
    """Event cart backed by the store's key-value backend."""

    def __init__(self, rules: DomainRules):
        self.rules = rules
        self.store = rules.store

    @property
    def _keys(self) -> StorageKeys:
        return self.store.keys

    def items(self, user_id: str | None = None) -> list[CartItem]:
        raw = self.store.kv.get(self._keys.cart(user_id))
        if raw is None:
            return []
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise StorageError(f"cart payload is not valid JSON ({e})", "read")
        return [CartItem.model_validate(item) for item in data]

    def _save(self, user_id: str | None, items: list[CartItem]) -> None:
        payload = json.dumps([item.model_dump() for item in items], ensure_ascii=False)
        self.store.kv.set(self._keys.cart(user_id), payload.encode("utf-8"))

    def is_in_cart(self, event_id: str, user_id: str | None = None) -> bool:
        return any(item.event_id == event_id for item in self.items(user_id))

    def count(self, user_id: str | None = None) -> int:
        return len(self.items(user_id))

    def add(self, event_id: str, user_id: str | None = None) -> CartItem:
        """Add an event. Known users are checked for an existing registration."""
        with self.store.locked():
            event = self.store.read_one(Collection.EVENTS, event_id)
            if event is None:
                raise NotFoundError("Event", event_id)
            items = self.items(user_id)
            if any(item.event_id == event_id for item in items):
                raise AlreadyInCartError(event_id)
            if user_id and self.rules.find_registration(user_id, event_id) is not None:
                raise AlreadyRegisteredError(user_id, event_id)
            registered, capacity = int(event.get("registered", 0)), int(event["capacity"])
            if registered >= capacity:
                raise CapacityExceededError(event_id, capacity)

            item = CartItem(
                event_id=event_id,
                title=event["title"],
                date=event["date"],
                time=event.get("time", ""),
                location=event.get("location", ""),
                campus=event.get("campus", ""),
                category=event.get("category", ""),
                capacity=capacity,
                registered=registered,
                available=capacity - registered,
            )
            items.append(item)
            self._save(user_id, items)
        return item

    def remove(self, event_id: str, user_id: str | None = None) -> bool:
        items = self.items(user_id)
        remaining = [item for item in items if item.event_id != event_id]
        self._save(user_id, remaining)
        return len(remaining) != len(items)

    def clear(self, user_id: str | None = None) -> None:
        self._save(user_id, [])

    def transfer_guest_cart(self, user_id: str) -> list[CartItem]:
        """Move the guest cart onto a user after login, replacing the user's cart."""
        guest_key = self._keys.cart(None)
        raw = self.store.kv.get(guest_key)
        if raw is not None:
            self.store.kv.set(self._keys.cart(user_id), raw)
            self.store.kv.remove(guest_key)
        return self.items(user_id)

    def checkout(self, user_id: str) -> CheckoutResult:
        """Register the user for every cart item; partial success is a valid outcome."""
        result = CheckoutResult()
        for item in self.items(user_id):
            try:
                registration = self.rules.register_for_event(item.event_id, user_id)
            except CampusRegError as e:
                logger.warning(
                    f"Checkout item failed: {e.message}",
                    extra={"user_id": user_id, "event_id": item.event_id, "error_code": e.code},
                )
                result.outcomes.append(CheckoutOutcome(
                    event_id=item.event_id, title=item.title, success=False,
                    error_code=e.code, message=e.message,
                ))
                continue
            result.outcomes.append(CheckoutOutcome(
                event_id=item.event_id, title=item.title, success=True,
                registration_id=registration.id,
            ))

        self.clear(user_id)
        logger.info(result.summary(), extra={"user_id": user_id})
        return result
