"""Storage Keys - stable, namespaced key names for everything persisted.

Invariants:
    - Every key is "<namespace>_<name>_<version>" so unrelated data in the same
      backing store never collides
    - Key names are derived, never stored; changing namespace/version moves all data
"""

from dataclasses import dataclass

from campusreg.core.domain_types import Collection

GUEST_CART = "guest"


@dataclass(frozen=True)
class StorageKeys:
    namespace: str = "icct"
    version: str = "v2"

    def _key(self, name: str) -> str:
        return f"{self.namespace}_{name}_{self.version}"

    def collection(self, collection: Collection) -> str:
        return self._key(collection.value)

    def cart(self, user_id: str | None) -> str:
        return self._key(f"cart_{user_id or GUEST_CART}")

    @property
    def credential(self) -> str:
        return self._key("student_qr")

    def all_collections(self) -> dict[Collection, str]:
        return {c: self.collection(c) for c in Collection}
