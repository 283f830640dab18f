"""Credential Service - the single active student credential and its QR rendering.

Invariants:
    - At most one active credential per store; generate() overwrites the previous one
    - The persisted form is the signed text produced by core.credential.encode_credential
    - When generated for a known user, a qr_codes record links the payload to user_id
    - render_qr only hands text to the encoder; the image is never inspected

Design Decisions:
    - Encoder is optional: headless callers (scanners, tests) never need Pillow
"""

import logging

from campusreg.core.credential import StudentCredential, decode_credential, encode_credential
from campusreg.core.domain_types import Collection
from campusreg.core.errors import NotFoundError, ValidationError
from campusreg.core.repository_protocols import QREncoder
from campusreg.services.document_store import DocumentStore

logger = logging.getLogger(__name__)


class CredentialService:

    def __init__(
        self,
        store: DocumentStore,
        salt: str,
        encoder: QREncoder | None = None,
        qr_size: int = 200,
        error_correction: str = "H",
    ):
        self.store = store
        self.salt = salt
        self.encoder = encoder
        self.qr_size = qr_size
        self.error_correction = error_correction

    @property
    def _key(self) -> str:
        return self.store.keys.credential

    def generate(
        self,
        student_id: str,
        name: str,
        campus: str,
        email: str | None = None,
        user_id: str | None = None,
    ) -> StudentCredential:
        """Build, persist and return a fresh credential."""
        fields = {"name": name, "student_id": student_id, "campus": campus}
        for field_name, value in fields.items():
            if not value or not str(value).strip():
                raise ValidationError(
                    "Name, Student ID, and Campus are required to generate a QR code",
                    field=field_name,
                )

        credential = StudentCredential(
            student_id=student_id.strip(),
            name=name.strip(),
            campus=campus.strip(),
            email=(email or "").strip() or None,
            generated_at=self.store.clock.now(),
        )
        text = encode_credential(credential, self.salt)
        self.store.kv.set(self._key, text.encode("utf-8"))
        if user_id:
            self.store.create(Collection.QR_CODES, {"user_id": user_id, "payload": text})
        logger.info("Credential generated", extra={"user_id": user_id})
        return credential

    def active_text(self) -> str | None:
        raw = self.store.kv.get(self._key)
        return raw.decode("utf-8") if raw is not None else None

    def active(self) -> StudentCredential | None:
        """The active credential, or None. A corrupt one raises MalformedCredentialError."""
        text = self.active_text()
        return decode_credential(text, self.salt) if text is not None else None

    def delete(self) -> None:
        self.store.kv.remove(self._key)

    def decode(self, text: str) -> StudentCredential:
        return decode_credential(text, self.salt)

    def render_qr(self, size: int | None = None, error_correction: str | None = None):
        if self.encoder is None:
            raise ValidationError("No QR encoder configured", field="encoder")
        text = self.active_text()
        if text is None:
            raise NotFoundError("Credential", self._key)
        return self.encoder.encode(
            text, size or self.qr_size, error_correction or self.error_correction,
        )
