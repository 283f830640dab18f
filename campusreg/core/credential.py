"""Student Credential - codec for the identity payload carried in the student QR code.

Invariants:
    - Encoded form is compact JSON with camelCase keys plus a "sig" field
    - sig = first 16 hex chars of HMAC-SHA256(salt, payload without sig, sorted keys)
    - decode_credential never leaks json/pydantic exceptions: every failure is
      MalformedCredentialError
    - version tag is CREDENTIAL_VERSION; valid defaults to True

Design Decisions:
    - The signature only detects hand-edited payloads; it is not an auth mechanism
"""

import hashlib
import hmac
import json
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from campusreg.core.errors import MalformedCredentialError

CREDENTIAL_VERSION = "2.0"
SIGNATURE_LENGTH = 16


class StudentCredential(BaseModel):
    """Identity payload encoded into the student QR code."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    student_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    campus: str = Field(min_length=1)
    email: str | None = None
    generated_at: datetime
    valid: bool = True
    version: str = CREDENTIAL_VERSION


def _canonical(payload: dict) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def sign_payload(payload: dict, salt: str) -> str:
    digest = hmac.new(salt.encode("utf-8"), _canonical(payload), hashlib.sha256)
    return digest.hexdigest()[:SIGNATURE_LENGTH]


def encode_credential(credential: StudentCredential, salt: str) -> str:
    """Serialize to the compact text form that goes into the QR image."""
    payload = credential.model_dump(mode="json", by_alias=True)
    payload["sig"] = sign_payload(payload, salt)
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def decode_credential(text: str, salt: str) -> StudentCredential:
    """Reconstruct the payload. Raises MalformedCredentialError on any defect."""
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedCredentialError(f"not valid JSON ({e.__class__.__name__})")
    if not isinstance(payload, dict):
        raise MalformedCredentialError("payload is not an object")

    signature = payload.pop("sig", None)
    if not isinstance(signature, str):
        raise MalformedCredentialError("missing signature")
    expected = sign_payload(payload, salt)
    if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
        raise MalformedCredentialError("signature mismatch")

    try:
        return StudentCredential.model_validate(payload)
    except PydanticValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise MalformedCredentialError(f"invalid fields: {fields}")


def looks_like_credential(text: str) -> bool:
    """Cheap pre-check used by scanners to decide between credential and raw id."""
    return text.lstrip().startswith("{")
