"""Student Credential - encode/decode of the signed QR payload."""

import json
from datetime import datetime, timezone

import pytest

from campusreg.core.credential import (
    CREDENTIAL_VERSION, StudentCredential, decode_credential, encode_credential,
    looks_like_credential, sign_payload,
)
from campusreg.core.errors import MalformedCredentialError

SALT = "unit-salt"


def _credential(**overrides) -> StudentCredential:
    data = {
        "student_id": "2023-00123",
        "name": "Juan Dela Cruz",
        "campus": "Main Campus",
        "generated_at": datetime(2025, 9, 15, 10, 30, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return StudentCredential(**data)


def test_encoded_form_is_compact_camel_case_json_with_signature():
    text = encode_credential(_credential(), SALT)
    payload = json.loads(text)
    assert ", " not in text
    assert '": ' not in text
    assert payload["studentId"] == "2023-00123"
    assert payload["generatedAt"].startswith("2025-09-15T10:30:00")
    assert payload["version"] == CREDENTIAL_VERSION
    assert payload["valid"] is True
    assert len(payload["sig"]) == 16


def test_decode_restores_payload():
    original = _credential(email="juan@icct.edu.ph")
    decoded = decode_credential(encode_credential(original, SALT), SALT)
    assert decoded == original


def test_decode_rejects_invalid_json():
    with pytest.raises(MalformedCredentialError):
        decode_credential("{not json", SALT)


def test_decode_rejects_non_object():
    with pytest.raises(MalformedCredentialError) as exc:
        decode_credential("[1, 2]", SALT)
    assert exc.value.code == "MALFORMED_CREDENTIAL"


def test_decode_rejects_tampered_payload():
    payload = json.loads(encode_credential(_credential(), SALT))
    payload["studentId"] = "2099-99999"
    with pytest.raises(MalformedCredentialError) as exc:
        decode_credential(json.dumps(payload), SALT)
    assert "signature" in exc.value.reason


def test_decode_rejects_other_salt():
    with pytest.raises(MalformedCredentialError):
        decode_credential(encode_credential(_credential(), SALT), "other-salt")


def test_decode_rejects_missing_signature():
    payload = json.loads(encode_credential(_credential(), SALT))
    del payload["sig"]
    with pytest.raises(MalformedCredentialError):
        decode_credential(json.dumps(payload), SALT)


@pytest.mark.parametrize("sig", ["é", "ü" * 16, "0123456789abcdeé"])
def test_decode_rejects_non_ascii_signature(sig):
    with pytest.raises(MalformedCredentialError) as exc:
        decode_credential(json.dumps({"studentId": "1", "sig": sig}), SALT)
    assert exc.value.reason == "signature mismatch"


def test_decode_accepts_non_ascii_fields():
    original = _credential(name="José Peña")
    assert decode_credential(encode_credential(original, SALT), SALT).name == "José Peña"


def test_decode_rejects_signed_payload_missing_fields():
    payload = {"name": "No Id", "campus": "Main Campus"}
    payload["sig"] = sign_payload(dict(payload), SALT)
    with pytest.raises(MalformedCredentialError) as exc:
        decode_credential(json.dumps(payload), SALT)
    assert "invalid fields" in exc.value.reason


def test_looks_like_credential():
    assert looks_like_credential('  {"studentId": 1}')
    assert not looks_like_credential("2023-00123")
