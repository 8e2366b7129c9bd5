import base64

import pytest
from cryptography.fernet import Fernet

from app.core.encryption import CodeCipher, DecryptError, derive_key, fingerprint
from app.core.exceptions import AppError


def test_round_trip():
    cipher = CodeCipher([Fernet.generate_key().decode()])
    token = cipher.encrypt("FF-110-ABCD-EFGH")
    assert token != "FF-110-ABCD-EFGH"
    assert cipher.decrypt(token) == "FF-110-ABCD-EFGH"


def test_wrong_key_raises_decrypt_error():
    sealed = CodeCipher([Fernet.generate_key().decode()]).encrypt("secret")
    other = CodeCipher([Fernet.generate_key().decode()])
    with pytest.raises(DecryptError):
        other.decrypt(sealed)


@pytest.mark.parametrize("token", ["", "not-a-token", "gAAAAABtampered"])
def test_malformed_ciphertext_raises_decrypt_error(token):
    cipher = CodeCipher([Fernet.generate_key().decode()])
    with pytest.raises(DecryptError):
        cipher.decrypt(token)


def test_rotation_keeps_old_ciphertext_readable():
    old_key = Fernet.generate_key().decode()
    new_key = Fernet.generate_key().decode()
    sealed_with_old = CodeCipher([old_key]).encrypt("legacy-code")

    rotated = CodeCipher([new_key, old_key])
    assert rotated.decrypt(sealed_with_old) == "legacy-code"
    # New ciphertext is sealed with the primary key only
    with pytest.raises(DecryptError):
        CodeCipher([old_key]).decrypt(rotated.encrypt("fresh-code"))


def test_derived_key_is_a_valid_fernet_key():
    key = derive_key("any secret at all")
    assert len(base64.urlsafe_b64decode(key)) == 32
    cipher = CodeCipher([key])
    assert cipher.decrypt(cipher.encrypt("x")) == "x"


def test_invalid_key_is_rejected():
    with pytest.raises(AppError) as exc:
        CodeCipher(["too-short"])
    assert exc.value.code == "ENCRYPTION_KEY_INVALID"
    with pytest.raises(AppError):
        CodeCipher([])


def test_fingerprint_ignores_surrounding_whitespace():
    assert fingerprint("  ABC-123\n") == fingerprint("ABC-123")
    assert fingerprint("ABC-123") != fingerprint("ABC-124")
    assert "ABC-123" not in fingerprint("ABC-123")
