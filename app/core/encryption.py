"""Fernet encryption for redemption codes (inventory and fulfilled orders)."""

import base64
import hashlib
import hmac
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken, MultiFernet

from app.core.config import get_settings
from app.core.exceptions import AppError


class DecryptError(Exception):
    """Ciphertext is malformed, tampered with, or was sealed with an unknown key."""


def derive_key(secret: str) -> str:
    """Fernet key derived from an arbitrary secret (dev fallback)."""
    digest = hashlib.sha256(secret.encode()).digest()
    return base64.urlsafe_b64encode(digest).decode()


class CodeCipher:
    """Symmetric cipher; encrypts with the first key, decrypts with any of them."""

    def __init__(self, keys: list[str]):
        if not keys:
            raise AppError("At least one encryption key is required", code="ENCRYPTION_KEY_INVALID")
        try:
            fernets = [Fernet(k.encode() if isinstance(k, str) else k) for k in keys]
        except (ValueError, TypeError) as e:
            raise AppError(f"Invalid encryption key: {e}", code="ENCRYPTION_KEY_INVALID") from e
        self._fernet = MultiFernet(fernets)

    def encrypt(self, plain: str) -> str:
        return self._fernet.encrypt(plain.encode()).decode()

    def decrypt(self, token: str) -> str:
        if not token:
            raise DecryptError("Empty ciphertext")
        try:
            return self._fernet.decrypt(token.encode()).decode()
        except (InvalidToken, UnicodeError) as e:
            raise DecryptError(str(e) or "Invalid token") from e


@lru_cache
def get_cipher() -> CodeCipher:
    settings = get_settings()
    key = settings.code_encryption_key
    if not key or len(key) != 44:
        # Derive from secret_key for dev when CODE_ENCRYPTION_KEY not set
        key = derive_key(settings.secret_key)
    return CodeCipher([key, *settings.code_encryption_previous_keys])


def fingerprint(plain: str) -> str:
    """Keyed hash of a plaintext code; lets us detect duplicates without storing plaintext."""
    secret = get_settings().secret_key.encode()
    return hmac.new(secret, plain.strip().encode(), hashlib.sha256).hexdigest()
