"""PBKDF2-SHA256 password hashing for locally stored credentials.

Stored form: ``pbkdf2_sha256$<iterations>$<salt>$<digest>`` with salt and
digest as unpadded urlsafe base64.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets

from ..config import settings

SCHEME = "pbkdf2_sha256"
SALT_BYTES = 16


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _unb64(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def hash_password(password: str, iterations: int | None = None) -> str:
    if not password:
        raise ValueError("Password is required")
    rounds = iterations or settings.password_iterations
    salt = secrets.token_bytes(SALT_BYTES)
    return f"{SCHEME}${rounds}${_b64(salt)}${_b64(_derive(password, salt, rounds))}"


def verify_password(password: str, stored_hash: str | None) -> bool:
    """False for a wrong password and for any hash this module did not write."""
    if not password or not stored_hash:
        return False
    parts = stored_hash.split("$")
    if len(parts) != 4 or parts[0] != SCHEME:
        return False
    try:
        rounds = int(parts[1])
        salt, expected = _unb64(parts[2]), _unb64(parts[3])
    except (ValueError, binascii.Error):
        return False
    if rounds < 1:
        return False
    return hmac.compare_digest(_derive(password, salt, rounds), expected)
