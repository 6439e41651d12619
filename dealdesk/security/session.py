"""Signed session tokens identifying the acting user.

A token is ``base64url(json payload).hex(hmac_sha256)`` with ``sub`` (user id),
``role``, ``iat`` and ``exp`` claims. The API only verifies tokens; issuing
them is left to the CLI and to whatever login front end sits in front.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
import uuid
from dataclasses import dataclass

from fastapi import Request

from ..models.enums import Role


@dataclass(frozen=True)
class SessionClaims:
    user_id: uuid.UUID
    role: Role
    expires_at: int


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def _b64url_decode(data: str) -> bytes:
    padding = "=" * ((4 - (len(data) % 4)) % 4)
    return base64.urlsafe_b64decode((data + padding).encode("utf-8"))


def _secret(settings_obj) -> str:
    return str(getattr(settings_obj, "auth_secret", "") or "").strip()


def _sign(secret: str, body: str) -> str:
    return hmac.new(secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).hexdigest()


def issue_session_token(
    settings_obj,
    user_id: uuid.UUID,
    role: Role | str,
    *,
    ttl_seconds: int | None = None,
    now: int | None = None,
) -> str:
    secret = _secret(settings_obj)
    if not secret:
        raise RuntimeError("auth_secret must be set to issue session tokens")

    issued = int(time.time()) if now is None else now
    ttl = settings_obj.auth_session_ttl_seconds if ttl_seconds is None else ttl_seconds
    payload = {
        "sub": str(user_id),
        "role": Role(role).value,
        "iat": issued,
        "exp": issued + int(ttl),
    }
    body = _b64url_encode(json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    return f"{body}.{_sign(secret, body)}"


def decode_session_token(settings_obj, token: str, *, now: int | None = None) -> SessionClaims | None:
    """Return the token's claims, or None for a bad signature, expiry or payload."""
    secret = _secret(settings_obj)
    if not secret or not token:
        return None

    try:
        body, provided_sig = token.split(".", 1)
    except ValueError:
        return None
    if not hmac.compare_digest(provided_sig, _sign(secret, body)):
        return None

    try:
        payload = json.loads(_b64url_decode(body))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict):
        return None

    current = int(time.time()) if now is None else now
    exp = payload.get("exp")
    if not isinstance(exp, int) or exp <= current:
        return None
    try:
        user_id = uuid.UUID(str(payload.get("sub")))
        role = Role(payload.get("role"))
    except ValueError:
        return None
    return SessionClaims(user_id=user_id, role=role, expires_at=exp)


def extract_token(request: Request, settings_obj) -> str:
    cookie_token = request.cookies.get(settings_obj.auth_cookie_name, "")
    if cookie_token:
        return cookie_token

    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()
    return ""
