"""Tests for session tokens and password hashing."""

from __future__ import annotations

import uuid
from types import SimpleNamespace

from dealdesk.config import settings
from dealdesk.models.enums import Role
from dealdesk.security.passwords import hash_password, verify_password
from dealdesk.security.session import decode_session_token, issue_session_token


def _settings(secret: str = "s3cret", ttl: int = 3600):
    return SimpleNamespace(
        auth_secret=secret,
        auth_session_ttl_seconds=ttl,
        auth_cookie_name="dealdesk_session",
    )


def test_token_round_trip():
    cfg = _settings()
    user_id = uuid.uuid4()
    token = issue_session_token(cfg, user_id, Role.MANAGER, now=1_000)
    claims = decode_session_token(cfg, token, now=1_500)
    assert claims is not None
    assert claims.user_id == user_id
    assert claims.role == Role.MANAGER
    assert claims.expires_at == 4_600


def test_expired_token_rejected():
    cfg = _settings(ttl=60)
    token = issue_session_token(cfg, uuid.uuid4(), Role.REP, now=1_000)
    assert decode_session_token(cfg, token, now=1_060) is None


def test_tampered_token_rejected():
    cfg = _settings()
    token = issue_session_token(cfg, uuid.uuid4(), Role.REP)
    body, sig = token.split(".", 1)
    assert decode_session_token(cfg, f"{body}x.{sig}") is None
    assert decode_session_token(_settings("other"), token) is None
    assert decode_session_token(cfg, "garbage") is None
    assert decode_session_token(cfg, "") is None


def test_missing_secret_decodes_nothing():
    token = issue_session_token(_settings(), uuid.uuid4(), Role.ADMIN)
    assert decode_session_token(_settings(secret=""), token) is None


def test_password_hash_round_trip():
    stored = hash_password("correct horse")
    assert stored.startswith("pbkdf2_sha256$")
    assert verify_password("correct horse", stored)
    assert not verify_password("wrong", stored)
    assert not verify_password("correct horse", None)
    assert not verify_password("correct horse", "md5$1$aa$bb")
    assert not verify_password("correct horse", "pbkdf2_sha256$zero$aa$bb")


def test_password_hash_uses_configured_iterations(monkeypatch):
    monkeypatch.setattr(settings, "password_iterations", 1000)
    stored = hash_password("correct horse")
    assert stored.split("$")[1] == "1000"
    assert verify_password("correct horse", stored)
    assert hash_password("correct horse", iterations=50).split("$")[1] == "50"
