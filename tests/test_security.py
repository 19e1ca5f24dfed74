"""Security primitive tests: password hashing, registration keys and JWTs."""

from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi import HTTPException

from src.legalsaas.core.security import (
    REGISTRATION_KEY_PREFIX_LENGTH,
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_registration_key,
    hash_password,
    verify_password,
    verify_token,
)

CLAIMS = {"sub": "user-1", "scope": "tenant", "tenant_id": "tenant-alpha"}


# ── Passwords ─────────────────────────────────────────────────────────────────


def test_hash_and_verify_password():
    hashed = hash_password("senha-forte-123")
    assert hashed != "senha-forte-123"
    assert verify_password("senha-forte-123", hashed)
    assert not verify_password("senha-errada", hashed)


def test_hashes_are_salted():
    assert hash_password("same") != hash_password("same")


# ── Registration keys ─────────────────────────────────────────────────────────


def test_generate_registration_key():
    raw_key, prefix, key_hash = generate_registration_key()
    assert len(raw_key) == 64
    assert prefix == raw_key[:REGISTRATION_KEY_PREFIX_LENGTH]
    assert raw_key not in key_hash
    assert verify_password(raw_key, key_hash)


# ── Tokens ────────────────────────────────────────────────────────────────────


def test_access_token_round_trip():
    payload = verify_token(create_access_token(CLAIMS), scope="tenant")
    assert payload["sub"] == "user-1"
    assert payload["tenant_id"] == "tenant-alpha"
    assert payload["type"] == "access"


def test_tokens_carry_distinct_jti():
    first = decode_token(create_refresh_token(CLAIMS))
    second = decode_token(create_refresh_token(CLAIMS))
    assert first["jti"] != second["jti"]
    assert first["type"] == "refresh"


def test_refresh_token_is_not_an_access_token():
    with pytest.raises(HTTPException) as exc_info:
        verify_token(create_refresh_token(CLAIMS))
    assert exc_info.value.status_code == 401


def test_scope_mismatch_is_rejected():
    with pytest.raises(HTTPException) as exc_info:
        verify_token(create_access_token(CLAIMS), scope="admin")
    assert exc_info.value.status_code == 401


def test_expired_token_is_rejected():
    token = create_access_token(CLAIMS, expires_delta=timedelta(seconds=-1))
    assert decode_token(token) is None
    with pytest.raises(HTTPException):
        verify_token(token)


def test_token_without_subject_is_rejected():
    with pytest.raises(HTTPException):
        verify_token(create_access_token({"scope": "tenant"}))


def test_garbage_token():
    assert decode_token("not-a-jwt") is None
