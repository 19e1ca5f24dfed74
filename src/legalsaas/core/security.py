"""Credential primitives: bcrypt hashing and scoped JWTs.

Passwords and registration keys share the bcrypt helpers (bcrypt is used
directly, without passlib). Tokens are HS256 JWTs whose ``scope`` claim
separates tenant users from back-office administrators.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import HTTPException, status
from jose import JWTError, jwt

from src.legalsaas.config import get_settings

logger = logging.getLogger(__name__)

# Characters of a registration key kept in clear text for lookup
REGISTRATION_KEY_PREFIX_LENGTH = 8

# ── Password Hashing ──────────────────────────────────────────────────────────


def hash_password(password: str) -> str:
    """Hash a plaintext password using bcrypt."""
    salt = bcrypt.gensalt(rounds=get_settings().BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a plaintext password against its bcrypt hash."""
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


# ── Registration Keys ─────────────────────────────────────────────────────────


def generate_registration_key() -> tuple[str, str, str]:
    """Generate a new registration key.

    Returns:
        Tuple of (raw_key, key_prefix, key_hash). The raw key is shown to
        the administrator exactly once; only the prefix and hash are stored.
    """
    raw_key = secrets.token_hex(32)
    return raw_key, raw_key[:REGISTRATION_KEY_PREFIX_LENGTH], hash_password(raw_key)


# ── JWT Tokens ────────────────────────────────────────────────────────────────

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def _encode(claims: dict, token_type: str, lifetime: timedelta) -> str:
    """Sign ``claims`` plus the registered claims every token carries.

    Every token gets its own ``jti`` so a single refresh token can be
    revoked on logout or rotation.
    """
    settings = get_settings()
    issued_at = datetime.now(timezone.utc)
    payload = {
        **claims,
        "type": token_type,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Short-lived bearer token.

    ``data`` carries ``sub`` (account id) and ``scope`` ("tenant" or
    "admin"); tenant tokens also carry ``tenant_id``.
    """
    lifetime = expires_delta or timedelta(minutes=get_settings().JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(data, ACCESS_TOKEN, lifetime)


def create_refresh_token(data: dict) -> str:
    return _encode(data, REFRESH_TOKEN, timedelta(days=get_settings().JWT_REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str) -> dict | None:
    """Signature- and expiry-checked claims, or None for any unusable token."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def verify_token(token: str, token_type: str = ACCESS_TOKEN, scope: str | None = None) -> dict:
    """Claims of a valid token of the expected type and scope.

    Args:
        token: Encoded JWT.
        token_type: "access" or "refresh".
        scope: Required ``scope`` claim; any scope is accepted when None.

    Raises:
        HTTPException: 401 when the token is unusable or does not match.
    """
    payload = decode_token(token)
    problem = None
    if payload is None:
        problem = "invalid or expired"
    elif payload.get("type") != token_type:
        problem = f"expected a {token_type} token"
    elif not payload.get("sub"):
        problem = "missing subject"
    elif scope is not None and payload.get("scope") != scope:
        problem = f"expected scope {scope}"

    if problem is not None:
        logger.info("Rejected bearer token: %s", problem)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload
