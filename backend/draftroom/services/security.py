"""Password hashing and session tokens.

Passwords are hashed with bcrypt. Session tokens are Fernet tokens whose
payload is the user id; Fernet embeds the issue timestamp, so expiry is
checked with ``decrypt(..., ttl=...)`` and no token state is stored
server side.
"""
from __future__ import annotations

import base64
import hashlib
import json
import logging
from functools import lru_cache

import bcrypt
from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


@lru_cache(maxsize=8)
def _get_cipher(secret_key: str) -> Fernet:
    # Derive a 32-byte key from SECRET_KEY using SHA-256
    key_bytes = hashlib.sha256(secret_key.encode()).digest()
    fernet_key = base64.urlsafe_b64encode(key_bytes)
    return Fernet(fernet_key)


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def issue_session_token(user_id: str, secret_key: str) -> str:
    """Encrypt a session payload for *user_id*."""
    payload = json.dumps({"sub": user_id}).encode()
    return _get_cipher(secret_key).encrypt(payload).decode()


def read_session_token(token: str, secret_key: str, ttl_seconds: int) -> str | None:
    """Return the user id in *token*, or None if it is invalid or expired."""
    try:
        raw = _get_cipher(secret_key).decrypt(token.encode(), ttl=ttl_seconds)
    except InvalidToken:
        logger.debug("Rejected invalid or expired session token")
        return None
    try:
        return json.loads(raw)["sub"]
    except (ValueError, KeyError, TypeError):
        logger.warning("Session token payload is malformed")
        return None
