"""Internal cryptographic helpers for Tuya request signing."""

from __future__ import annotations

import secrets

from Crypto.Hash import HMAC, SHA256


def sha256_hex(payload: str) -> str:
    """Lowercase hex SHA-256 of a UTF-8 string (the request content hash)."""
    return SHA256.new(payload.encode("utf-8")).hexdigest()


def hmac_sha256_upper(payload: str, secret: str) -> str:
    """Uppercase hex HMAC-SHA256 of *payload* keyed by *secret*."""
    mac = HMAC.new(secret.encode("utf-8"), payload.encode("utf-8"), digestmod=SHA256)
    return mac.hexdigest().upper()


def new_nonce() -> str:
    """Random 32-hex-character nonce, fresh for every request."""
    return secrets.token_hex(16)
