"""
Keyed digests and authenticated encryption for preview links.

Tokens are HMAC-SHA256 over canonical JSON (sorted keys, no whitespace),
so the same inputs always produce the same digest. Shareable links are
Fernet tokens: AES-128-CBC with an HMAC-SHA256 tag, reversible only with
the server key.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from cryptography.fernet import Fernet, InvalidToken


def canonical_json(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _stamp(dt: datetime) -> str:
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def compute_digest(
    secret: str,
    item_id: UUID,
    revision: datetime,
    expires_at: datetime,
    nonce: str,
) -> str:
    payload = {
        "item_id": str(item_id),
        "revision": _stamp(revision),
        "expires_at": _stamp(expires_at),
        "nonce": nonce,
    }
    return hmac.new(secret.encode("utf-8"), canonical_json(payload), hashlib.sha256).hexdigest()


def digests_match(expected: str, provided: str) -> bool:
    """Constant-time comparison."""
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


class ShareCipher:
    """Fernet wrapper for shareable link payloads."""

    def __init__(self, key: str | bytes) -> None:
        self._fernet = Fernet(key)

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("ascii")

    def encrypt(self, payload: dict[str, Any]) -> str:
        return self._fernet.encrypt(canonical_json(payload)).decode("ascii")

    def decrypt(self, token: str) -> dict[str, Any] | None:
        """Return the payload, or None if the token was tampered with or is not ours."""
        try:
            data = self._fernet.decrypt(token.encode("ascii"))
        except (InvalidToken, UnicodeEncodeError):
            return None
        try:
            payload = json.loads(data)
        except ValueError:
            return None
        return payload if isinstance(payload, dict) else None
