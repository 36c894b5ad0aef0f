from datetime import timedelta
from typing import Any, Protocol


class TokenStorePort(Protocol):
    """
    Key-value store with per-entry TTL.

    Stores that cannot enumerate keys by pattern keep an explicit
    per-item index so revoke-all is a plain iteration.
    """

    def put(self, key: str, value: dict[str, Any], ttl: timedelta, item_key: str) -> None:
        """Store value under key, indexed under item_key, expiring after ttl."""
        ...

    def get(self, key: str) -> dict[str, Any] | None:
        """Return the value, or None if missing or already evicted."""
        ...

    def delete(self, key: str) -> bool:
        """Delete key. Returns True if something was removed."""
        ...

    def keys_for_item(self, item_key: str) -> list[str]:
        """All live keys indexed under item_key."""
        ...

    def scan(self, prefix: str) -> list[str]:
        """All stored keys starting with prefix, including not-yet-evicted expired ones."""
        ...
