"""
Preview component models.

A preview token is a random nonce plus a keyed digest bound to one item
revision. Stored records carry the nonce, so a token is only as good as
its record: once the record is gone (revoked, expired, cleaned up) the
token is dead even if the digest would still match.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from blogflow.domain.entities import ContentItem

TOKEN_KEY_PREFIX = "preview_token:"


def token_key(item_id: UUID, token: str, prefix_length: int = 16) -> str:
    """Store key for a token: preview_token:{item_id}:{token[:n]}."""
    return f"{TOKEN_KEY_PREFIX}{item_id}:{token[:prefix_length]}"


def item_index_key(item_id: UUID) -> str:
    return f"{TOKEN_KEY_PREFIX}{item_id}"


@dataclass(frozen=True)
class PreviewTokenRecord:
    """What the token store holds for one outstanding token."""

    content_item_id: UUID
    expires_at: datetime
    nonce: str
    issued_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "content_item_id": str(self.content_item_id),
            "expires_at": self.expires_at.isoformat(),
            "nonce": self.nonce,
            "issued_at": self.issued_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PreviewTokenRecord:
        return cls(
            content_item_id=UUID(data["content_item_id"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
            nonce=data["nonce"],
            issued_at=datetime.fromisoformat(data["issued_at"]),
        )


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime
    url: str


@dataclass(frozen=True)
class ShareableLink:
    url: str
    token: str
    expires_at: datetime


# --- Render outcomes ---


@dataclass(frozen=True)
class PreviewRender:
    """Show the item to the previewer. Responses must not be indexed."""

    item: ContentItem
    expires_at: datetime | None = None
    headers: dict[str, str] = field(
        default_factory=lambda: {"X-Robots-Tag": "noindex, nofollow"}
    )


@dataclass(frozen=True)
class PreviewRedirect:
    """The item is already public; send the viewer to the live URL."""

    url: str


@dataclass(frozen=True)
class PreviewNotFound:
    """Any failure. Deliberately carries no reason."""

    pass


PreviewOutcome = PreviewRender | PreviewRedirect | PreviewNotFound


@dataclass(frozen=True)
class PreviewStats:
    total_previews: int = 0
    unique_visitors: int = 0
    last_preview: datetime | None = None
