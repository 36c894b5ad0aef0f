"""
Preview component - signed, time-limited access to unpublished items.

Two credential types:
- Preview tokens: keyed digest bound to the item's current revision and
  backed by a token store record. Revocable. Any edit invalidates them.
- Shareable links: self-contained Fernet payloads. Not revocable, not
  revision bound, only checked for expiry.

Invariants:
- Validation fails closed and never refreshes a TTL
- Every failed render is PreviewNotFound, whatever the cause
- Published items always redirect to the public URL
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import quote, unquote
from uuid import UUID

from blogflow.components.workflow.hooks import WorkflowEvent
from blogflow.domain.entities import Actor, ContentItem, ensure_utc
from blogflow.rules.models import PreviewRules, SiteRules

from ._crypto import ShareCipher, compute_digest, digests_match
from .models import (
    TOKEN_KEY_PREFIX,
    IssuedToken,
    PreviewNotFound,
    PreviewOutcome,
    PreviewRedirect,
    PreviewRender,
    PreviewStats,
    PreviewTokenRecord,
    ShareableLink,
    item_index_key,
    token_key,
)
from .ports import ActivityLog, ClockPort, ContentRepoPort, TokenStorePort

logger = logging.getLogger(__name__)


class PreviewTokenService:
    def __init__(
        self,
        clock: ClockPort,
        token_store: TokenStorePort,
        content_repo: ContentRepoPort,
        rules: PreviewRules,
        site: SiteRules,
        secret: str,
        share_key: str | bytes,
        activity: ActivityLog | None = None,
    ) -> None:
        if not secret:
            raise ValueError("Preview secret must not be empty")
        self._clock = clock
        self._store = token_store
        self._repo = content_repo
        self._rules = rules
        self._site = site
        self._secret = secret
        self._cipher = ShareCipher(share_key)
        self._activity = activity

    # --- URLs ---

    def public_url(self, item: ContentItem) -> str:
        base = self._site.base_url.rstrip("/")
        return f"{base}{self._site.post_path_prefix}/{item.slug}"

    def _preview_base(self) -> str:
        return f"{self._site.base_url.rstrip('/')}{self._rules.path_prefix}"

    def _key(self, item_id: UUID, token: str) -> str:
        return token_key(item_id, token, self._rules.token_key_prefix_length)

    # --- Tokens ---

    def issue_token(self, item: ContentItem) -> IssuedToken:
        """Create and store a token for the item's current revision."""
        now = self._clock.now()
        ttl = timedelta(hours=self._rules.token_ttl_hours)
        expires_at = now + ttl
        nonce = secrets.token_urlsafe(16)

        token = compute_digest(self._secret, item.id, item.revision, expires_at, nonce)
        record = PreviewTokenRecord(
            content_item_id=item.id,
            expires_at=expires_at,
            nonce=nonce,
            issued_at=now,
        )
        self._store.put(self._key(item.id, token), record.to_dict(), ttl, item_index_key(item.id))

        logger.info("Issued preview token for item %s, expires %s", item.id, expires_at.isoformat())
        url = f"{self._preview_base()}/{item.id}/{token}"
        return IssuedToken(token=token, expires_at=expires_at, url=url)

    def generate_preview_token(self, item: ContentItem) -> str:
        return self.issue_token(item).token

    def generate_preview_url(self, item: ContentItem) -> str:
        return self.issue_token(item).url

    def _load_record(self, key: str) -> PreviewTokenRecord | None:
        data = self._store.get(key)
        if data is None:
            return None
        try:
            return PreviewTokenRecord.from_dict(data)
        except (KeyError, TypeError, ValueError):
            logger.warning("Discarding malformed preview token record %s", key)
            self._store.delete(key)
            return None

    def validate_preview_token(self, item: ContentItem, token: str) -> bool:
        """
        Check a token against the stored record and the item's current revision.

        Deletes the record if it is found expired. Has no other side effects.
        """
        if not token:
            return False

        key = self._key(item.id, token)
        record = self._load_record(key)
        if record is None or record.content_item_id != item.id:
            return False

        if self._clock.now() >= record.expires_at:
            self._store.delete(key)
            return False

        expected = compute_digest(
            self._secret, item.id, item.revision, record.expires_at, record.nonce
        )
        return digests_match(expected, token)

    def revoke_preview_token(self, item: ContentItem, token: str) -> bool:
        """Delete one token. Returns whether anything was removed."""
        removed = self._store.delete(self._key(item.id, token))
        if removed:
            logger.info("Revoked preview token for item %s", item.id)
        return removed

    def revoke_all_preview_tokens(self, item: ContentItem | UUID) -> bool:
        """
        Delete every outstanding token for an item.

        Returns True when the item ends with no outstanding tokens, including
        when it had none to begin with.
        """
        item_id = item.id if isinstance(item, ContentItem) else item
        keys = self._store.keys_for_item(item_index_key(item_id))
        for key in keys:
            self._store.delete(key)
        if keys:
            logger.info("Revoked %d preview tokens for item %s", len(keys), item_id)
        return not self._store.keys_for_item(item_index_key(item_id))

    def cleanup_expired_tokens(self) -> int:
        """Delete every token record whose expiry has passed. Returns the count removed."""
        now = self._clock.now()
        removed = 0
        for key in self._store.scan(TOKEN_KEY_PREFIX):
            data = self._store.get(key)
            if data is None:
                # Evicted by the store on read
                removed += 1
                continue
            try:
                expires_at = datetime.fromisoformat(data["expires_at"])
            except (KeyError, TypeError, ValueError):
                expires_at = now
            if now >= expires_at and self._store.delete(key):
                removed += 1

        if removed:
            logger.info("Cleaned up %d expired preview tokens", removed)
        return removed

    # --- Rendering ---

    def render_preview(
        self,
        item_id: UUID,
        token: str,
        viewer: Actor | None = None,
    ) -> PreviewOutcome:
        item = self._repo.get_by_id(item_id)
        if item is None:
            return PreviewNotFound()

        if item.is_published():
            return PreviewRedirect(self.public_url(item))

        if item.status == "archived" or not self.validate_preview_token(item, token):
            return PreviewNotFound()

        record = self._load_record(self._key(item.id, token))
        self._record_access(item, viewer, {"via": "token"})
        return PreviewRender(item=item, expires_at=record.expires_at if record else None)

    def _record_access(
        self,
        item: ContentItem,
        viewer: Actor | None,
        metadata: dict[str, Any],
    ) -> None:
        logger.info(
            "Preview accessed for item %s from %s",
            item.id,
            viewer.source_address if viewer else "unknown",
        )
        if self._activity is None:
            return
        try:
            self._activity.log(
                item.id,
                "preview_accessed",
                "Post preview accessed",
                viewer,
                metadata=metadata,
            )
        except Exception as e:
            logger.warning("Failed to log preview access for item %s: %s", item.id, e)

    # --- Shareable links ---

    def generate_shareable_preview_link(
        self,
        item: ContentItem,
        expires_at: datetime | None = None,
    ) -> ShareableLink:
        """
        Build a self-contained encrypted link.

        Defaults to the longest allowed lifetime; later requests are capped
        to it.
        """
        now = self._clock.now()
        latest = now + timedelta(days=self._rules.shareable_max_days)
        if expires_at is not None:
            expires_at = ensure_utc(expires_at)
        if expires_at is None or expires_at > latest:
            expires_at = latest
        if expires_at <= now:
            raise ValueError("Shareable link expiry must be in the future")

        token = self._cipher.encrypt(
            {
                "item_id": str(item.id),
                "expires_at": expires_at.isoformat(),
                "shareable": True,
                "nonce": secrets.token_urlsafe(16),
            }
        )
        url = f"{self._preview_base()}/shared/{quote(token, safe='')}"
        logger.info(
            "Issued shareable preview link for item %s until %s", item.id, expires_at.isoformat()
        )
        return ShareableLink(url=url, token=token, expires_at=expires_at)

    def validate_shareable_link(self, token: str) -> UUID | None:
        """Return the item id a live shareable token points at, or None."""
        payload = self._cipher.decrypt(unquote(token))
        if payload is None or payload.get("shareable") is not True:
            return None
        try:
            item_id = UUID(payload["item_id"])
            expires_at = datetime.fromisoformat(payload["expires_at"])
        except (KeyError, TypeError, ValueError):
            return None
        if self._clock.now() >= expires_at:
            return None
        return item_id

    def render_shareable_preview(self, token: str, viewer: Actor | None = None) -> PreviewOutcome:
        item_id = self.validate_shareable_link(token)
        if item_id is None:
            return PreviewNotFound()

        item = self._repo.get_by_id(item_id)
        if item is None or item.status == "archived":
            return PreviewNotFound()
        if item.is_published():
            return PreviewRedirect(self.public_url(item))

        self._record_access(item, viewer, {"via": "shareable"})
        return PreviewRender(item=item)

    # --- Stats ---

    def get_preview_stats(self, item: ContentItem | UUID) -> PreviewStats:
        if self._activity is None:
            return PreviewStats()

        item_id = item.id if isinstance(item, ContentItem) else item
        entries = self._activity.entries_for(item_id, ("preview_accessed",))
        if not entries:
            return PreviewStats()
        return PreviewStats(
            total_previews=len(entries),
            unique_visitors=len({e.source_address for e in entries if e.source_address}),
            last_preview=max(e.occurred_at for e in entries),
        )


def revoke_all_on_publish(service: PreviewTokenService) -> Callable[[WorkflowEvent], None]:
    """Workflow hook subscriber: drop outstanding tokens once an item goes public."""

    def _listener(event: WorkflowEvent) -> None:
        service.revoke_all_preview_tokens(event.item.id)

    return _listener
