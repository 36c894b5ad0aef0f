"""
Tests for PreviewTokenService.

Token round trip, TTL expiry, revision binding, revocation, render
decisions, shareable links, cleanup and stats.
"""

from __future__ import annotations

from datetime import timedelta
from urllib.parse import unquote

import pytest

from blogflow.adapters.memory import InMemoryActivityRepo, InMemoryTokenStore
from blogflow.components.activity import ActivityLog
from blogflow.components.preview import (
    PreviewNotFound,
    PreviewRedirect,
    PreviewRender,
    PreviewTokenService,
    ShareCipher,
    revoke_all_on_publish,
    token_key,
)
from blogflow.domain.entities import Actor

PREVIEW_SECRET = "test-preview-secret"

VIEWER = Actor(actor_id=None, source_address="203.0.113.9", user_agent="Mozilla/5.0")


def build_service(clock, store, content_repo, rules, share_key, activity=None):
    return PreviewTokenService(
        clock=clock,
        token_store=store,
        content_repo=content_repo,
        rules=rules.preview,
        site=rules.site,
        secret=PREVIEW_SECRET,
        share_key=share_key,
        activity=activity,
    )


def edit(content_repo, item, clock, **changes):
    """Simulate an editor saving the item."""
    clock.advance(seconds=1)
    return content_repo.save(item.model_copy(update={**changes, "updated_at": clock.now()}))


class TestTokenIssue:
    def test_token_is_hex_digest(self, preview, make_item):
        token = preview.generate_preview_token(make_item())
        assert len(token) == 64
        int(token, 16)

    def test_tokens_are_unique_per_issue(self, preview, make_item):
        item = make_item()
        assert preview.generate_preview_token(item) != preview.generate_preview_token(item)

    def test_record_stored_under_prefixed_key(self, preview, make_item, token_store, clock):
        item = make_item()
        token = preview.generate_preview_token(item)

        key = f"preview_token:{item.id}:{token[:16]}"
        record = token_store.get(key)
        assert record is not None
        assert record["content_item_id"] == str(item.id)
        assert record["issued_at"] == clock.now().isoformat()
        assert key == token_key(item.id, token)

    def test_preview_url(self, preview, make_item):
        item = make_item()
        url = preview.generate_preview_url(item)
        assert url.startswith(f"http://localhost:8000/preview/{item.id}/")

    def test_empty_secret_rejected(self, clock, token_store, content_repo, rules, share_key):
        with pytest.raises(ValueError):
            PreviewTokenService(
                clock, token_store, content_repo, rules.preview, rules.site, "", share_key
            )


class TestTokenValidation:
    def test_round_trip(self, preview, make_item):
        item = make_item()
        token = preview.generate_preview_token(item)
        assert preview.validate_preview_token(item, token) is True

    def test_expires_after_ttl(self, preview, make_item, clock):
        item = make_item()
        token = preview.generate_preview_token(item)

        clock.advance(hours=23, minutes=59)
        assert preview.validate_preview_token(item, token) is True

        clock.advance(minutes=1)
        assert preview.validate_preview_token(item, token) is False

    def test_expiry_detection_deletes_record(
        self, clock, content_repo, rules, share_key, make_item
    ):
        store = InMemoryTokenStore(clock, auto_evict=False)
        service = build_service(clock, store, content_repo, rules, share_key)
        item = make_item()
        token = service.generate_preview_token(item)

        clock.advance(hours=25)

        assert service.validate_preview_token(item, token) is False
        assert store.scan("preview_token:") == []

    def test_validation_does_not_refresh_ttl(self, preview, make_item, clock):
        item = make_item()
        token = preview.generate_preview_token(item)
        clock.advance(hours=20)
        assert preview.validate_preview_token(item, token)
        clock.advance(hours=4)
        assert not preview.validate_preview_token(item, token)

    def test_edit_invalidates_token(self, preview, make_item, content_repo, clock):
        item = make_item()
        token = preview.generate_preview_token(item)

        edited = edit(content_repo, item, clock, content="Rewritten body.")

        assert preview.validate_preview_token(edited, token) is False

    def test_token_for_other_item_rejected(self, preview, make_item):
        a = make_item()
        b = make_item()
        token = preview.generate_preview_token(a)
        assert preview.validate_preview_token(b, token) is False

    def test_tampered_token_rejected(self, preview, make_item):
        item = make_item()
        token = preview.generate_preview_token(item)
        forged = token[:16] + ("0" * 48 if token[16:] != "0" * 48 else "1" * 48)
        assert preview.validate_preview_token(item, forged) is False

    def test_empty_token_rejected(self, preview, make_item):
        assert preview.validate_preview_token(make_item(), "") is False

    def test_different_secret_rejects(
        self, clock, token_store, content_repo, rules, share_key, make_item
    ):
        item = make_item()
        issuer = build_service(clock, token_store, content_repo, rules, share_key)
        token = issuer.generate_preview_token(item)

        other = PreviewTokenService(
            clock,
            token_store,
            content_repo,
            rules.preview,
            rules.site,
            "another-secret",
            share_key,
        )
        assert other.validate_preview_token(item, token) is False


class TestRevocation:
    def test_revoke_single(self, preview, make_item):
        item = make_item()
        token = preview.generate_preview_token(item)

        assert preview.revoke_preview_token(item, token) is True
        assert preview.validate_preview_token(item, token) is False
        assert preview.revoke_preview_token(item, token) is False

    def test_revoke_all_only_touches_that_item(self, preview, make_item):
        a = make_item()
        b = make_item()
        a_tokens = [preview.generate_preview_token(a) for _ in range(3)]
        b_token = preview.generate_preview_token(b)

        assert preview.revoke_all_preview_tokens(a) is True

        assert not any(preview.validate_preview_token(a, t) for t in a_tokens)
        assert preview.validate_preview_token(b, b_token) is True

    def test_revoke_all_with_nothing_outstanding(self, preview, make_item):
        assert preview.revoke_all_preview_tokens(make_item()) is True

    def test_publish_hook_revokes_tokens(self, workflow, hooks, preview, make_item, token_store):
        hooks.subscribe("published", revoke_all_on_publish(preview))
        item = make_item()
        preview.generate_preview_token(item)
        preview.generate_preview_token(item)

        workflow.publish_now(item.id)

        assert token_store.keys_for_item(f"preview_token:{item.id}") == []


class TestCleanup:
    def test_cleanup_removes_only_expired(self, clock, content_repo, rules, share_key, make_item):
        store = InMemoryTokenStore(clock, auto_evict=False)
        service = build_service(clock, store, content_repo, rules, share_key)
        item = make_item()
        service.generate_preview_token(item)
        service.generate_preview_token(make_item())

        clock.advance(hours=25)
        fresh = service.generate_preview_token(item)

        assert service.cleanup_expired_tokens() == 2
        assert service.validate_preview_token(item, fresh) is True
        assert service.cleanup_expired_tokens() == 0

    def test_cleanup_with_nothing_stored(self, preview):
        assert preview.cleanup_expired_tokens() == 0


class TestRenderPreview:
    def test_renders_draft_with_noindex(self, preview, make_item, activity):
        item = make_item()
        token = preview.generate_preview_token(item)

        outcome = preview.render_preview(item.id, token, VIEWER)

        assert isinstance(outcome, PreviewRender)
        assert outcome.item.id == item.id
        assert outcome.headers["X-Robots-Tag"] == "noindex, nofollow"
        entries = activity.entries_for(item.id, ("preview_accessed",))
        assert len(entries) == 1
        assert entries[0].source_address == "203.0.113.9"

    def test_published_item_redirects(self, preview, workflow, make_item):
        item = make_item(slug="launch-day")
        token = preview.generate_preview_token(item)
        workflow.publish_now(item.id)

        outcome = preview.render_preview(item.id, token, VIEWER)

        assert outcome == PreviewRedirect("http://localhost:8000/blog/post/launch-day")

    def test_published_redirect_does_not_need_token(self, preview, workflow, make_item):
        item = make_item()
        workflow.publish_now(item.id)
        assert isinstance(preview.render_preview(item.id, "garbage"), PreviewRedirect)

    def test_invalid_token_is_not_found(self, preview, make_item, activity):
        item = make_item()
        assert isinstance(preview.render_preview(item.id, "nope"), PreviewNotFound)
        assert activity.entries_for(item.id) == []

    def test_missing_item_is_not_found(self, preview):
        from uuid import uuid4

        assert isinstance(preview.render_preview(uuid4(), "x" * 64), PreviewNotFound)

    def test_scheduled_item_renders(self, preview, workflow, make_item, content_repo, clock):
        item = make_item()
        workflow.schedule_post(item.id, clock.now() + timedelta(hours=2))
        scheduled = content_repo.get_by_id(item.id)
        token = preview.generate_preview_token(scheduled)

        outcome = preview.render_preview(item.id, token)

        assert isinstance(outcome, PreviewRender)
        assert outcome.item.status == "scheduled"

    def test_activity_failure_does_not_block_render(
        self, clock, token_store, content_repo, rules, share_key, make_item
    ):
        class BrokenActivityRepo(InMemoryActivityRepo):
            def append(self, entry):
                raise RuntimeError("audit store offline")

        service = build_service(
            clock,
            token_store,
            content_repo,
            rules,
            share_key,
            activity=ActivityLog(BrokenActivityRepo(), clock),
        )
        item = make_item()
        token = service.generate_preview_token(item)

        assert isinstance(service.render_preview(item.id, token, VIEWER), PreviewRender)


class TestShareableLinks:
    def _token_from(self, url: str) -> str:
        return unquote(url.rsplit("/", 1)[1])

    def test_link_round_trip(self, preview, make_item, clock):
        item = make_item()
        link = preview.generate_shareable_preview_link(item, clock.now() + timedelta(days=7))

        assert link.url.startswith("http://localhost:8000/preview/shared/")
        assert self._token_from(link.url) == link.token
        assert preview.validate_shareable_link(link.token) == item.id

    def test_link_needs_no_token_store(self, preview, make_item, token_store, clock):
        item = make_item()
        link = preview.generate_shareable_preview_link(item, clock.now() + timedelta(days=1))
        assert token_store.scan("") == []
        assert isinstance(preview.render_shareable_preview(link.token, VIEWER), PreviewRender)

    def test_link_expires(self, preview, make_item, clock):
        item = make_item()
        link = preview.generate_shareable_preview_link(item, clock.now() + timedelta(days=1))

        clock.advance(days=1)

        assert preview.validate_shareable_link(link.token) is None
        assert isinstance(preview.render_shareable_preview(link.token), PreviewNotFound)

    def test_link_survives_edits(self, preview, make_item, content_repo, clock):
        item = make_item()
        link = preview.generate_shareable_preview_link(item, clock.now() + timedelta(days=1))
        edit(content_repo, item, clock, title="Retitled")
        assert isinstance(preview.render_shareable_preview(link.token), PreviewRender)

    def test_expiry_capped(self, preview, make_item, clock):
        link = preview.generate_shareable_preview_link(
            make_item(), clock.now() + timedelta(days=365)
        )
        assert link.expires_at == clock.now() + timedelta(days=30)

    def test_default_expiry(self, preview, make_item, clock):
        link = preview.generate_shareable_preview_link(make_item())
        assert link.expires_at == clock.now() + timedelta(days=30)

    def test_past_expiry_rejected(self, preview, make_item, clock):
        with pytest.raises(ValueError):
            preview.generate_shareable_preview_link(make_item(), clock.now())

    def test_foreign_key_rejected(self, preview, make_item, clock):
        item = make_item()
        foreign = ShareCipher(ShareCipher.generate_key()).encrypt(
            {
                "item_id": str(item.id),
                "expires_at": (clock.now() + timedelta(days=1)).isoformat(),
                "shareable": True,
                "nonce": "n",
            }
        )
        assert preview.validate_shareable_link(foreign) is None

    def test_non_shareable_payload_rejected(self, preview, make_item, share_key, clock):
        item = make_item()
        token = ShareCipher(share_key).encrypt(
            {
                "item_id": str(item.id),
                "expires_at": (clock.now() + timedelta(days=1)).isoformat(),
                "shareable": False,
                "nonce": "n",
            }
        )
        assert preview.validate_shareable_link(token) is None

    def test_garbage_rejected(self, preview):
        assert preview.validate_shareable_link("not-a-fernet-token") is None
        assert isinstance(preview.render_shareable_preview("üñí"), PreviewNotFound)

    def test_published_item_redirects(self, preview, workflow, make_item, clock):
        item = make_item(slug="shared-post")
        link = preview.generate_shareable_preview_link(item, clock.now() + timedelta(days=1))
        workflow.publish_now(item.id)

        outcome = preview.render_shareable_preview(link.token)

        assert outcome == PreviewRedirect("http://localhost:8000/blog/post/shared-post")


class TestPreviewStats:
    def test_stats_aggregate_preview_access(self, preview, make_item, clock):
        item = make_item()
        token = preview.generate_preview_token(item)
        preview.render_preview(item.id, token, VIEWER)
        clock.advance(minutes=5)
        preview.render_preview(item.id, token, VIEWER)
        clock.advance(minutes=5)
        preview.render_preview(
            item.id, token, Actor(source_address="198.51.100.4", user_agent="curl")
        )

        stats = preview.get_preview_stats(item)

        assert stats.total_previews == 3
        assert stats.unique_visitors == 2
        assert stats.last_preview == clock.now()

    def test_stats_zero_without_activity_backend(
        self, clock, token_store, content_repo, rules, share_key, make_item
    ):
        service = build_service(clock, token_store, content_repo, rules, share_key)
        item = make_item()
        token = service.generate_preview_token(item)
        service.render_preview(item.id, token, VIEWER)

        stats = service.get_preview_stats(item)

        assert (stats.total_previews, stats.unique_visitors, stats.last_preview) == (0, 0, None)
