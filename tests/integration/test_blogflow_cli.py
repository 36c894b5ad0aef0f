"""CLI commands and service wiring against a temporary data directory."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from blogflow.adapters.sqlite import SQLiteContentRepo, SQLiteDatabase
from blogflow.app_shell import cli
from blogflow.app_shell.config import DEV_PREVIEW_SECRET, Settings, derive_share_key
from blogflow.app_shell.context import ServiceContext
from blogflow.domain.entities import ContentItem
from blogflow.rules.loader import load_rules

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture
def env(tmp_path, monkeypatch):
    monkeypatch.setenv("BLOGFLOW_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("BLOGFLOW_RULES_PATH", str(PROJECT_ROOT / "rules.yaml"))
    monkeypatch.setenv("BLOGFLOW_MIGRATIONS_DIR", str(PROJECT_ROOT / "migrations"))
    monkeypatch.setenv("BLOGFLOW_PREVIEW_SECRET", "cli-secret")
    monkeypatch.delenv("BLOGFLOW_SHARE_KEY", raising=False)
    return tmp_path


class TestSettings:
    def test_reads_environment(self, env):
        settings = Settings()
        assert settings.db_path == str(env / "data" / "blogflow.db")
        assert settings.preview_secret == "cli-secret"
        assert settings.share_key == derive_share_key("cli-secret")

    def test_falls_back_to_dev_secret(self, env, monkeypatch):
        monkeypatch.delenv("BLOGFLOW_PREVIEW_SECRET")
        assert Settings().preview_secret == DEV_PREVIEW_SECRET


class TestCli:
    def test_migrate_is_idempotent(self, env, capsys):
        cli.main(["migrate"])
        assert "Applied 1 migrations." in capsys.readouterr().out

        cli.main(["migrate"])
        assert "Applied 0 migrations." in capsys.readouterr().out

    def test_process_scheduled_publishes_due_posts(self, env, capsys):
        cli.main(["migrate"])
        repo = SQLiteContentRepo(SQLiteDatabase(Settings().db_path))
        past = datetime.now(UTC) - timedelta(minutes=5)
        item = repo.save(
            ContentItem(
                title="Due",
                slug="due",
                content="Body",
                status="scheduled",
                publish_at=past,
                created_at=past,
                updated_at=past,
            )
        )
        capsys.readouterr()

        cli.main(["process-scheduled"])

        assert "Published 1 scheduled posts." in capsys.readouterr().out
        assert repo.get_by_id(item.id).status == "published"

    def test_cleanup_tokens(self, env, capsys):
        cli.main(["migrate"])
        capsys.readouterr()

        cli.main(["cleanup-tokens"])

        assert "Removed 0 expired preview tokens." in capsys.readouterr().out

    def test_missing_rules_exits(self, env, monkeypatch):
        monkeypatch.setenv("BLOGFLOW_RULES_PATH", str(env / "missing.yaml"))
        with pytest.raises(SystemExit):
            cli.main(["process-scheduled"])


def test_context_revokes_tokens_on_archive(env, clock):
    cli.main(["migrate"])
    settings = Settings()
    ctx = ServiceContext.create(settings, load_rules(settings.rules_path), clock=clock)
    item = ctx.content_repo.save(
        ContentItem(
            title="T",
            slug="t",
            content="Body",
            created_at=clock.now(),
            updated_at=clock.now(),
        )
    )
    token = ctx.preview_service.generate_preview_token(item)

    ctx.workflow_service.archive(item.id)

    assert not ctx.preview_service.validate_preview_token(item, token)
