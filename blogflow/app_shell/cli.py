import argparse
import logging
import sys

from blogflow.adapters.sqlite import SQLiteMigrator
from blogflow.app_shell.config import Settings
from blogflow.app_shell.context import ServiceContext
from blogflow.rules.loader import load_rules

logger = logging.getLogger("cli")


def get_context(settings: Settings) -> ServiceContext:
    if not settings.rules_path.exists():
        logger.error("Rules file %s not found.", settings.rules_path)
        sys.exit(1)

    rules = load_rules(settings.rules_path)
    return ServiceContext.create(settings, rules)


def handle_migrate(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(settings.db_path, str(settings.migrations_dir)).run_migrations()
    print(f"Applied {len(applied)} migrations.")


def handle_process_scheduled(ctx: ServiceContext) -> None:
    count = ctx.workflow_service.process_scheduled_posts()
    print(f"Published {count} scheduled posts.")


def handle_cleanup_tokens(ctx: ServiceContext) -> None:
    count = ctx.preview_service.cleanup_expired_tokens()
    print(f"Removed {count} expired preview tokens.")


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Blogflow publishing workflow CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("migrate", help="Apply pending database migrations")
    subparsers.add_parser("process-scheduled", help="Publish scheduled posts that are due")
    subparsers.add_parser("cleanup-tokens", help="Delete expired preview tokens")

    args = parser.parse_args(argv)
    settings = Settings()

    if args.command == "migrate":
        handle_migrate(settings)
        return

    ctx = get_context(settings)
    if args.command == "process-scheduled":
        handle_process_scheduled(ctx)
    elif args.command == "cleanup-tokens":
        handle_cleanup_tokens(ctx)


if __name__ == "__main__":
    main()
