"""
Process configuration from the environment.

BLOGFLOW_DATA_DIR        directory holding blogflow.db (default ./data)
BLOGFLOW_RULES_PATH      rules file (default ./rules.yaml)
BLOGFLOW_MIGRATIONS_DIR  .sql migrations (default ./migrations)
BLOGFLOW_PREVIEW_SECRET  key for preview token digests
BLOGFLOW_SHARE_KEY       Fernet key for shareable links
"""

from __future__ import annotations

import base64
import hashlib
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

DEV_PREVIEW_SECRET = "dev-preview-secret-unsafe"


def derive_share_key(secret: str) -> str:
    """Fernet key derived from the preview secret, for when no share key is configured."""
    digest = hashlib.sha256(f"blogflow-share:{secret}".encode()).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii")


class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("BLOGFLOW_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "blogflow.db")
        self.rules_path = Path(os.environ.get("BLOGFLOW_RULES_PATH", self.base_dir / "rules.yaml"))
        self.migrations_dir = Path(
            os.environ.get("BLOGFLOW_MIGRATIONS_DIR", self.base_dir / "migrations")
        )

        self.preview_secret = os.environ.get("BLOGFLOW_PREVIEW_SECRET", "")
        if not self.preview_secret:
            logger.warning("BLOGFLOW_PREVIEW_SECRET is not set, using an unsafe development secret")
            self.preview_secret = DEV_PREVIEW_SECRET

        self.share_key = os.environ.get("BLOGFLOW_SHARE_KEY") or derive_share_key(
            self.preview_secret
        )
