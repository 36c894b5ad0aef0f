"""Preview component - revocable preview tokens and shareable encrypted links."""

from blogflow.components.preview._crypto import ShareCipher, compute_digest
from blogflow.components.preview.component import PreviewTokenService, revoke_all_on_publish
from blogflow.components.preview.models import (
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

__all__ = [
    # Component
    "PreviewTokenService",
    "revoke_all_on_publish",
    # Crypto
    "ShareCipher",
    "compute_digest",
    # Models
    "IssuedToken",
    "PreviewNotFound",
    "PreviewOutcome",
    "PreviewRedirect",
    "PreviewRender",
    "PreviewStats",
    "PreviewTokenRecord",
    "ShareableLink",
    "TOKEN_KEY_PREFIX",
    "item_index_key",
    "token_key",
]
