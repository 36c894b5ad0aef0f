import re

from blogflow.domain.entities import ContentItem
from blogflow.domain.errors import FieldError
from blogflow.rules.models import PublishingRules


def validate_for_publishing(item: ContentItem, rules: PublishingRules) -> list[FieldError]:
    """
    Check that an item is ready to go public.

    Returns a list of field errors; empty means publishable.
    """
    errors: list[FieldError] = []

    title = (item.title or "").strip()
    if not title:
        errors.append(FieldError("TITLE_REQUIRED", "Title is required", "title"))
    elif len(title) < rules.title.min or len(title) > rules.title.max:
        errors.append(
            FieldError(
                "TITLE_LENGTH",
                f"Title must be between {rules.title.min} and {rules.title.max} characters",
                "title",
            )
        )

    content = (item.content or "").strip()
    if not content:
        errors.append(FieldError("CONTENT_REQUIRED", "Content is required", "content"))
    elif len(content) < rules.content.min:
        errors.append(
            FieldError(
                "CONTENT_TOO_SHORT",
                f"Content must be at least {rules.content.min} characters",
                "content",
            )
        )

    slug = (item.slug or "").strip()
    if not slug:
        errors.append(FieldError("SLUG_REQUIRED", "Slug is required", "slug"))
    elif len(slug) > rules.slug.max:
        errors.append(
            FieldError("SLUG_INVALID", f"Slug must be at most {rules.slug.max} characters", "slug")
        )
    elif rules.slug.pattern and not re.fullmatch(rules.slug.pattern, slug):
        errors.append(FieldError("SLUG_INVALID", "Slug format is invalid", "slug"))

    return errors
