from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class SiteRules(BaseModel):
    base_url: str
    post_path_prefix: str = "/blog/post"


class RangeRule(BaseModel):
    min: int
    max: int


class SlugRule(RangeRule):
    # Unset means any non-empty slug within max is accepted
    pattern: str | None = None


class MinRule(BaseModel):
    min: int


class PublishingRules(BaseModel):
    title: RangeRule
    slug: SlugRule
    content: MinRule
    require_unique_slug: bool = True


class PreviewRules(BaseModel):
    token_ttl_hours: int = Field(gt=0)
    token_key_prefix_length: int = Field(default=16, ge=8, le=64)
    path_prefix: str = "/preview"
    shareable_max_days: int = Field(default=30, gt=0)


class SchedulingRules(BaseModel):
    sweep_interval_seconds: int = Field(default=60, gt=0)
    task_max_attempts: int = Field(default=3, gt=0)
    task_backoff_seconds: list[int] = Field(default_factory=lambda: [30, 60, 120])


class Rules(BaseModel):
    project: ProjectRules
    site: SiteRules
    publishing: PublishingRules
    preview: PreviewRules
    scheduling: SchedulingRules
