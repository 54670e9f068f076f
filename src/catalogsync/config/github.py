"""GitHub repository configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_BRANCH = "main"
GITHUB_TIMEOUT_SECONDS = 20.0


@dataclass(frozen=True, slots=True)
class GitHubConfig:
    """Where the catalog documents live and how to authenticate writes."""

    owner: str
    repository: str
    branch: str
    token: str | None
    resilience: ResilienceConfig

    @property
    def has_token(self) -> bool:
        return bool(self.token)


def _split_repository(value: str) -> tuple[str, str]:
    owner, _, name = value.strip().partition("/")
    if not owner or not name or "/" in name:
        raise ConfigurationError(f"Repository must look like 'owner/name', got: {value}")
    return owner, name


def get_github_config(*, resilience: ResilienceConfig | None = None) -> GitHubConfig:
    values = require_env_vars(("CATALOGSYNC_REPOSITORY",))
    owner, repository = _split_repository(values["CATALOGSYNC_REPOSITORY"])
    api_url = optional_env_var("CATALOGSYNC_API_URL", DEFAULT_GITHUB_API_URL)
    return GitHubConfig(
        owner=owner,
        repository=repository,
        branch=optional_env_var("CATALOGSYNC_BRANCH", DEFAULT_BRANCH) or DEFAULT_BRANCH,
        token=optional_env_var("CATALOGSYNC_GITHUB_TOKEN"),
        resilience=resilience
        or ResilienceConfig(
            name="github",
            base_url=api_url,
            timeout_seconds=GITHUB_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=3),
            ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
            default_headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        ),
    )
