"""Configuration loading for hn-daily."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)

# Weak signals, only trusted on short pages
DEFAULT_PAYWALL_KEYWORDS = frozenset(
    {
        "subscribe",
        "subscription",
        "subscriber",
        "paywall",
        "premium content",
        "members only",
        "log in",
        "sign in",
        "create an account",
        "register",
    }
)

# Strong signals, trusted anywhere in the visible text
DEFAULT_PAYWALL_PHRASES = frozenset(
    {
        "subscribe to continue",
        "subscribe to read",
        "sign in to read",
        "sign in to continue reading",
        "log in to continue reading",
        "register to continue reading",
        "this article is for subscribers only",
        "this content is for subscribers only",
        "become a subscriber to read",
        "you have reached your limit of free articles",
        "you've reached your free article limit",
    }
)

# class/id tokens of known subscription overlays
DEFAULT_PAYWALL_MARKERS = frozenset(
    {
        "paywall",
        "paywall-overlay",
        "paywall-modal",
        "paywall-container",
        "regwall",
        "tp-modal",
        "tp-backdrop",
        "subscriber-wall",
        "subscription-wall",
        "registration-wall",
        "meter-wall",
        "subscribe-modal",
    }
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_prefix="HNDAILY_")

    # Listing
    story_count: int = Field(default=30, description="Number of top stories in the digest")

    # Fetching
    per_request_timeout_ms: int = Field(default=10_000, description="Per-request timeout")
    max_redirects: int = Field(default=5, description="Maximum redirects followed per request")
    retry_backoff_ms: int = Field(default=500, description="Pause before the single retry")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent for page fetches")

    # Concurrency
    concurrency_limit: int = Field(default=8, description="Maximum stories processed at once")
    overall_guard_timeout_ms: int = Field(
        default=120_000, description="Deadline for the whole fan-out"
    )

    # Paywall heuristics
    paywall_keywords: frozenset[str] = Field(default=DEFAULT_PAYWALL_KEYWORDS)
    paywall_phrases: frozenset[str] = Field(default=DEFAULT_PAYWALL_PHRASES)
    paywall_markers: frozenset[str] = Field(default=DEFAULT_PAYWALL_MARKERS)
    min_body_chars_for_paywall_heuristic: int = Field(
        default=500, description="Pages shorter than this are checked for paywall keywords"
    )

    # Extraction
    min_content_score_threshold: float = Field(
        default=10.0, description="Minimum score for a content container"
    )

    # Output
    output_dir: Path = Field(default=Path.home() / "hn_daily", description="Digest directory")
    pdf_enabled: bool = Field(default=True, description="Convert the HTML digest to PDF")

    # Application settings
    log_level: str = Field(default="INFO", description="Logging level")
    dry_run: bool = Field(default=False, description="Write the digest to a temporary directory")

    @field_validator("story_count")
    @classmethod
    def validate_story_count(cls, v: int) -> int:
        """Validate the story count is within the API's range."""
        if not 1 <= v <= 500:
            raise ValueError(
                f"HNDAILY_STORY_COUNT must be between 1 and 500, got {v}."
            )
        return v

    @field_validator("concurrency_limit")
    @classmethod
    def validate_concurrency_limit(cls, v: int) -> int:
        """Validate at least one story can be in flight."""
        if v < 1:
            raise ValueError(
                f"HNDAILY_CONCURRENCY_LIMIT must be at least 1, got {v}."
            )
        return v

    @field_validator("per_request_timeout_ms", "overall_guard_timeout_ms")
    @classmethod
    def validate_timeouts(cls, v: int) -> int:
        """Validate timeouts are positive."""
        if v <= 0:
            raise ValueError(f"Timeouts must be positive milliseconds, got {v}.")
        return v

    @field_validator("max_redirects", "retry_backoff_ms", "min_body_chars_for_paywall_heuristic")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Value must not be negative, got {v}.")
        return v

    @field_validator("paywall_keywords", "paywall_phrases", "paywall_markers")
    @classmethod
    def normalize_phrases(cls, v: frozenset[str]) -> frozenset[str]:
        """Lowercase and trim heuristic phrases, dropping blanks."""
        return frozenset(p.strip().lower() for p in v if p.strip())

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate the log level name."""
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(
                f"HNDAILY_LOG_LEVEL '{v}' is not one of {', '.join(sorted(LOG_LEVELS))}."
            )
        return level

    @property
    def per_request_timeout(self) -> float:
        return self.per_request_timeout_ms / 1000

    @property
    def overall_guard_timeout(self) -> float:
        return self.overall_guard_timeout_ms / 1000

    @property
    def retry_backoff(self) -> float:
        return self.retry_backoff_ms / 1000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
