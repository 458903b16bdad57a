"""Shared data models for hn-daily."""

from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlparse

HN_ITEM_URL = "https://news.ycombinator.com/item?id={id}"


@dataclass(frozen=True)
class StoryRef:
    """A ranked story from the Hacker News front page."""

    rank: int
    title: str
    url: str
    points: int
    comments_url: str
    by: str = "unknown"
    comment_count: int = 0

    def __post_init__(self) -> None:
        if self.rank < 1:
            raise ValueError(f"rank must be >= 1, got {self.rank}")

    @property
    def domain(self) -> str:
        """Host name of the story URL, without a leading www."""
        host = urlparse(self.url).hostname or ""
        return host.removeprefix("www.")


class FetchErrorKind(str, Enum):
    TIMEOUT = "timeout"
    TOO_MANY_REDIRECTS = "too_many_redirects"
    HTTP_STATUS = "http_status"
    NETWORK = "network"


class FetchError(Exception):
    """Raised when a page cannot be retrieved."""

    def __init__(self, kind: FetchErrorKind, detail: str | int | None = None) -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(self.reason)

    @property
    def reason(self) -> str:
        """Human-readable failure reason."""
        if self.kind is FetchErrorKind.TIMEOUT:
            return "timeout"
        if self.kind is FetchErrorKind.TOO_MANY_REDIRECTS:
            return "too many redirects"
        if self.kind is FetchErrorKind.HTTP_STATUS:
            return f"http status {self.detail}"
        return f"network error: {self.detail}"

    @property
    def retryable(self) -> bool:
        """Whether the assembler may retry after this error."""
        return self.kind in (FetchErrorKind.TIMEOUT, FetchErrorKind.NETWORK)


class ExtractErrorKind(str, Enum):
    NO_CONTENT_FOUND = "no content found"
    EMPTY_ARTICLE = "empty article"
    MALFORMED_DOCUMENT = "malformed document"


class ExtractError(Exception):
    """Raised when no article can be extracted from a page."""

    def __init__(self, kind: ExtractErrorKind) -> None:
        self.kind = kind
        super().__init__(self.reason)

    @property
    def reason(self) -> str:
        return self.kind.value


@dataclass
class FetchOutcome:
    """Result of a single page retrieval.

    Exactly one of ``body`` and ``error`` is set. Restricted statuses
    (401/402/403/451) arrive with a body and their ``http_status``.
    ``encoding`` is the charset declared in the Content-Type header, if any.
    """

    url: str
    final_url: str
    elapsed_ms: float
    http_status: int | None = None
    body: bytes | None = field(default=None, repr=False)
    content_type: str | None = None
    encoding: str | None = None
    error: FetchError | None = None

    def __post_init__(self) -> None:
        if (self.body is None) == (self.error is None):
            raise ValueError("FetchOutcome needs exactly one of body or error")


# Access verdicts


@dataclass(frozen=True)
class Accessible:
    pass


@dataclass(frozen=True)
class Restricted:
    reason: str


@dataclass(frozen=True)
class Unknown:
    pass


AccessVerdict = Accessible | Restricted | Unknown


# Content blocks


@dataclass(frozen=True)
class Heading:
    level: int
    text: str


@dataclass(frozen=True)
class Paragraph:
    text: str


@dataclass(frozen=True)
class Code:
    text: str
    lang: str | None = None


@dataclass(frozen=True)
class Image:
    src: str
    alt: str | None = None


@dataclass(frozen=True)
class Table:
    rows: tuple[tuple[str, ...], ...]


@dataclass(frozen=True)
class Quote:
    text: str


@dataclass(frozen=True)
class ListBlock:
    items: tuple[str, ...]
    ordered: bool = False


ContentBlock = Heading | Paragraph | Code | Image | Table | Quote | ListBlock


@dataclass(frozen=True)
class ExtractedArticle:
    """Readable content isolated from a page."""

    title: str
    byline: str | None
    blocks: tuple[ContentBlock, ...]
    word_count: int


# Article result statuses


@dataclass(frozen=True)
class Extracted:
    article: ExtractedArticle


@dataclass(frozen=True)
class Paywalled:
    reason: str


@dataclass(frozen=True)
class Failed:
    reason: str


ArticleStatus = Extracted | Paywalled | Failed


@dataclass(frozen=True)
class ArticleResult:
    """Terminal outcome for one story. Exactly one exists per input story."""

    story: StoryRef
    status: ArticleStatus

    @property
    def article(self) -> ExtractedArticle | None:
        if isinstance(self.status, Extracted):
            return self.status.article
        return None

    @property
    def is_available(self) -> bool:
        return isinstance(self.status, Extracted)
