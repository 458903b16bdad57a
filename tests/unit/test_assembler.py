"""Unit tests for the article assembler."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from hndaily.models import (
    Extracted,
    Failed,
    FetchError,
    FetchErrorKind,
    FetchOutcome,
    Paywalled,
    StoryRef,
)
from hndaily.services.assembler import ArticleAssembler
from hndaily.services.extractor import ContentExtractor
from hndaily.services.paywall import PaywallClassifier

URL = "https://example.com/article"


def _make_story(rank: int = 1, url: str = URL) -> StoryRef:
    return StoryRef(
        rank=rank,
        title=f"Story {rank}",
        url=url,
        points=42,
        comments_url=f"https://news.ycombinator.com/item?id={rank}",
    )


def _ok(body: str, status: int = 200, content_type: str = "text/html") -> FetchOutcome:
    return FetchOutcome(
        url=URL,
        final_url=URL,
        elapsed_ms=5.0,
        http_status=status,
        body=body.encode(),
        content_type=content_type,
    )


def _err(kind: FetchErrorKind, detail: str | int | None = None) -> FetchOutcome:
    error = FetchError(kind, detail)
    return FetchOutcome(
        url=URL,
        final_url=URL,
        elapsed_ms=5.0,
        http_status=detail if kind is FetchErrorKind.HTTP_STATUS else None,
        error=error,
    )


class TestArticleAssembler:
    """Tests for ArticleAssembler.assemble."""

    @pytest.fixture
    def fetcher(self) -> MagicMock:
        fetcher = MagicMock()
        fetcher.fetch = AsyncMock()
        return fetcher

    @pytest.fixture
    def assembler(self, fetcher: MagicMock) -> ArticleAssembler:
        return ArticleAssembler(
            fetcher=fetcher,
            classifier=PaywallClassifier(),
            extractor=ContentExtractor(),
            timeout=10.0,
            retry_backoff=0,
        )

    async def test_extracts_readable_article(
        self, assembler: ArticleAssembler, fetcher: MagicMock, article_html: str
    ) -> None:
        fetcher.fetch.return_value = _ok(article_html)
        story = _make_story()

        result = await assembler.assemble(story)

        assert result.story is story
        assert isinstance(result.status, Extracted)
        assert result.article.title == "Understanding Event Loops"
        assert result.is_available
        fetcher.fetch.assert_awaited_once_with(URL, timeout=10.0)

    async def test_timeout_is_retried_once(
        self, assembler: ArticleAssembler, fetcher: MagicMock
    ) -> None:
        """A story is fetched at most twice."""
        fetcher.fetch.return_value = _err(FetchErrorKind.TIMEOUT)

        result = await assembler.assemble(_make_story())

        assert result.status == Failed("timeout")
        assert fetcher.fetch.await_count == 2

    async def test_network_error_then_success(
        self, assembler: ArticleAssembler, fetcher: MagicMock, article_html: str
    ) -> None:
        fetcher.fetch.side_effect = [
            _err(FetchErrorKind.NETWORK, "connection reset"),
            _ok(article_html),
        ]

        result = await assembler.assemble(_make_story())

        assert isinstance(result.status, Extracted)
        assert fetcher.fetch.await_count == 2

    async def test_http_status_is_not_retried(
        self, assembler: ArticleAssembler, fetcher: MagicMock
    ) -> None:
        fetcher.fetch.return_value = _err(FetchErrorKind.HTTP_STATUS, 404)

        result = await assembler.assemble(_make_story())

        assert result.status == Failed("http status 404")
        assert fetcher.fetch.await_count == 1

    async def test_redirect_loop_is_not_retried(
        self, assembler: ArticleAssembler, fetcher: MagicMock
    ) -> None:
        fetcher.fetch.return_value = _err(FetchErrorKind.TOO_MANY_REDIRECTS)

        result = await assembler.assemble(_make_story())

        assert result.status == Failed("too many redirects")
        assert fetcher.fetch.await_count == 1

    async def test_restricted_status_is_paywalled(
        self, assembler: ArticleAssembler, fetcher: MagicMock, article_html: str
    ) -> None:
        """A 403 is a paywall, never a fetch failure."""
        fetcher.fetch.return_value = _ok(article_html, status=403)

        result = await assembler.assemble(_make_story())

        assert result.status == Paywalled("http status 403")
        assert result.article is None

    async def test_content_wall_is_paywalled(
        self, assembler: ArticleAssembler, fetcher: MagicMock
    ) -> None:
        fetcher.fetch.return_value = _ok(
            "<html><body><p>Sign in to read the rest of this story.</p></body></html>"
        )

        result = await assembler.assemble(_make_story())

        assert result.status == Paywalled("content wall detected")

    async def test_non_html_is_failed(
        self, assembler: ArticleAssembler, fetcher: MagicMock
    ) -> None:
        fetcher.fetch.return_value = _ok("%PDF-1.4", content_type="application/pdf")

        result = await assembler.assemble(_make_story())

        assert result.status == Failed("unsupported content type")

    async def test_blank_page_is_failed(
        self, assembler: ArticleAssembler, fetcher: MagicMock, blank_html: str
    ) -> None:
        fetcher.fetch.return_value = _ok(blank_html)

        result = await assembler.assemble(_make_story())

        assert result.status == Failed("no content found")

    async def test_unexpected_error_is_captured(self, fetcher: MagicMock, article_html: str) -> None:
        """Bugs in a stage become a Failed result instead of escaping."""
        fetcher.fetch.return_value = _ok(article_html)
        extractor = MagicMock()
        extractor.extract.side_effect = RuntimeError("boom")
        assembler = ArticleAssembler(
            fetcher=fetcher,
            classifier=PaywallClassifier(),
            extractor=extractor,
            retry_backoff=0,
        )

        result = await assembler.assemble(_make_story())

        assert result.status == Failed("unexpected error: boom")

    async def test_fallback_title_is_story_title(
        self, assembler: ArticleAssembler, fetcher: MagicMock
    ) -> None:
        body = (
            "<html><body><div class='post'>"
            f"<p>{'Queues, stacks and heaps are everywhere in systems code. ' * 6}</p>"
            f"<p>{'Pick the structure by its access pattern, not habit. ' * 6}</p>"
            "</div></body></html>"
        )
        fetcher.fetch.return_value = _ok(body)

        result = await assembler.assemble(_make_story(rank=7))

        assert result.article.title == "Story 7"
