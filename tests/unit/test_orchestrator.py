"""Unit tests for the digest orchestrator."""

from datetime import date
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from hndaily.clients.hackernews import ListingError
from hndaily.models import (
    ArticleResult,
    Extracted,
    ExtractedArticle,
    Failed,
    Paragraph,
    Paywalled,
    StoryRef,
)
from hndaily.services.orchestrator import DigestOrchestrator

DAY = date(2025, 3, 5)


def _make_story(rank: int) -> StoryRef:
    return StoryRef(
        rank=rank,
        title=f"Story {rank}",
        url=f"https://example.com/{rank}",
        points=50,
        comments_url=f"https://news.ycombinator.com/item?id={rank}",
    )


def _results() -> list[ArticleResult]:
    article = ExtractedArticle(
        title="Story 1",
        byline=None,
        blocks=(Paragraph(text="Hello digest readers"),),
        word_count=3,
    )
    return [
        ArticleResult(story=_make_story(1), status=Extracted(article)),
        ArticleResult(story=_make_story(2), status=Paywalled("http status 402")),
        ArticleResult(story=_make_story(3), status=Failed("timeout")),
    ]


class TestDigestOrchestrator:
    """Tests for DigestOrchestrator.run."""

    @pytest.fixture
    def hn_client(self) -> MagicMock:
        client = MagicMock()
        client.get_top_stories = AsyncMock(return_value=[_make_story(r) for r in (1, 2, 3)])
        return client

    @pytest.fixture
    def coordinator(self) -> MagicMock:
        coordinator = MagicMock()
        coordinator.run = AsyncMock(return_value=_results())
        return coordinator

    @pytest.fixture
    def converter(self) -> MagicMock:
        converter = MagicMock()
        converter.available = True
        converter.convert = AsyncMock(return_value=True)
        return converter

    async def test_writes_dated_digests(
        self,
        tmp_path: Path,
        hn_client: MagicMock,
        coordinator: MagicMock,
        converter: MagicMock,
    ) -> None:
        output_dir = tmp_path / "hn_daily"
        orchestrator = DigestOrchestrator(
            hn_client=hn_client,
            coordinator=coordinator,
            output_dir=output_dir,
            story_count=3,
            converter=converter,
        )

        result = await orchestrator.run(day=DAY)

        hn_client.get_top_stories.assert_awaited_once_with(3)
        assert result.html_path == output_dir / "2025-03-05.html"
        assert result.text_path == output_dir / "2025-03-05.txt"
        assert result.pdf_path == output_dir / "2025-03-05.pdf"
        assert "Hello digest readers" in result.html_path.read_text(encoding="utf-8")
        assert "Hello digest readers" in result.text_path.read_text(encoding="utf-8")
        converter.convert.assert_awaited_once_with(result.html_path, result.pdf_path)

    async def test_counts_statuses(
        self, tmp_path: Path, hn_client: MagicMock, coordinator: MagicMock
    ) -> None:
        orchestrator = DigestOrchestrator(
            hn_client=hn_client, coordinator=coordinator, output_dir=tmp_path
        )

        result = await orchestrator.run(day=DAY)

        assert result.stories_found == 3
        assert result.articles_extracted == 1
        assert result.articles_paywalled == 1
        assert result.articles_failed == 1
        assert result.pdf_path is None

    async def test_failed_conversion_leaves_no_pdf(
        self,
        tmp_path: Path,
        hn_client: MagicMock,
        coordinator: MagicMock,
        converter: MagicMock,
    ) -> None:
        converter.convert = AsyncMock(return_value=False)
        orchestrator = DigestOrchestrator(
            hn_client=hn_client, coordinator=coordinator, output_dir=tmp_path, converter=converter
        )

        result = await orchestrator.run(day=DAY)

        assert result.pdf_path is None
        assert result.html_path.exists()

    async def test_dry_run_uses_temp_dir_and_skips_pdf(
        self,
        tmp_path: Path,
        hn_client: MagicMock,
        coordinator: MagicMock,
        converter: MagicMock,
    ) -> None:
        output_dir = tmp_path / "hn_daily"
        orchestrator = DigestOrchestrator(
            hn_client=hn_client, coordinator=coordinator, output_dir=output_dir, converter=converter
        )

        result = await orchestrator.run(dry_run=True, day=DAY)

        assert result.dry_run is True
        assert result.html_path.parent != output_dir
        assert result.html_path.exists()
        assert not output_dir.exists()
        converter.convert.assert_not_awaited()

    async def test_listing_error_propagates(
        self, tmp_path: Path, coordinator: MagicMock
    ) -> None:
        hn_client = MagicMock()
        hn_client.get_top_stories = AsyncMock(side_effect=ListingError("no stories available"))
        orchestrator = DigestOrchestrator(
            hn_client=hn_client, coordinator=coordinator, output_dir=tmp_path
        )

        with pytest.raises(ListingError):
            await orchestrator.run(day=DAY)
        coordinator.run.assert_not_awaited()
