"""Main workflow orchestrator for hn-daily."""

import tempfile
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from hndaily.clients.fetcher import ArticleFetcher
from hndaily.clients.hackernews import HackerNewsClient
from hndaily.config import Settings
from hndaily.models import ArticleResult, Extracted, Failed, Paywalled
from hndaily.services.assembler import ArticleAssembler
from hndaily.services.converter import PdfConverter
from hndaily.services.coordinator import ConcurrencyCoordinator
from hndaily.services.digest import DigestRenderer
from hndaily.services.extractor import ContentExtractor
from hndaily.services.paywall import PaywallClassifier
from hndaily.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class DigestRunResult:
    """Result of one digest run."""

    stories_found: int
    articles_extracted: int
    articles_paywalled: int
    articles_failed: int
    html_path: Path
    text_path: Path
    pdf_path: Path | None
    dry_run: bool

    @classmethod
    def from_results(
        cls,
        results: list[ArticleResult],
        html_path: Path,
        text_path: Path,
        pdf_path: Path | None,
        dry_run: bool,
    ) -> "DigestRunResult":
        return cls(
            stories_found=len(results),
            articles_extracted=sum(isinstance(r.status, Extracted) for r in results),
            articles_paywalled=sum(isinstance(r.status, Paywalled) for r in results),
            articles_failed=sum(isinstance(r.status, Failed) for r in results),
            html_path=html_path,
            text_path=text_path,
            pdf_path=pdf_path,
            dry_run=dry_run,
        )


class DigestOrchestrator:
    """Orchestrates the complete daily digest workflow."""

    def __init__(
        self,
        hn_client: HackerNewsClient,
        coordinator: ConcurrencyCoordinator,
        output_dir: Path,
        story_count: int = 30,
        renderer: DigestRenderer | None = None,
        converter: PdfConverter | None = None,
    ) -> None:
        self._hn = hn_client
        self._coordinator = coordinator
        self._output_dir = output_dir
        self._story_count = story_count
        self._renderer = renderer or DigestRenderer()
        self._converter = converter

    async def run(self, dry_run: bool = False, day: date | None = None) -> DigestRunResult:
        """Run the complete workflow.

        Args:
            dry_run: If True, write into a temporary directory and skip PDF
                conversion.
            day: Digest date, today by default.

        Returns:
            DigestRunResult with counts and output paths.

        Raises:
            ListingError: If no stories could be listed.
        """
        day = day or date.today()
        logger.info(
            "Starting digest run",
            dry_run=dry_run,
            story_count=self._story_count,
            date=day.isoformat(),
        )

        stories = await self._hn.get_top_stories(self._story_count)
        results = await self._coordinator.run(stories)

        output_dir = self._prepare_output_dir(dry_run)
        stem = day.isoformat()
        html_path = output_dir / f"{stem}.html"
        text_path = output_dir / f"{stem}.txt"

        html_doc = self._renderer.render_html(results, day)
        html_path.write_text(html_doc, encoding="utf-8")
        text_path.write_text(self._renderer.render_text(results, day), encoding="utf-8")
        logger.info("Digest written", html=str(html_path), text=str(text_path))

        pdf_path = None
        if not dry_run and self._converter is not None and self._converter.available:
            candidate = output_dir / f"{stem}.pdf"
            if await self._converter.convert(html_path, candidate):
                pdf_path = candidate

        result = DigestRunResult.from_results(results, html_path, text_path, pdf_path, dry_run)
        logger.info(
            "Digest run complete",
            stories=result.stories_found,
            extracted=result.articles_extracted,
            paywalled=result.articles_paywalled,
            failed=result.articles_failed,
        )
        return result

    def _prepare_output_dir(self, dry_run: bool) -> Path:
        if dry_run:
            path = Path(tempfile.mkdtemp(prefix="hn_daily_"))
            logger.info("Dry run - writing to temporary directory", path=str(path))
            return path
        self._output_dir.mkdir(parents=True, exist_ok=True)
        return self._output_dir


async def run_digest(settings: Settings, dry_run: bool = False) -> DigestRunResult:
    """Wire the pipeline from settings and run one digest.

    Raises:
        ListingError: If no stories could be listed.
    """
    async with HackerNewsClient(timeout=settings.per_request_timeout) as hn_client:
        async with ArticleFetcher(
            timeout=settings.per_request_timeout,
            max_redirects=settings.max_redirects,
            user_agent=settings.user_agent,
        ) as fetcher:
            assembler = ArticleAssembler(
                fetcher=fetcher,
                classifier=PaywallClassifier.from_settings(settings),
                extractor=ContentExtractor(min_score=settings.min_content_score_threshold),
                timeout=settings.per_request_timeout,
                retry_backoff=settings.retry_backoff,
            )
            coordinator = ConcurrencyCoordinator(
                assembler,
                concurrency_limit=settings.concurrency_limit,
                guard_timeout=settings.overall_guard_timeout,
            )
            orchestrator = DigestOrchestrator(
                hn_client=hn_client,
                coordinator=coordinator,
                output_dir=settings.output_dir,
                story_count=settings.story_count,
                converter=PdfConverter() if settings.pdf_enabled else None,
            )
            return await orchestrator.run(dry_run=dry_run or settings.dry_run)
