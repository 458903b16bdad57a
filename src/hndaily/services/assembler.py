"""Per-story pipeline: fetch, classify, extract."""

import asyncio
from typing import Any

from hndaily.clients.fetcher import ArticleFetcher
from hndaily.models import (
    ArticleResult,
    Extracted,
    ExtractError,
    Failed,
    FetchOutcome,
    Paywalled,
    Restricted,
    StoryRef,
    Unknown,
)
from hndaily.services.extractor import ContentExtractor
from hndaily.services.paywall import PaywallClassifier
from hndaily.utils.logging import get_logger

logger = get_logger(__name__)

UNSUPPORTED_CONTENT = "unsupported content type"


class ArticleAssembler:
    """Turns one StoryRef into exactly one ArticleResult.

    Every failure is captured in the result; ``assemble`` never raises
    except for cancellation.
    """

    def __init__(
        self,
        fetcher: ArticleFetcher,
        classifier: PaywallClassifier,
        extractor: ContentExtractor,
        timeout: float | None = None,
        retry_backoff: float = 0.5,
    ) -> None:
        self._fetcher = fetcher
        self._classifier = classifier
        self._extractor = extractor
        self._timeout = timeout
        self._retry_backoff = retry_backoff

    async def assemble(self, story: StoryRef) -> ArticleResult:
        """Run the pipeline for a story.

        Args:
            story: The story to process.

        Returns:
            An ArticleResult with status Extracted, Paywalled or Failed.
        """
        log = logger.bind(rank=story.rank, url=story.url)
        try:
            return self._finish(story, await self._process(story), log)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.error("Story pipeline crashed", error=str(e), exc_info=True)
            return ArticleResult(story=story, status=Failed(f"unexpected error: {e}"))

    async def _process(self, story: StoryRef) -> Extracted | Paywalled | Failed:
        outcome = await self._fetch_with_retry(story)
        if outcome.error is not None:
            return Failed(outcome.error.reason)

        verdict = self._classifier.classify(outcome)
        if isinstance(verdict, Restricted):
            return Paywalled(verdict.reason)
        if isinstance(verdict, Unknown):
            return Failed(UNSUPPORTED_CONTENT)

        assert outcome.body is not None
        try:
            article = self._extractor.extract(
                outcome.body,
                base_url=outcome.final_url,
                fallback_title=story.title,
                encoding=outcome.encoding,
            )
        except ExtractError as e:
            return Failed(e.reason)
        return Extracted(article)

    async def _fetch_with_retry(self, story: StoryRef) -> FetchOutcome:
        """Fetch once, retrying a single time on timeouts and network errors."""
        outcome = await self._fetcher.fetch(story.url, timeout=self._timeout)
        if outcome.error is None or not outcome.error.retryable:
            return outcome

        logger.info(
            "Retrying fetch",
            rank=story.rank,
            url=story.url,
            reason=outcome.error.reason,
            backoff=self._retry_backoff,
        )
        await asyncio.sleep(self._retry_backoff)
        return await self._fetcher.fetch(story.url, timeout=self._timeout)

    def _finish(
        self, story: StoryRef, status: Extracted | Paywalled | Failed, log: Any
    ) -> ArticleResult:
        if isinstance(status, Extracted):
            log.info(
                "Article extracted",
                title=status.article.title,
                word_count=status.article.word_count,
                blocks=len(status.article.blocks),
            )
        elif isinstance(status, Paywalled):
            log.info("Article paywalled", reason=status.reason)
        else:
            log.warning("Article failed", reason=status.reason)
        return ArticleResult(story=story, status=status)
