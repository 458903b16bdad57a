"""Bounded concurrent fan-out over story pipelines."""

import asyncio
from collections.abc import Sequence
from typing import Protocol

from hndaily.models import ArticleResult, Failed, StoryRef
from hndaily.utils.logging import get_logger

logger = get_logger(__name__)

GUARD_TIMEOUT_REASON = "timeout"


class Assembler(Protocol):
    async def assemble(self, story: StoryRef) -> ArticleResult: ...


class ConcurrencyCoordinator:
    """Runs story pipelines in parallel and returns results in input order."""

    def __init__(
        self,
        assembler: Assembler,
        concurrency_limit: int = 8,
        guard_timeout: float | None = 120.0,
    ) -> None:
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be at least 1, got {concurrency_limit}")
        self._assembler = assembler
        self._concurrency_limit = concurrency_limit
        self._guard_timeout = guard_timeout

    async def run(
        self, stories: Sequence[StoryRef], concurrency_limit: int | None = None
    ) -> list[ArticleResult]:
        """Process all stories with at most ``concurrency_limit`` in flight.

        Args:
            stories: Stories in rank order.
            concurrency_limit: Overrides the coordinator's limit for this run.

        Returns:
            One ArticleResult per story, in the same order as ``stories``.
            Stories still running when the guard timeout expires are
            cancelled and reported as Failed("timeout").

        Raises:
            ValueError: If the concurrency limit is below 1.
        """
        limit = self._concurrency_limit if concurrency_limit is None else concurrency_limit
        if limit < 1:
            raise ValueError(f"concurrency_limit must be at least 1, got {limit}")
        if not stories:
            return []

        logger.info(
            "Processing stories",
            count=len(stories),
            concurrency_limit=limit,
            guard_timeout=self._guard_timeout,
        )

        semaphore = asyncio.Semaphore(limit)
        slots: list[ArticleResult | None] = [None] * len(stories)

        async def run_one(index: int, story: StoryRef) -> None:
            async with semaphore:
                slots[index] = await self._assembler.assemble(story)

        tasks = [
            asyncio.create_task(run_one(i, story), name=f"story-{story.rank}")
            for i, story in enumerate(stories)
        ]
        try:
            _, pending = await asyncio.wait(tasks, timeout=self._guard_timeout)
            if pending:
                logger.warning(
                    "Guard timeout reached, cancelling stragglers", pending=len(pending)
                )
        finally:
            # Also reached when run itself is cancelled
            unfinished = [task for task in tasks if not task.done()]
            for task in unfinished:
                task.cancel()
            if unfinished:
                await asyncio.gather(*unfinished, return_exceptions=True)

        results: list[ArticleResult] = []
        for index, (story, task) in enumerate(zip(stories, tasks)):
            result = slots[index]
            if result is None:
                result = ArticleResult(story=story, status=self._failure_for(task))
            results.append(result)

        logger.info(
            "Stories processed",
            count=len(results),
            available=sum(r.is_available for r in results),
        )
        return results

    def _failure_for(self, task: asyncio.Task) -> Failed:
        """Status for a story whose task ended without filling its slot."""
        if task.cancelled():
            return Failed(GUARD_TIMEOUT_REASON)
        error = task.exception()
        if error is None:
            return Failed(GUARD_TIMEOUT_REASON)
        logger.error("Story task raised", task=task.get_name(), error=str(error))
        return Failed(f"unexpected error: {error}")
