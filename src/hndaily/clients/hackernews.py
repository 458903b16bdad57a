"""Hacker News Firebase API client for hn-daily."""

import asyncio

import httpx

from hndaily.models import HN_ITEM_URL, StoryRef
from hndaily.utils.logging import get_logger

logger = get_logger(__name__)

HN_API_BASE = "https://hacker-news.firebaseio.com/v0"


class ListingError(Exception):
    """Raised when the front page listing cannot be retrieved."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class HackerNewsClient:
    """Client for the Hacker News top stories listing."""

    def __init__(self, timeout: float = 10.0) -> None:
        self._client = httpx.AsyncClient(
            base_url=HN_API_BASE,
            headers={"User-Agent": "hn-daily/0.1"},
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "HackerNewsClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def get_top_story_ids(self) -> list[int]:
        """Get the ranked ids of the current top stories.

        Raises:
            ListingError: If the listing request fails or is malformed.
        """
        try:
            response = await self._client.get("/topstories.json")
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ListingError(f"top stories returned HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise ListingError(f"top stories request failed: {e}") from e
        except ValueError as e:
            raise ListingError("top stories response is not JSON") from e

        if not isinstance(data, list):
            raise ListingError("top stories response is not a list")
        return [i for i in data if isinstance(i, int)]

    async def get_item(self, item_id: int) -> dict | None:
        """Get a single item, or None when it is deleted or unavailable."""
        try:
            response = await self._client.get(f"/item/{item_id}.json")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Failed to fetch item", item_id=item_id, error=str(e))
            return None
        if not isinstance(data, dict) or data.get("deleted") or data.get("dead"):
            return None
        return data

    async def get_top_stories(self, limit: int = 30) -> list[StoryRef]:
        """Get the top stories as ranked StoryRefs.

        Args:
            limit: Maximum number of stories to return.

        Returns:
            Up to ``limit`` stories ranked 1..k in front page order.

        Raises:
            ListingError: If the listing fails or yields no usable stories.
        """
        logger.info("Fetching top stories", limit=limit)
        ids = (await self.get_top_story_ids())[:limit]
        items = await asyncio.gather(*[self.get_item(i) for i in ids])

        stories: list[StoryRef] = []
        for item in items:
            if item is None or not item.get("title"):
                continue
            stories.append(story_from_item(item, rank=len(stories) + 1))

        if not stories:
            raise ListingError("no stories available")
        logger.info("Found stories", count=len(stories))
        return stories


def story_from_item(item: dict, rank: int) -> StoryRef:
    """Build a StoryRef from a Firebase item.

    Text posts such as Ask HN have no URL; their comments page stands in.
    """
    comments_url = HN_ITEM_URL.format(id=item["id"])
    return StoryRef(
        rank=rank,
        title=item["title"],
        url=item.get("url") or comments_url,
        points=item.get("score") or 0,
        comments_url=comments_url,
        by=item.get("by") or "unknown",
        comment_count=item.get("descendants") or 0,
    )
