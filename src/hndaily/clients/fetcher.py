"""Page fetcher for hn-daily."""

import asyncio
import time

import httpx

from hndaily.config import DEFAULT_USER_AGENT
from hndaily.models import FetchError, FetchErrorKind, FetchOutcome
from hndaily.utils.logging import get_logger

logger = get_logger(__name__)

# Statuses handed to the paywall classifier instead of failing the fetch
PASS_THROUGH_STATUSES = frozenset({401, 402, 403, 451})


class ArticleFetcher:
    """Retrieves story pages with a hard timeout and bounded redirects."""

    def __init__(
        self,
        timeout: float = 10.0,
        max_redirects: int = 5,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._timeout = timeout
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            max_redirects=max_redirects,
            headers={
                "User-Agent": user_agent,
                "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.8",
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "ArticleFetcher":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def fetch(self, url: str, timeout: float | None = None) -> FetchOutcome:
        """Fetch a URL.

        Args:
            url: The URL to fetch.
            timeout: Wall-clock limit in seconds for connect plus read.
                Defaults to the fetcher's timeout.

        Returns:
            A FetchOutcome carrying either the body or the FetchError.
        """
        limit = self._timeout if timeout is None else timeout
        started = time.monotonic()
        logger.debug("Fetching page", url=url)

        try:
            response = await self._get(url, limit)
        except FetchError as e:
            elapsed_ms = (time.monotonic() - started) * 1000
            logger.info("Fetch failed", url=url, reason=e.reason, elapsed_ms=round(elapsed_ms))
            return FetchOutcome(
                url=url,
                final_url=url,
                elapsed_ms=elapsed_ms,
                http_status=e.detail if e.kind is FetchErrorKind.HTTP_STATUS else None,
                error=e,
            )

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.info(
            "Page fetched",
            url=url,
            final_url=str(response.url),
            status=response.status_code,
            size=len(response.content),
            elapsed_ms=round(elapsed_ms),
        )
        return FetchOutcome(
            url=url,
            final_url=str(response.url),
            elapsed_ms=elapsed_ms,
            http_status=response.status_code,
            body=response.content,
            content_type=response.headers.get("content-type"),
            encoding=response.charset_encoding,
        )

    async def _get(self, url: str, limit: float) -> httpx.Response:
        """Issue the request and map failures to FetchError.

        Raises:
            FetchError: On timeout, redirect loops, network errors and
                non-2xx statuses outside PASS_THROUGH_STATUSES.
        """
        try:
            async with asyncio.timeout(limit):
                response = await self._client.get(url, timeout=limit)
        except TimeoutError as e:
            raise FetchError(FetchErrorKind.TIMEOUT) from e
        except httpx.TooManyRedirects as e:
            raise FetchError(FetchErrorKind.TOO_MANY_REDIRECTS) from e
        except httpx.TimeoutException as e:
            raise FetchError(FetchErrorKind.TIMEOUT) from e
        except httpx.RequestError as e:
            raise FetchError(FetchErrorKind.NETWORK, str(e) or type(e).__name__) from e
        except httpx.InvalidURL as e:
            raise FetchError(FetchErrorKind.NETWORK, f"invalid URL: {e}") from e

        if response.is_success or response.status_code in PASS_THROUGH_STATUSES:
            return response
        raise FetchError(FetchErrorKind.HTTP_STATUS, response.status_code)
