"""API routes for hn-daily."""

from datetime import date
from typing import Literal

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import FileResponse

from hndaily import __version__
from hndaily.api.models import (
    ArchivedDigestModel,
    DigestListResponse,
    DigestResponse,
    HealthResponse,
)
from hndaily.clients.hackernews import ListingError
from hndaily.config import get_settings
from hndaily.services.archive import DIGEST_FORMATS, DigestArchive
from hndaily.services.orchestrator import DigestRunResult, run_digest
from hndaily.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["api"])

DigestFormat = Literal["html", "txt", "pdf"]


def _determine_status(result: DigestRunResult) -> str:
    """Determine the response status based on processing results."""
    if result.articles_extracted == 0:
        return "failed"
    if result.articles_paywalled or result.articles_failed:
        return "partial_success"
    return "success"


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@router.get("/digests", response_model=DigestListResponse)
async def list_digests() -> DigestListResponse:
    """List the digests in the output directory, newest first."""
    output_dir = get_settings().output_dir
    digests = DigestArchive(output_dir).list_digests()
    return DigestListResponse(
        output_dir=str(output_dir),
        digests=[ArchivedDigestModel(day=d.day, formats=list(d.formats)) for d in digests],
    )


@router.get("/digests/{day}")
async def get_digest(
    day: date,
    fmt: DigestFormat = Query(default="html", alias="format", description="Digest format"),
) -> FileResponse:
    """Serve one archived digest file."""
    path = DigestArchive(get_settings().output_dir).path_for(day, fmt)
    if path is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No {fmt} digest for {day.isoformat()}",
        )
    return FileResponse(path, media_type=DIGEST_FORMATS[fmt])


@router.post("/digests", response_model=DigestResponse)
async def create_digest(
    request: Request,
    dry_run: bool = Query(default=False, description="Write to a temporary directory"),
) -> DigestResponse:
    """Generate today's digest.

    Lists the top stories, extracts every linked article and writes the
    HTML, text and (when available) PDF digests. Only one run may be in
    progress at a time.
    """
    run_lock = request.app.state.run_lock
    if run_lock.locked():
        logger.warning("Digest run rejected, another run is in progress")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A digest run is already in progress",
        )

    logger.info("Digest endpoint called", dry_run=dry_run)
    settings = get_settings()

    async with run_lock:
        try:
            result = await run_digest(settings, dry_run=dry_run)
        except ListingError as e:
            logger.error("Story listing failed", reason=e.reason)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Story listing failed: {e.reason}",
            ) from e

    return DigestResponse(
        status=_determine_status(result),
        stories_found=result.stories_found,
        articles_extracted=result.articles_extracted,
        articles_paywalled=result.articles_paywalled,
        articles_failed=result.articles_failed,
        html_path=str(result.html_path),
        text_path=str(result.text_path),
        pdf_path=str(result.pdf_path) if result.pdf_path else None,
        dry_run=result.dry_run,
    )
