"""FastAPI application serving and generating hn-daily digests."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from hndaily import __version__
from hndaily.api.routes import router
from hndaily.config import get_settings
from hndaily.utils.logging import get_logger, setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Configure logging and the single-run lock for the app's lifetime."""
    settings = get_settings()
    setup_logging(settings.log_level)
    logger = get_logger(__name__)
    app.state.run_lock = asyncio.Lock()
    logger.info("hn-daily API starting", version=__version__, output_dir=str(settings.output_dir))
    yield
    logger.info("hn-daily API shutting down")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    application = FastAPI(
        title="hn-daily",
        description="Daily reading digest of the Hacker News front page",
        version=__version__,
        lifespan=lifespan,
    )
    application.include_router(router)

    @application.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint with basic info."""
        return {
            "name": "hn-daily",
            "version": __version__,
            "digests": "/api/v1/digests",
            "docs": "/docs",
        }

    return application


app = create_app()
