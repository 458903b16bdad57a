"""Command line entry point for hn-daily."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from pydantic import ValidationError

from hndaily.clients.hackernews import ListingError
from hndaily.config import Settings
from hndaily.services.orchestrator import run_digest
from hndaily.utils.logging import get_logger, setup_logging

app = typer.Typer(help="hn-daily: daily reading digest of the Hacker News front page")


@app.callback()
def main() -> None:
    """hn-daily command group."""


@app.command()
def run(
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Digest directory"),
    stories: Optional[int] = typer.Option(None, "--stories", "-n", help="Number of top stories"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-c", help="Parallel fetches"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Write to a temporary directory"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level"),
) -> None:
    """Fetch today's top stories and write the HTML, text and PDF digests."""
    overrides = {
        "output_dir": output_dir,
        "story_count": stories,
        "concurrency_limit": concurrency,
        "log_level": log_level,
    }
    try:
        settings = Settings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        typer.echo(f"Invalid configuration:\n{e}", err=True)
        raise typer.Exit(code=2) from e

    setup_logging(settings.log_level)
    logger = get_logger(__name__)

    try:
        result = asyncio.run(run_digest(settings, dry_run=dry_run))
    except ListingError as e:
        logger.error("Story listing failed", reason=e.reason)
        typer.echo(f"Could not list stories: {e.reason}", err=True)
        raise typer.Exit(code=1) from e

    typer.echo(f"Files generated in {result.html_path.parent}")
    typer.echo(f"- {result.html_path.name} - HTML digest")
    typer.echo(f"- {result.text_path.name} - Plain text digest")
    if result.pdf_path is not None:
        typer.echo(f"- {result.pdf_path.name} - PDF digest")
    typer.echo(
        f"{result.articles_extracted} extracted, {result.articles_paywalled} paywalled, "
        f"{result.articles_failed} unavailable of {result.stories_found} stories"
    )


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on"),
) -> None:
    """Serve the digest archive and run endpoint over HTTP."""
    uvicorn.run("hndaily.main:app", host=host, port=port, log_config=None)


if __name__ == "__main__":
    app()
