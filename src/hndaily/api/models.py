"""Pydantic models for API requests and responses."""

from datetime import date

from pydantic import BaseModel, Field


class DigestResponse(BaseModel):
    """Response model for a digest run."""

    status: str = Field(description="Status of the operation")
    stories_found: int = Field(description="Number of stories listed")
    articles_extracted: int = Field(description="Number of articles extracted")
    articles_paywalled: int = Field(description="Number of stories behind a paywall")
    articles_failed: int = Field(description="Number of stories that could not be retrieved")
    html_path: str = Field(description="Path of the HTML digest")
    text_path: str = Field(description="Path of the plain-text digest")
    pdf_path: str | None = Field(default=None, description="Path of the PDF digest, if any")
    dry_run: bool = Field(description="Whether this was a dry run")


class ArchivedDigestModel(BaseModel):
    """One day in the digest archive."""

    day: date = Field(description="Digest date")
    formats: list[str] = Field(description="Formats written for this date")


class DigestListResponse(BaseModel):
    """Response model for the digest archive listing."""

    output_dir: str = Field(description="Directory the digests are read from")
    digests: list[ArchivedDigestModel] = Field(description="Digests, newest first")


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(description="Health status")
    version: str = Field(description="Application version")
