"""Read access to the digests written into the output directory."""

from dataclasses import dataclass
from datetime import date
from pathlib import Path

from hndaily.utils.logging import get_logger

logger = get_logger(__name__)

# File extension -> media type, in listing order
DIGEST_FORMATS = {
    "html": "text/html; charset=utf-8",
    "txt": "text/plain; charset=utf-8",
    "pdf": "application/pdf",
}


@dataclass(frozen=True)
class ArchivedDigest:
    """One digest day and the formats written for it."""

    day: date
    formats: tuple[str, ...]


class DigestArchive:
    """Digests stored as ``<YYYY-MM-DD>.<format>`` files in one directory."""

    def __init__(self, output_dir: Path) -> None:
        """Initialize the archive.

        Args:
            output_dir: Directory the orchestrator writes digests into.
                It may not exist yet.
        """
        self._output_dir = output_dir

    def list_digests(self) -> list[ArchivedDigest]:
        """Return every archived digest, newest first.

        Files whose stem is not an ISO date or whose extension is not a
        digest format are ignored.
        """
        if not self._output_dir.is_dir():
            return []

        found: dict[date, set[str]] = {}
        for path in self._output_dir.iterdir():
            fmt = path.suffix.lstrip(".")
            if fmt not in DIGEST_FORMATS or not path.is_file():
                continue
            try:
                day = date.fromisoformat(path.stem)
            except ValueError:
                continue
            # fromisoformat also accepts compact forms like 20250305
            if day.isoformat() != path.stem:
                continue
            found.setdefault(day, set()).add(fmt)

        digests = [
            ArchivedDigest(day=day, formats=tuple(f for f in DIGEST_FORMATS if f in formats))
            for day, formats in found.items()
        ]
        digests.sort(key=lambda d: d.day, reverse=True)
        logger.debug("Listed digests", output_dir=str(self._output_dir), count=len(digests))
        return digests

    def path_for(self, day: date, fmt: str) -> Path | None:
        """Path of the digest for ``day`` in ``fmt``, or None if it was not written.

        Raises:
            ValueError: If ``fmt`` is not a digest format.
        """
        if fmt not in DIGEST_FORMATS:
            raise ValueError(f"unknown digest format: {fmt}")
        path = self._output_dir / f"{day.isoformat()}.{fmt}"
        return path if path.is_file() else None
