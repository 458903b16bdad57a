"""Optional HTML to PDF conversion through wkhtmltopdf."""

import asyncio
import shutil
from pathlib import Path

from hndaily.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BINARY = "wkhtmltopdf"


class PdfConverter:
    """Converts the HTML digest to PDF when the converter binary is installed.

    Availability is detected once, at construction.
    """

    def __init__(self, binary: str = DEFAULT_BINARY, timeout: float = 120.0) -> None:
        self._binary = shutil.which(binary)
        self._timeout = timeout
        if self._binary is None:
            logger.info("PDF converter not found, PDF output disabled", binary=binary)

    @property
    def available(self) -> bool:
        return self._binary is not None

    async def convert(self, html_path: Path, pdf_path: Path) -> bool:
        """Convert ``html_path`` to ``pdf_path``.

        Returns:
            True if the PDF was written, False if the converter is missing
            or failed.
        """
        if self._binary is None:
            return False

        logger.info("Converting digest to PDF", html=str(html_path), pdf=str(pdf_path))
        try:
            process = await asyncio.create_subprocess_exec(
                self._binary,
                "--quiet",
                str(html_path),
                str(pdf_path),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error("Could not start PDF converter", binary=self._binary, error=str(e))
            return False

        try:
            async with asyncio.timeout(self._timeout):
                _, stderr = await process.communicate()
        except TimeoutError:
            process.kill()
            await process.wait()
            logger.error("PDF conversion timed out", timeout=self._timeout)
            return False

        if process.returncode != 0:
            logger.error(
                "PDF conversion failed",
                returncode=process.returncode,
                stderr=stderr.decode(errors="replace")[:500],
            )
            return False
        return pdf_path.exists()
