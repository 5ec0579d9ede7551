"""Content checks run on a guideline before and after registration.

Gemini reads at most a bounded number of PDF pages per document and degrades
on very large files; documents past those limits are still registered but
flagged as partial so agents know answers may miss later sections.
"""

import asyncio
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

import pdfplumber

from guideline_rag.core.config import settings
from guideline_rag.core.exceptions import RegistrationError
from guideline_rag.utils.file_types import PDF_MIME_TYPE
from guideline_rag.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class ContentReport:
    """What was learned about a document's bytes.

    Attributes:
        size_bytes: Length of the content
        page_count: Number of PDF pages, None for formats without pages
    """

    size_bytes: int
    page_count: Optional[int] = None


class ContentInspector:
    """Counts pages and decides whether a document is likely to be truncated."""

    def __init__(
        self,
        partial_size_threshold_bytes: Optional[int] = None,
        partial_page_threshold: Optional[int] = None,
    ):
        self.partial_size_threshold_bytes = (
            partial_size_threshold_bytes
            if partial_size_threshold_bytes is not None
            else settings.llm.partial_size_threshold_bytes
        )
        self.partial_page_threshold = (
            partial_page_threshold
            if partial_page_threshold is not None
            else settings.llm.partial_page_threshold
        )

    async def inspect(self, content: bytes, mime_type: str) -> ContentReport:
        """Build a content report.

        Raises:
            RegistrationError: If a PDF cannot be opened
        """
        page_count = None
        if mime_type == PDF_MIME_TYPE:
            page_count = await asyncio.to_thread(self._count_pdf_pages, content)

        report = ContentReport(size_bytes=len(content), page_count=page_count)
        LOGGER.info(
            f"Inspected document: {report.size_bytes} bytes, {report.page_count} pages",
            extra={"size_bytes": report.size_bytes, "page_count": report.page_count},
        )
        return report

    @staticmethod
    def _count_pdf_pages(content: bytes) -> int:
        try:
            with pdfplumber.open(BytesIO(content)) as pdf:
                return len(pdf.pages)
        except Exception as e:
            raise RegistrationError(f"Could not read PDF: {e}", original_error=e)

    def truncation_reason(
        self, size_bytes: Optional[int], page_count: Optional[int]
    ) -> Optional[str]:
        """Explain why a document will probably be read only in part, or None."""
        if page_count is not None and page_count > self.partial_page_threshold:
            return (
                f"Document has {page_count} pages; only the first "
                f"{self.partial_page_threshold} pages are read by the model"
            )
        if size_bytes is not None and size_bytes > self.partial_size_threshold_bytes:
            return (
                f"Document is {size_bytes} bytes, above the "
                f"{self.partial_size_threshold_bytes} byte limit for full reading; "
                f"content may be truncated"
            )
        return None
