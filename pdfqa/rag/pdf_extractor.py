"""PDF text extraction.

Wraps pypdf behind a one-method interface so the indexing pipeline can be
tested with any object exposing ``extract_text(data) -> str``.
"""
import io
from typing import Protocol

import structlog
from pypdf import PdfReader

from pdfqa.errors import ExtractionError

logger = structlog.get_logger()


class TextExtractor(Protocol):
    def extract_text(self, data: bytes) -> str:
        ...


class PdfTextExtractor:
    """Extract the text layer of every page, in page order."""

    def __init__(self, page_separator: str = "\n\n"):
        self.page_separator = page_separator

    def extract_text(self, data: bytes) -> str:
        """Extract text from PDF bytes.

        Args:
            data: Raw PDF file content

        Returns:
            Page texts joined by the page separator; "" when the PDF has no
            text layer

        Raises:
            ExtractionError: If the bytes are not a readable PDF
        """
        try:
            reader = PdfReader(io.BytesIO(data))
            parts = []
            for page in reader.pages:
                page_text = page.extract_text()
                if page_text and page_text.strip():
                    parts.append(page_text)
            page_count = len(reader.pages)
        except Exception as e:
            logger.error("pdf_extraction_failed", error=str(e), error_type=type(e).__name__)
            raise ExtractionError(f"Invalid or corrupted PDF: {e}") from e

        text = self.page_separator.join(parts)

        logger.info(
            "pdf_text_extracted",
            page_count=page_count,
            pages_with_text=len(parts),
            text_length=len(text),
        )

        return text
