"""PDF text extraction."""

import io
import logging
from typing import Optional

import pdfplumber
import PyPDF2

from litreview.errors import ExtractionError

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n"
# Pages read for the relevance check
RELEVANCE_PAGES = 3


def _pages_with_pdfplumber(content: bytes, max_pages: Optional[int]) -> list[str]:
    with pdfplumber.open(io.BytesIO(content)) as pdf:
        pages = pdf.pages if max_pages is None else pdf.pages[:max_pages]
        if not pdf.pages:
            raise ExtractionError("PDF has no pages")
        return [page.extract_text() or "" for page in pages]


def _pages_with_pypdf2(content: bytes, max_pages: Optional[int]) -> list[str]:
    reader = PyPDF2.PdfReader(io.BytesIO(content))
    if not reader.pages:
        raise ExtractionError("PDF has no pages")
    count = len(reader.pages) if max_pages is None else min(max_pages, len(reader.pages))
    return [reader.pages[i].extract_text() or "" for i in range(count)]


def extract_text(content: bytes, max_pages: Optional[int] = None) -> str:
    """Extract page text in page order.

    Args:
        content: Raw PDF bytes
        max_pages: Only read the first N pages (all pages when None)

    Returns:
        Page texts joined by ``PAGE_SEPARATOR``.  A PDF without a text
        layer (e.g. a scan) yields an empty string.

    Raises:
        ExtractionError: If the bytes are not a readable PDF or it has no pages
    """
    if not content:
        raise ExtractionError("Empty file")

    try:
        pages = _pages_with_pdfplumber(content, max_pages)
    except ExtractionError:
        raise
    except Exception as e:
        logger.warning("pdfplumber failed, trying PyPDF2: %s", e)
        try:
            pages = _pages_with_pypdf2(content, max_pages)
        except ExtractionError:
            raise
        except Exception as e2:
            logger.error("Both PDF extraction methods failed: %s", e2)
            raise ExtractionError(f"Not a readable PDF: {e2}") from e2

    text = PAGE_SEPARATOR.join(p.strip() for p in pages)
    return text.strip()


def extract_excerpt(content: bytes) -> str:
    """Text of the first ``RELEVANCE_PAGES`` pages."""
    return extract_text(content, max_pages=RELEVANCE_PAGES)
