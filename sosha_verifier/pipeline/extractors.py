"""
Format extractors: turn provider payloads into analyzable text.
"""
from __future__ import annotations

import io
import logging
import re

from bs4 import BeautifulSoup, Tag
from pypdf import PdfReader

from sosha_verifier.errors import ExtractionError

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def extract_pdf_text(data: bytes) -> str:
    """Return the text of every page in page order, whitespace-collapsed.

    Raises ``ExtractionError`` for corrupt documents, documents without pages
    and page decode failures.
    """
    if not data:
        raise ExtractionError("Receipt PDF is empty")

    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except Exception as exc:
        logger.warning("PDF extraction failed: %s", exc)
        raise ExtractionError("Could not read receipt PDF") from exc

    if not pages:
        raise ExtractionError("Receipt PDF has no pages")

    return collapse_whitespace("\n".join(pages))


def parse_markup(markup: str) -> BeautifulSoup:
    """Parsed HTML document with script and style blocks removed."""
    soup = BeautifulSoup(markup, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()
    return soup


def cell_text(cell: Tag) -> str:
    return collapse_whitespace(cell.get_text(" "))


def document_text(document: BeautifulSoup) -> str:
    """Plain-text view of a parsed page, used by fallback rules."""
    return collapse_whitespace(document.get_text(" "))
