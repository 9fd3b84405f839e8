"""
Step 1: PDF page split + numbering.
Uses PyMuPDF (fitz) to split a PDF into pages and extract embedded text.
"""
from __future__ import annotations

import logging
from typing import Iterable

import fitz  # PyMuPDF

from packages.shared.models import PageText, Warning

logger = logging.getLogger(__name__)


class OCRError(Exception):
    """Raised when a PDF cannot be opened or read at all."""


def split_pages(
    pdf_path: str,
    document_id: str | None = None,
    max_pages: int | None = None,
) -> tuple[list[PageText], list[Warning]]:
    """
    Split a PDF into PageText objects with embedded text if available.

    Args:
        pdf_path: Path to the PDF file on disk.
        document_id: ID of the document, carried on warnings.
        max_pages: Maximum pages to process; None = no limit.

    Returns:
        (pages, warnings)

    Raises:
        OCRError: the file is not a readable PDF.
    """
    warnings: list[Warning] = []
    pages: list[PageText] = []

    try:
        doc = fitz.open(pdf_path)
    except Exception as exc:
        raise OCRError(f"Cannot open PDF: {exc}") from exc

    try:
        total = doc.page_count
        limit = total
        if max_pages is not None and total > max_pages:
            limit = max_pages
            warnings.append(Warning(
                code="MAX_PAGES_EXCEEDED",
                message=f"PDF has {total} pages but max_pages={max_pages}; processing first {max_pages}",
                document_id=document_id,
            ))

        for i in range(limit):
            page_number = i + 1
            try:
                text = doc[i].get_text("text") or ""
            except Exception as exc:
                # Unparseable font metadata; empty text sends the page to OCR.
                text = ""
                warnings.append(Warning(
                    code="TEXT_EXTRACT_ERROR",
                    message=f"Page {page_number}: embedded text extraction failed ({exc})",
                    page=page_number,
                    document_id=document_id,
                ))
            pages.append(PageText(page_number=page_number, text=text))
    finally:
        doc.close()

    logger.info(f"Split {len(pages)} pages from {pdf_path}")
    return pages, warnings


def dedupe_page_numbers(pages: Iterable[PageText]) -> list[PageText]:
    """Keep the first occurrence of each page number, in input order."""
    seen: set[int] = set()
    unique: list[PageText] = []
    for page in pages:
        if page.page_number in seen:
            logger.warning(f"Dropping repeated page number {page.page_number}")
            continue
        seen.add(page.page_number)
        unique.append(page)
    return unique
