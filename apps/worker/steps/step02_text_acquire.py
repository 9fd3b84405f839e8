"""
Step 2: Text acquisition (embedded text first, OCR fallback).
If embedded text is non-trivial (>= 50 chars, not mostly whitespace), keep it.
Else run Tesseract OCR once on the page image.
"""
from __future__ import annotations

import io
import logging
import os
import re
import time
from concurrent.futures import ThreadPoolExecutor

import fitz  # PyMuPDF

from packages.shared.models import PageText, Warning

logger = logging.getLogger(__name__)

_MIN_TEXT_LENGTH = 50
_TESSERACT_AVAILABLE: bool | None = None
_OCR_TIMEOUT_SECONDS = int(os.getenv("OCR_TIMEOUT_SECONDS", "30"))
_OCR_DPI = int(os.getenv("OCR_DPI", "200"))
_OCR_WORKERS = max(1, int(os.getenv("OCR_WORKERS", "2")))
_OCR_CONFIG = os.getenv("OCR_TESSERACT_CONFIG", "--oem 1 --psm 6").strip()


def _parse_bool_env(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def ocr_disabled() -> bool:
    return _parse_bool_env(os.getenv("DISABLE_OCR"))


def _check_tesseract() -> bool:
    """Check if Tesseract is available (cached)."""
    global _TESSERACT_AVAILABLE
    if _TESSERACT_AVAILABLE is not None:
        return _TESSERACT_AVAILABLE
    try:
        import pytesseract
        pytesseract.get_tesseract_version()
        _TESSERACT_AVAILABLE = True
    except Exception:
        _TESSERACT_AVAILABLE = False
        logger.warning("Tesseract not available, OCR fallback will be skipped")
    return _TESSERACT_AVAILABLE


def is_meaningful(text: str) -> bool:
    """Check if text is meaningful (non-trivial content)."""
    stripped = (text or "").strip()
    if len(stripped) < _MIN_TEXT_LENGTH:
        return False
    non_ws = re.sub(r"\s+", "", stripped)
    if len(non_ws) < _MIN_TEXT_LENGTH // 2:
        return False
    return True


def _ocr_page(pdf_path: str, page_index: int, *, dpi: int, config: str) -> str:
    """Run Tesseract OCR on a single page rendered as an image."""
    import pytesseract
    from PIL import Image

    try:
        doc = fitz.open(pdf_path)
        try:
            pix = doc[page_index].get_pixmap(dpi=dpi)
            img = Image.open(io.BytesIO(pix.tobytes("png")))
        finally:
            doc.close()
        text = pytesseract.image_to_string(img, lang="eng", config=config, timeout=_OCR_TIMEOUT_SECONDS)
        return text.strip()
    except RuntimeError as exc:
        # pytesseract raises RuntimeError on timeout
        logger.error(f"OCR timeout for page {page_index + 1}: {exc}")
        return ""
    except Exception as exc:
        logger.error(f"OCR failed for page {page_index + 1}: {exc}")
        return ""


def acquire_text(
    pages: list[PageText],
    pdf_path: str,
    document_id: str | None = None,
) -> tuple[list[PageText], int, list[Warning]]:
    """
    Ensure every page has meaningful text.
    Returns (updated_pages, ocr_count, warnings).
    """
    warnings: list[Warning] = []
    candidates = [i for i, page in enumerate(pages) if not is_meaningful(page.text)]
    if not candidates:
        return pages, 0, warnings

    if ocr_disabled() or not _check_tesseract():
        code = "OCR_DISABLED" if ocr_disabled() else "OCR_UNAVAILABLE"
        for i in candidates:
            warnings.append(Warning(
                code=code,
                message=f"Page {pages[i].page_number} has insufficient embedded text and OCR was not run",
                page=pages[i].page_number,
                document_id=document_id,
            ))
        return pages, 0, warnings

    logger.info(f"OCR start: {len(candidates)} pages (dpi={_OCR_DPI}, workers={_OCR_WORKERS})")
    start_time = time.monotonic()
    with ThreadPoolExecutor(max_workers=_OCR_WORKERS) as executor:
        texts = list(executor.map(
            lambda idx: _ocr_page(pdf_path, idx, dpi=_OCR_DPI, config=_OCR_CONFIG),
            candidates,
        ))

    updated = list(pages)
    ocr_count = 0
    for idx, text in zip(candidates, texts):
        page = pages[idx]
        if not text:
            warnings.append(Warning(
                code="OCR_NO_TEXT",
                message=f"OCR returned no text for page {page.page_number}",
                page=page.page_number,
                document_id=document_id,
            ))
            continue
        updated[idx] = page.model_copy(update={"text": text, "text_source": "ocr"})
        ocr_count += 1

    logger.info(f"OCR done: {ocr_count}/{len(candidates)} pages in {time.monotonic() - start_time:.1f}s")
    return updated, ocr_count, warnings
