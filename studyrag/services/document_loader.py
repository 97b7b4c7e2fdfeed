"""Reads uploaded course material into plain text for ingestion.

Supports plain text (``.txt``, ``.md``) and PDF.  PDFs are read with PyMuPDF
(fitz) page by page; pages without a text layer are skipped, so a scanned
PDF with no OCR layer is rejected as having no extractable text.
"""

from __future__ import annotations

from pathlib import Path

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from studyrag.utils.errors import ValidationError
from studyrag.utils.text import is_blank

logger = structlog.get_logger(logger_name=__name__)

TEXT_SUFFIXES = frozenset({".txt", ".md"})
PDF_SUFFIXES = frozenset({".pdf"})
SUPPORTED_SUFFIXES = TEXT_SUFFIXES | PDF_SUFFIXES


def load_document(file_path: str | Path) -> str:
    """Return the text content of *file_path*.

    Raises
    ------
    ValidationError
        If the file is missing, has an unsupported extension, cannot be
        parsed, or contains no extractable text.
    """
    path = Path(file_path)
    if not path.is_file():
        raise ValidationError(f"File not found: {path}")

    suffix = path.suffix.lower()
    if suffix in TEXT_SUFFIXES:
        text = path.read_text(encoding="utf-8", errors="replace")
    elif suffix in PDF_SUFFIXES:
        text = _read_pdf(path)
    else:
        raise ValidationError(
            f"Unsupported file type '{suffix or path.name}'. "
            f"Supported: {', '.join(sorted(SUPPORTED_SUFFIXES))}"
        )

    if is_blank(text):
        logger.warning("document_no_text_extracted", file_path=str(path))
        raise ValidationError(f"No extractable text in '{path.name}'")

    logger.info("document_loaded", file_path=str(path), characters=len(text))
    return text


def _read_pdf(path: Path) -> str:
    try:
        doc = fitz.open(path)
    except Exception as exc:
        logger.error("pdf_open_failed", file_path=str(path), error=str(exc))
        raise ValidationError(f"Could not read PDF '{path.name}': {exc}") from exc

    pages: list[str] = []
    try:
        for page in doc:
            text = page.get_text("text").strip()
            if text:
                pages.append(text)
    finally:
        doc.close()

    return "\n\n".join(pages)
