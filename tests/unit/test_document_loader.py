"""Unit tests for load_document."""

from __future__ import annotations

import fitz
import pytest

from studyrag.services.document_loader import load_document
from studyrag.utils.errors import ValidationError


def _write_pdf(path, pages: list[str]) -> None:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    doc.save(str(path))
    doc.close()


def test_reads_text_file(tmp_path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("Week 1: cell biology.\nWeek 2: genetics.", encoding="utf-8")

    assert load_document(path) == "Week 1: cell biology.\nWeek 2: genetics."


def test_reads_markdown_with_upper_case_suffix(tmp_path) -> None:
    path = tmp_path / "README.MD"
    path.write_text("# Syllabus", encoding="utf-8")

    assert load_document(str(path)) == "# Syllabus"


def test_reads_pdf_pages_in_order(tmp_path) -> None:
    path = tmp_path / "lecture.pdf"
    _write_pdf(path, ["Mitochondria produce ATP.", "", "Ribosomes build proteins."])

    text = load_document(path)

    assert "Mitochondria produce ATP." in text
    assert "Ribosomes build proteins." in text
    assert text.index("Mitochondria") < text.index("Ribosomes")


def test_pdf_without_text_layer_rejected(tmp_path) -> None:
    path = tmp_path / "scan.pdf"
    _write_pdf(path, [""])

    with pytest.raises(ValidationError, match="No extractable text"):
        load_document(path)


def test_corrupt_pdf_rejected(tmp_path) -> None:
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"this is not a pdf")

    with pytest.raises(ValidationError):
        load_document(path)


def test_unsupported_suffix(tmp_path) -> None:
    path = tmp_path / "slides.pptx"
    path.write_bytes(b"PK")

    with pytest.raises(ValidationError, match="Unsupported file type"):
        load_document(path)


def test_missing_file(tmp_path) -> None:
    with pytest.raises(ValidationError, match="File not found"):
        load_document(tmp_path / "nope.txt")


def test_blank_text_file(tmp_path) -> None:
    path = tmp_path / "empty.txt"
    path.write_text("   \n\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        load_document(path)
