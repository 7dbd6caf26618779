"""Tests for pdf_source: PyMuPDF / pdfplumber text adapters."""
from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest
from pdf_source import (
    PdfDecodeError,
    PdfPlumberSource,
    PdfTextSource,
    PyMuPdfSource,
    join_pages,
    read_pdf_text,
)


class TestPdfTextSource:
    def test_base_cannot_be_instantiated(self, fixture_pp_pdf):
        with pytest.raises(TypeError):
            PdfTextSource(fixture_pp_pdf)

    def test_subclass_must_implement_pages(self, fixture_pp_pdf):
        class NoPages(PdfTextSource):
            @property
            def page_count(self):
                return 0

        with pytest.raises(TypeError):
            NoPages(fixture_pp_pdf)


class TestPyMuPdfSource:
    def test_page_count(self, fixture_pp_pdf):
        with PyMuPdfSource(fixture_pp_pdf) as src:
            assert src.page_count == 2

    def test_pages_are_zero_based(self, fixture_pp_pdf):
        with PyMuPdfSource(fixture_pp_pdf) as src:
            first = src.extract_page_text(0)
            second = src.extract_page_text(1)
        assert "Race 3" in first
        assert "2 Golden Dash (S 2)" in second

    def test_join_pages(self, fixture_pp_pdf):
        with PyMuPdfSource(fixture_pp_pdf) as src:
            text = join_pages(src)
        assert text.startswith("Ultimate PP's")
        assert "+ Won last race\n\n2 Golden Dash" in text


class TestPdfPlumberSource:
    def test_extracts_text(self, fixture_pp_pdf):
        with PdfPlumberSource(fixture_pp_pdf) as src:
            assert src.page_count == 2
            text = join_pages(src)
        assert "Thunder" in text
        assert "Golden" in text


class TestReadPdfText:
    def test_auto_uses_pymupdf(self, fixture_pp_pdf):
        text = read_pdf_text(fixture_pp_pdf)
        assert "1 Silver Thunder (E/P 5)" in text

    def test_explicit_pdfplumber(self, fixture_pp_pdf):
        assert "Thunder" in read_pdf_text(fixture_pp_pdf, backend="pdfplumber")

    def test_blank_pdf_returns_empty(self, blank_pdf):
        assert read_pdf_text(blank_pdf).strip() == ""

    def test_broken_pdf_raises(self, broken_pdf):
        with pytest.raises(PdfDecodeError) as exc_info:
            read_pdf_text(broken_pdf)
        assert exc_info.value.__cause__ is not None

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(PdfDecodeError):
            read_pdf_text(tmp_path / "missing.pdf")

    def test_decode_error_is_runtime_error(self):
        assert issubclass(PdfDecodeError, RuntimeError)

    def test_unknown_backend(self, fixture_pp_pdf):
        with pytest.raises(ValueError):
            read_pdf_text(fixture_pp_pdf, backend="ocr")
