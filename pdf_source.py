"""PDF-to-text adapters.

PyMuPDF is the primary backend; pdfplumber is tried when PyMuPDF cannot open
the file or gives back no text (some PP exports embed fonts it cannot map).
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Union

import fitz  # PyMuPDF
import pdfplumber

logger = logging.getLogger(__name__)

BACKENDS = ('auto', 'pymupdf', 'pdfplumber')

PAGE_SEPARATOR = '\n\n'
FRAGMENT_SEPARATOR = '\n'


class PdfDecodeError(RuntimeError):
    """No backend could turn the PDF into text."""


class PdfTextSource(ABC):
    """Page-indexed text fragments of one PDF (pages are zero-based)."""

    def __init__(self, path: Union[str, Path]):
        self.path = str(path)

    @property
    @abstractmethod
    def page_count(self) -> int:
        ...

    @abstractmethod
    def extract_page_text(self, page_number: int) -> List[str]:
        ...

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class PyMuPdfSource(PdfTextSource):
    def __init__(self, path: Union[str, Path]):
        super().__init__(path)
        self._doc = fitz.open(self.path)

    @property
    def page_count(self) -> int:
        return len(self._doc)

    def extract_page_text(self, page_number: int) -> List[str]:
        return self._doc[page_number].get_text().splitlines()

    def close(self) -> None:
        self._doc.close()


class PdfPlumberSource(PdfTextSource):
    def __init__(self, path: Union[str, Path]):
        super().__init__(path)
        self._pdf = pdfplumber.open(self.path)

    @property
    def page_count(self) -> int:
        return len(self._pdf.pages)

    def extract_page_text(self, page_number: int) -> List[str]:
        text = self._pdf.pages[page_number].extract_text() or ""
        return text.splitlines()

    def close(self) -> None:
        self._pdf.close()


_SOURCES = {
    'pymupdf': PyMuPdfSource,
    'pdfplumber': PdfPlumberSource,
}


def join_pages(source: PdfTextSource) -> str:
    """Concatenate every page: fragments joined by a newline, pages by a blank line."""
    pages = []
    for i in range(source.page_count):
        pages.append(FRAGMENT_SEPARATOR.join(source.extract_page_text(i)))
    return PAGE_SEPARATOR.join(pages)


def read_pdf_text(path: Union[str, Path], backend: str = 'auto') -> str:
    """Decode *path* to a single text stream.

    Raises ``PdfDecodeError`` when none of the selected backends can open the
    file.  A file that opens but has no extractable text returns ``""``.
    """
    if backend not in BACKENDS:
        raise ValueError(f"Unknown PDF backend: {backend!r} (expected one of {', '.join(BACKENDS)})")
    order = ['pymupdf', 'pdfplumber'] if backend == 'auto' else [backend]

    opened = False
    last_error = None
    for name in order:
        try:
            with _SOURCES[name](path) as source:
                text = join_pages(source)
        except Exception as e:
            logger.warning(f"{name} failed on {path}: {e}")
            last_error = e
            continue
        opened = True
        if text.strip():
            logger.info(f"Extracted {len(text)} chars using {name} from {path}")
            return text
        logger.warning(f"{name} extracted no text from {path}")

    if opened:
        return ''
    raise PdfDecodeError(f"Could not extract text from PDF: {path}") from last_error
