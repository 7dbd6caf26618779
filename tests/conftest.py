"""Shared fixtures for past-performance parser tests."""
import os

import pytest

import fitz  # PyMuPDF

PP_ENV_VARS = ("PP_PDF_BACKEND", "PP_LOG_LEVEL", "PP_OUTPUT_DIR", "PP_OUTPUT_FORMAT")

# Two entrants of one race, one per page (ASCII only: base-14 Helvetica)
PAGE_ONE = [
    "Ultimate PP's w/ QuickPlay Comments Aqueduct",
    "Race 3",
    "6 Furlongs. Allowance. Purse $60,000",
    "1 Silver Thunder (E/P 5)",
    "Own: Lane Stable",
    "5/2 Blue, White Hoops",
    "PRAT FLAVIEN (21 3-2-1 14%)",
    "B. c. 4",
    "Sire : Into Mischief (Harlan's Holiday)",
    "Dam: Lady Thunder (Tapit)",
    "Brdr: Smith Farm (KY)",
    "Trnr: Jones Alan (45 9-8-7 20%)",
    "Prime Power: 128.4 (2nd)",
    "Life: 12 3-2-1 $120,000 88",
    "2025 6 2-1-0 $80,000 88",
    "2024 6 1-1-1 $40,000 84",
    "Fst (98) 8 2-1-1 $60,000 86",
    "L 120",
    "DATE TRK DIST",
    "09Oct25Aqu 6f ft :22.1 :45.3 1:10.2 Alw 60000 3 2 1 1 1 1 JonesT L 3.50 "
    "Silver Thunder,Fast Rocket drifted out 8",
    "12Sep25Sar 6 1/2 ft :22.4 :46.0 1:11.3 1:17.9 Alw 50000 5 4 3 2 2 2 PratF 2.10 "
    "Winner,Silver Thunder rallied 7",
    "08Feb GP 5f ft 1:01 B 5/20",
    "+ Won last race",
]

PAGE_TWO = [
    "2 Golden Dash (S 2)",
    "Own: Hill Racing",
    "8/1 Red, Black Sash",
    "ORTIZ IRAD JR (18 2-3-4 11%)",
    "Ch. f. 3",
    "Sire : Tapit (Pulpit)",
    "Dam: Dash Away (Medaglia d'Oro)",
    "Trnr: Brown Chad (30 6-5-4 20%)",
    "Life: 4 1-1-0 $45,000 79",
    "DATE TRK DIST",
    "20Sep25Bel 1m fm :23.5 :47.8 1:12.0 1:36.4 Md 40000 6 8 7 6 5 4 OrtizI *1.90 "
    "A Horse,Another One 9",
]

SAMPLE_TEXT = "\n".join(PAGE_ONE) + "\n\n" + "\n".join(PAGE_TWO) + "\n"


def _write_lines(page, lines, start_y=40, x=30, fontsize=7):
    """Helper: write list of text lines to a page, return final y."""
    y = start_y
    for text in lines:
        page.insert_text((x, y), text, fontsize=fontsize, fontname="helv")
        y += fontsize + 5
    return y


@pytest.fixture
def sample_text():
    return SAMPLE_TEXT


@pytest.fixture
def fixture_pp_pdf(tmp_path):
    """Generate a 2-page Brisnet-style PP PDF (one entrant per page)."""
    pdf_path = tmp_path / "test_pp.pdf"
    doc = fitz.open()  # new empty PDF
    for lines in (PAGE_ONE, PAGE_TWO):
        page = doc.new_page(width=612, height=792)
        _write_lines(page, lines)
    doc.save(str(pdf_path))
    doc.close()
    return pdf_path


@pytest.fixture
def blank_pdf(tmp_path):
    """A valid PDF with one page and no text."""
    pdf_path = tmp_path / "blank.pdf"
    doc = fitz.open()
    doc.new_page(width=612, height=792)
    doc.save(str(pdf_path))
    doc.close()
    return pdf_path


@pytest.fixture
def broken_pdf(tmp_path):
    pdf_path = tmp_path / "broken.pdf"
    pdf_path.write_bytes(b"this is not a pdf file at all")
    return pdf_path


@pytest.fixture
def clean_pp_env(monkeypatch):
    """Clear PP_* variables, including any a .env file loads during the test."""
    for name in PP_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    for name in PP_ENV_VARS:
        os.environ.pop(name, None)
