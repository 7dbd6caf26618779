"""Runtime configuration read from the environment (and an optional .env file)."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

import dotenv

from pdf_source import BACKENDS

OUTPUT_FORMATS = ('json', 'csv', 'both')


@dataclass
class ParserSettings:
    """User-configurable extraction parameters."""
    pdf_backend: str = "auto"          # auto / pymupdf / pdfplumber
    log_level: str = "INFO"
    output_dir: str = "pp_output"
    output_format: str = "both"        # json / csv / both

    def __post_init__(self):
        self.pdf_backend = self.pdf_backend.strip().lower()
        self.log_level = self.log_level.strip().upper()
        self.output_format = self.output_format.strip().lower()
        if self.pdf_backend not in BACKENDS:
            raise ValueError(f"Unknown PDF backend: {self.pdf_backend!r}")
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Unknown output format: {self.output_format!r}")

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'ParserSettings':
        """Build settings from ``PP_*`` variables; a .env file fills in unset ones."""
        dotenv.load_dotenv(env_file)
        return cls(
            pdf_backend=os.getenv("PP_PDF_BACKEND", cls.pdf_backend),
            log_level=os.getenv("PP_LOG_LEVEL", cls.log_level),
            output_dir=os.getenv("PP_OUTPUT_DIR", cls.output_dir),
            output_format=os.getenv("PP_OUTPUT_FORMAT", cls.output_format),
        )
