from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

import fitz  # PyMuPDF

from ..core.errors import ConversionError, ConverterNotConfigured

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


def validate_pdf(data: bytes) -> int:
    """Returns page count; raises ConversionError when the bytes are not a usable PDF."""
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise ConversionError(f"Converter output is not a PDF: {e}") from e
    try:
        if doc.page_count < 1:
            raise ConversionError("Converter produced an empty PDF")
        return doc.page_count
    finally:
        doc.close()


class LibreOfficeConverter:
    """
    XLSX bytes -> PDF bytes using headless LibreOffice (soffice).
    Every call works in its own temp dir with its own LO profile, so parallel
    conversions do not lock each other.
    """

    def __init__(self, *, soffice: Optional[str] = None, timeout_seconds: float = 60) -> None:
        self._soffice = soffice
        self.timeout_seconds = timeout_seconds

    def _find_soffice(self) -> str:
        soffice = self._soffice or shutil.which("soffice")
        if not soffice:
            raise ConverterNotConfigured("LibreOffice (soffice) is not installed in runtime image")
        return soffice

    def convert(self, data: bytes, *, source_suffix: str = ".xlsx") -> bytes:
        soffice = self._find_soffice()

        with tempfile.TemporaryDirectory(prefix="docgen_convert_") as work_dir:
            work = Path(work_dir)
            src = work / f"document{source_suffix}"
            src.write_bytes(data)
            profile_dir = work / "lo_profile"

            cmd = [
                soffice,
                "--headless",
                "--nologo",
                "--nofirststartwizard",
                f"-env:UserInstallation={profile_dir.as_uri()}",
                "--convert-to",
                "pdf",
                "--outdir",
                str(work),
                str(src),
            ]

            try:
                p = subprocess.run(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    timeout=self.timeout_seconds,
                )
            except subprocess.TimeoutExpired as e:
                raise ConversionError(f"LibreOffice convert timed out after {self.timeout_seconds}s") from e
            except OSError as e:
                raise ConversionError(f"LibreOffice could not be started: {e}") from e

            if p.returncode != 0:
                raise ConversionError(f"LibreOffice convert failed: {p.stderr.strip() or p.stdout.strip()}")

            pdf_path = src.with_suffix(".pdf")
            if not pdf_path.exists():
                raise ConversionError("PDF was not created")
            pdf = pdf_path.read_bytes()

        pages = validate_pdf(pdf)
        logger.info("Converted %d bytes to PDF (%d pages, %d bytes)", len(data), pages, len(pdf))
        return pdf


class DisabledConverter:
    """PDF_CONVERSION_ENGINE=none, or an engine missing its settings: conversion is always skipped."""

    def __init__(self, reason: str = "PDF conversion is disabled") -> None:
        self.reason = reason

    def convert(self, data: bytes, *, source_suffix: str = ".xlsx") -> bytes:
        raise ConverterNotConfigured(self.reason)
