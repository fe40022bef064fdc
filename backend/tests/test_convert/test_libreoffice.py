"""
Tests for the PDF converters. soffice itself is never started: subprocess.run
is replaced with fakes that behave like it.
"""

import subprocess
from dataclasses import replace
from pathlib import Path

import fitz  # PyMuPDF
import pytest

from docgen.convert import (
    DisabledConverter,
    GraphConverter,
    LibreOfficeConverter,
    build_converter,
    validate_pdf,
)
from docgen.core.config import Settings
from docgen.core.errors import ConversionError, ConverterNotConfigured


def _pdf_bytes(pages: int = 1) -> bytes:
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page()
        page.insert_text((72, 72), f"page {i + 1}")
    data = doc.tobytes()
    doc.close()
    return data


def _completed(cmd, returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)


class TestValidatePdf:
    def test_page_count(self):
        assert validate_pdf(_pdf_bytes(2)) == 2

    def test_garbage_is_rejected(self):
        with pytest.raises(ConversionError):
            validate_pdf(b"definitely not a pdf")


class TestLibreOfficeConverter:
    """Test suite for LibreOfficeConverter."""

    @pytest.fixture
    def converter(self):
        return LibreOfficeConverter(soffice="/opt/libreoffice/program/soffice", timeout_seconds=5)

    def test_missing_soffice_means_not_configured(self, monkeypatch):
        monkeypatch.setattr("docgen.convert.libreoffice.shutil.which", lambda name: None)

        with pytest.raises(ConverterNotConfigured):
            LibreOfficeConverter().convert(b"xlsx")

    def test_successful_conversion(self, converter, monkeypatch):
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append((cmd, kwargs))
            src = Path(cmd[-1])
            outdir = Path(cmd[cmd.index("--outdir") + 1])
            assert src.read_bytes() == b"xlsx-bytes"
            (outdir / f"{src.stem}.pdf").write_bytes(_pdf_bytes())
            return _completed(cmd)

        monkeypatch.setattr("docgen.convert.libreoffice.subprocess.run", fake_run)

        pdf = converter.convert(b"xlsx-bytes")

        assert validate_pdf(pdf) == 1
        cmd, kwargs = calls[0]
        assert cmd[0] == "/opt/libreoffice/program/soffice"
        assert "--headless" in cmd
        assert any(a.startswith("-env:UserInstallation=file://") for a in cmd)
        assert kwargs["timeout"] == 5

    def test_nonzero_exit(self, converter, monkeypatch):
        monkeypatch.setattr(
            "docgen.convert.libreoffice.subprocess.run",
            lambda cmd, **kw: _completed(cmd, returncode=1, stderr="source file could not be loaded"),
        )

        with pytest.raises(ConversionError, match="could not be loaded"):
            converter.convert(b"xlsx")

    def test_timeout(self, converter, monkeypatch):
        def fake_run(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

        monkeypatch.setattr("docgen.convert.libreoffice.subprocess.run", fake_run)

        with pytest.raises(ConversionError, match="timed out"):
            converter.convert(b"xlsx")

    def test_no_output_file(self, converter, monkeypatch):
        monkeypatch.setattr("docgen.convert.libreoffice.subprocess.run", lambda cmd, **kw: _completed(cmd))

        with pytest.raises(ConversionError, match="not created"):
            converter.convert(b"xlsx")

    def test_unusable_output(self, converter, monkeypatch):
        def fake_run(cmd, **kwargs):
            src = Path(cmd[-1])
            src.with_suffix(".pdf").write_bytes(b"%PDF-broken")
            return _completed(cmd)

        monkeypatch.setattr("docgen.convert.libreoffice.subprocess.run", fake_run)

        with pytest.raises(ConversionError):
            converter.convert(b"xlsx")


class TestBuildConverter:
    @pytest.mark.parametrize("engine", ["", "none"])
    def test_disabled(self, engine):
        converter = build_converter(engine)

        assert isinstance(converter, DisabledConverter)
        with pytest.raises(ConverterNotConfigured):
            converter.convert(b"xlsx")

    def test_libreoffice(self):
        converter = build_converter("libreoffice", timeout_seconds=12)

        assert isinstance(converter, LibreOfficeConverter)
        assert converter.timeout_seconds == 12

    def test_graph(self):
        settings = replace(
            Settings(),
            graph_tenant_id="t",
            graph_client_id="c",
            graph_client_secret="s",
            graph_site_id="site-1",
            graph_drive_id="drive-1",
        )

        converter = build_converter("graph", timeout_seconds=30, settings=settings)

        assert isinstance(converter, GraphConverter)
        assert converter.timeout_seconds == 30
        assert converter.item_url("a.xlsx") == (
            "https://graph.microsoft.com/v1.0/sites/site-1/drives/drive-1/root:/docgen-tmp/a.xlsx"
        )

    def test_graph_without_drive_is_disabled(self):
        settings = replace(Settings(), graph_tenant_id="t", graph_client_id="c", graph_client_secret="s")

        converter = build_converter("graph", settings=settings)

        assert isinstance(converter, DisabledConverter)
        with pytest.raises(ConverterNotConfigured, match="Graph"):
            converter.convert(b"xlsx")

    def test_unknown_engine(self):
        with pytest.raises(ValueError):
            build_converter("wkhtmltopdf")
