from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from pricelist_ingest.pdf.reader import PdfReadError, read_pdf_text


def _fake_pdf(*texts):
    pdf = MagicMock()
    pdf.pages = [SimpleNamespace(extract_text=lambda t=t: t) for t in texts]
    pdf.__enter__.return_value = pdf
    return pdf


def test_read_pdf_text_joins_pages():
    with patch("pricelist_ingest.pdf.reader.pdfplumber.open", return_value=_fake_pdf("page one", None, "page three")):
        assert read_pdf_text(Path("x.pdf")) == "page one\n\npage three"


def test_read_pdf_text_no_pages():
    with patch("pricelist_ingest.pdf.reader.pdfplumber.open", return_value=_fake_pdf()):
        with pytest.raises(PdfReadError, match="no pages"):
            read_pdf_text(Path("x.pdf"))


def test_read_pdf_text_blank():
    with patch("pricelist_ingest.pdf.reader.pdfplumber.open", return_value=_fake_pdf("  ", "")):
        with pytest.raises(PdfReadError, match="could not extract"):
            read_pdf_text(Path("x.pdf"))


def test_read_pdf_text_unreadable(temp_workdir: Path):
    p = temp_workdir / "data" / "broken.pdf"
    p.write_bytes(b"%PDF-garbage")
    with pytest.raises(PdfReadError):
        read_pdf_text(p)
