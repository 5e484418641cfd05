from __future__ import annotations

from pathlib import Path

import pdfplumber

"""PDF text reader.

Concatenates the extracted text of every page. Structure recovery from the
text is left to the oracle.
"""

__all__ = [
    "PdfReadError",
    "read_pdf_text",
]


class PdfReadError(Exception):
    """Raised when the PDF cannot be opened or holds no extractable text."""


def read_pdf_text(path: Path) -> str:
    try:
        with pdfplumber.open(path) as pdf:
            if not pdf.pages:
                raise PdfReadError(f"{path.name}: empty PDF, no pages found")
            pages = [page.extract_text() or "" for page in pdf.pages]
    except PdfReadError:
        raise
    except Exception as e:
        raise PdfReadError(f"failed to read PDF {path.name}: {e}") from e

    text = "\n".join(pages)
    if not text.strip():
        raise PdfReadError(f"{path.name}: could not extract any text")
    return text
