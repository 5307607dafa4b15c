"""PDF text extraction.

Uses PyMuPDF (fitz) to turn an uploaded PDF into a ``Document``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import fitz  # PyMuPDF

from tagcoder.errors import DocumentParseError
from tagcoder.models import Document
from tagcoder.utils.text import normalize_whitespace

LOGGER = logging.getLogger(__name__)


def extract_document(data: bytes, name: str) -> Document:
    """Extract the full text of a PDF held in memory.

    Pages are separated by a blank line. Any failure raises
    ``DocumentParseError``; no partial document is returned.
    """
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        LOGGER.error("Failed to open PDF %s: %s", name, exc)
        raise DocumentParseError(f"Failed to parse PDF: {exc}") from exc

    try:
        pages: List[str] = []
        page_count = len(doc)
        for index in range(page_count):
            try:
                text = doc[index].get_text() or ""
            except Exception as exc:
                LOGGER.error("Failed to read page %s in %s: %s", index, name, exc)
                raise DocumentParseError(f"Failed to parse PDF: {exc}") from exc
            pages.append(normalize_whitespace(text.splitlines()))
    finally:
        doc.close()

    content = "\n\n".join(pages).strip()
    if not content:
        LOGGER.warning("No text extracted from %s", name)
    return Document(name=name, content=content, page_count=page_count)


def load_document(path: Path) -> Document:
    """Read a PDF from disk and extract it."""
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise DocumentParseError(f"Failed to read file: {exc}") from exc
    return extract_document(data, path.name)
