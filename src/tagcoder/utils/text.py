"""Text helpers."""

from __future__ import annotations

from typing import Iterable


def normalize_whitespace(lines: Iterable[str]) -> str:
    """Collapse whitespace and join lines."""
    return "\n".join(line.strip() for line in lines if line.strip())


def strip_pdf_suffix(name: str) -> str:
    if name.lower().endswith(".pdf"):
        return name[: -len(".pdf")]
    return name
