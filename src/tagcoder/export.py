"""JSON export of analysis results."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Sequence

from tagcoder.models import Tag, TagStatus
from tagcoder.utils.text import strip_pdf_suffix

EXPORTED_STATUSES = (TagStatus.COMPLETED, TagStatus.NO_RESULTS)


def build_export(
    document_name: str, tags: Sequence[Tag], analyzed_at: datetime | None = None
) -> Dict[str, Any]:
    """Collect finished tags into the export payload."""
    analyzed_at = analyzed_at or datetime.now(timezone.utc)
    return {
        "document": document_name,
        "analyzedAt": analyzed_at.isoformat(),
        "tags": [
            {
                "name": tag.name,
                "description": tag.description,
                "quotesFound": len(tag.quotes),
                "quotes": list(tag.quotes),
            }
            for tag in tags
            if tag.status in EXPORTED_STATUSES
        ],
    }


def export_filename(document_name: str, when: datetime | None = None) -> str:
    when = when or datetime.now(timezone.utc)
    return f"coding-results-{strip_pdf_suffix(document_name)}-{when.date().isoformat()}.json"


def write_export(path: Path, payload: Dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return path
