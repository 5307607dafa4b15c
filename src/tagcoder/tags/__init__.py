"""Tag fingerprinting and collection helpers."""

from tagcoder.tags.collection import (
    analysis_summary,
    create_tag,
    edit_tag,
    ensure_fingerprints,
    needs_analysis,
    remove_tag,
    select_for_analysis,
)
from tagcoder.tags.fingerprint import fingerprint

__all__ = [
    "analysis_summary",
    "create_tag",
    "edit_tag",
    "ensure_fingerprints",
    "fingerprint",
    "needs_analysis",
    "remove_tag",
    "select_for_analysis",
]
