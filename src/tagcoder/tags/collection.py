"""Tag editing rules, fingerprint backfill and analysis selection."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import replace
from pathlib import Path
from typing import List, Sequence, Tuple

from tagcoder.models import Tag, TagStatus
from tagcoder.tags.fingerprint import fingerprint

LOGGER = logging.getLogger(__name__)

_FINISHED = (TagStatus.COMPLETED, TagStatus.NO_RESULTS)


def create_tag(name: str, description: str) -> Tag:
    """Create a fresh, never-analyzed tag."""
    name = name.strip()
    description = description.strip()
    return Tag(
        id=uuid.uuid4().hex,
        name=name,
        description=description,
        fingerprint=fingerprint(name, description),
    )


def edit_tag(tag: Tag, name: str, description: str) -> Tag:
    """Apply an edit, discarding prior results when the content changed."""
    name = name.strip()
    description = description.strip()
    new_fingerprint = fingerprint(name, description)
    if new_fingerprint != tag.fingerprint:
        return replace(
            tag,
            name=name,
            description=description,
            fingerprint=new_fingerprint,
            status=TagStatus.IDLE,
            quotes=(),
        )
    return replace(tag, name=name, description=description)


def remove_tag(tags: Sequence[Tag], tag_id: str) -> Tuple[Tag, ...]:
    return tuple(tag for tag in tags if tag.id != tag_id)


def ensure_fingerprints(tags: Sequence[Tag]) -> Sequence[Tag]:
    """Backfill fingerprints for tags that predate them.

    Returns ``tags`` itself when every tag already carries a fingerprint,
    otherwise a new tuple.
    """
    if all(tag.fingerprint for tag in tags):
        return tags
    backfilled = tuple(
        tag if tag.fingerprint else replace(tag, fingerprint=fingerprint(tag.name, tag.description))
        for tag in tags
    )
    LOGGER.debug(
        "Backfilled fingerprints for %d tag(s)",
        sum(1 for tag in tags if not tag.fingerprint),
    )
    return backfilled


def needs_analysis(tag: Tag) -> bool:
    if not tag.fingerprint:
        return True
    if tag.status in (TagStatus.IDLE, TagStatus.ERROR):
        return True
    if tag.status in _FINISHED and not tag.quotes:
        return True
    # Content edited without going through edit_tag.
    return tag.fingerprint != fingerprint(tag.name, tag.description)


def select_for_analysis(tags: Sequence[Tag]) -> List[Tag]:
    """Return the tags needing (re-)analysis, in collection order."""
    return [tag for tag in tags if needs_analysis(tag)]


def analysis_summary(tags: Sequence[Tag]) -> Tuple[int, int, int]:
    """Return ``(needs_analysis, up_to_date, total)`` for a collection."""
    pending = len(select_for_analysis(ensure_fingerprints(tags)))
    return pending, len(tags) - pending, len(tags)


def load_tags(path: Path) -> Tuple[Tag, ...]:
    """Read a JSON list of tag objects; a missing file is an empty collection."""
    if not path.exists():
        return ()
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON list of tags in {path}")
    if not all(isinstance(item, dict) for item in data):
        raise ValueError(f"Every tag in {path} must be a JSON object")
    return tuple(Tag.from_dict(item) for item in data)


def save_tags(path: Path, tags: Sequence[Tag]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps([tag.to_dict() for tag in tags], indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
