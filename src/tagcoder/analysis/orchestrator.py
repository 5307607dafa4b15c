"""Sequential analysis of a tag collection against one document."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from tagcoder.config import AppConfig
from tagcoder.errors import ProviderError
from tagcoder.models import AnalysisProgress, Document, ProviderConfig, Tag, TagStatus
from tagcoder.providers.client import ProviderClient
from tagcoder.tags.collection import ensure_fingerprints, select_for_analysis
from tagcoder.tags.fingerprint import fingerprint

LOGGER = logging.getLogger(__name__)


class RunStatus(str, Enum):
    FINISHED = "finished"
    NOTHING_TO_DO = "nothing-to-do"
    PRECONDITION_FAILED = "precondition-failed"
    ALREADY_RUNNING = "already-running"


class NoticeKind(str, Enum):
    PRECONDITION = "precondition"
    ALREADY_RUNNING = "already-running"
    NOTHING_TO_DO = "nothing-to-do"
    TAG_FAILED = "tag-failed"


@dataclass(frozen=True, slots=True)
class AnalysisNotice:
    """A run-level message for the caller to surface however it likes."""

    kind: NoticeKind
    message: str
    tag_id: str | None = None


@dataclass(frozen=True, slots=True)
class AnalysisSnapshot:
    tags: Tuple[Tag, ...]
    progress: AnalysisProgress


@dataclass(slots=True)
class AnalysisOutcome:
    status: RunStatus
    tags: Tuple[Tag, ...]
    progress: AnalysisProgress
    notices: List[AnalysisNotice] = field(default_factory=list)
    analyzed: int = 0
    skipped: int = 0

    @property
    def failed(self) -> int:
        return sum(1 for notice in self.notices if notice.kind is NoticeKind.TAG_FAILED)


class AnalysisOrchestrator:
    """Drives a provider client over the tags that need (re-)analysis.

    Tags are processed one at a time in collection order. Each step publishes
    a fresh ``AnalysisSnapshot`` to ``on_update``: before the provider call,
    after it, and once more when the run ends. A tag whose provider call
    raises ``ProviderError`` is marked ``error`` and reported through
    ``on_notice``; the run carries on with the next tag.
    """

    def __init__(
        self,
        client_factory: Optional[Callable[[ProviderConfig], ProviderClient]] = None,
        *,
        delay: float = AppConfig().request_delay,
        sleep: Callable[[float], None] = time.sleep,
        on_update: Optional[Callable[[AnalysisSnapshot], None]] = None,
        on_notice: Optional[Callable[[AnalysisNotice], None]] = None,
    ) -> None:
        self.client_factory = client_factory
        self.delay = delay
        self.sleep = sleep
        self.on_update = on_update
        self.on_notice = on_notice
        self.progress = AnalysisProgress()
        self._run_lock = threading.Lock()

    def start_analysis(
        self,
        document: Document | None,
        tags: Sequence[Tag],
        config: ProviderConfig | None,
    ) -> AnalysisOutcome:
        # Claimed before any other work so overlapping callers are refused.
        if not self._run_lock.acquire(blocking=False):
            return self._refuse_running(tags)
        try:
            if self.progress.is_processing:
                return self._refuse_running(tags)
            return self._run(document, tags, config)
        finally:
            self._run_lock.release()

    def _run(
        self,
        document: Document | None,
        tags: Sequence[Tag],
        config: ProviderConfig | None,
    ) -> AnalysisOutcome:
        if document is None or config is None or not tags:
            return self._refuse(
                tags,
                "Please upload a document, configure AI settings, and add tags "
                "before starting analysis.",
            )

        current = tuple(ensure_fingerprints(tags))
        selected = select_for_analysis(current)
        skipped = len(current) - len(selected)

        if not selected:
            notice = AnalysisNotice(
                NoticeKind.NOTHING_TO_DO,
                "All tags have already been analyzed and are up to date.",
            )
            self._notify(notice)
            return AnalysisOutcome(
                RunStatus.NOTHING_TO_DO, current, self.progress, [notice], skipped=skipped
            )

        if skipped:
            LOGGER.info(
                "Skipping %d unchanged tag(s), analyzing %d new/modified tag(s)",
                skipped,
                len(selected),
            )

        notices: List[AnalysisNotice] = []
        total = len(selected)
        self.progress = AnalysisProgress(
            current_tag_index=1, total_tags=total, is_processing=True, has_error=False
        )

        try:
            client = (self.client_factory or ProviderClient)(config)
            for position, tag in enumerate(selected, start=1):
                self.progress = replace(self.progress, current_tag_index=position)
                current = _replace_tag(current, replace(tag, status=TagStatus.PROCESSING))
                self._publish(current)
                LOGGER.info("Analyzing tag %d/%d: %s", position, total, tag.name)

                try:
                    quotes = client.analyze(document.content, tag)
                except ProviderError as exc:
                    LOGGER.error("Error analyzing tag %r: %s", tag.name, exc)
                    current = _replace_tag(current, replace(tag, status=TagStatus.ERROR))
                    self.progress = replace(self.progress, has_error=True)
                    self._publish(current)
                    notice = AnalysisNotice(
                        NoticeKind.TAG_FAILED,
                        f'Analysis of tag "{tag.name}" failed: {exc}',
                        tag_id=tag.id,
                    )
                    notices.append(notice)
                    self._notify(notice)
                    continue

                status = TagStatus.COMPLETED if quotes else TagStatus.NO_RESULTS
                current = _replace_tag(
                    current,
                    replace(
                        tag,
                        status=status,
                        quotes=tuple(quotes),
                        fingerprint=fingerprint(tag.name, tag.description),
                    ),
                )
                self._publish(current)
                LOGGER.info("Tag %r: %s (%d quote(s))", tag.name, status.value, len(quotes))

                if position < total:
                    self.sleep(self.delay)
        finally:
            self.progress = replace(self.progress, is_processing=False)
            self._publish(current)

        return AnalysisOutcome(
            RunStatus.FINISHED,
            current,
            self.progress,
            notices,
            analyzed=total,
            skipped=skipped,
        )

    def _refuse(self, tags: Sequence[Tag], message: str) -> AnalysisOutcome:
        LOGGER.warning(message)
        notice = AnalysisNotice(NoticeKind.PRECONDITION, message)
        self._notify(notice)
        return AnalysisOutcome(
            RunStatus.PRECONDITION_FAILED, tuple(tags), self.progress, [notice]
        )

    def _refuse_running(self, tags: Sequence[Tag]) -> AnalysisOutcome:
        message = "An analysis is already running."
        LOGGER.warning(message)
        notice = AnalysisNotice(NoticeKind.ALREADY_RUNNING, message)
        self._notify(notice)
        return AnalysisOutcome(RunStatus.ALREADY_RUNNING, tuple(tags), self.progress, [notice])

    def _publish(self, tags: Tuple[Tag, ...]) -> None:
        if self.on_update is not None:
            self.on_update(AnalysisSnapshot(tags, self.progress))

    def _notify(self, notice: AnalysisNotice) -> None:
        if self.on_notice is not None:
            self.on_notice(notice)


def _replace_tag(tags: Tuple[Tag, ...], updated: Tag) -> Tuple[Tag, ...]:
    return tuple(updated if tag.id == updated.id else tag for tag in tags)
