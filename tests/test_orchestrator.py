"""Tests for AnalysisOrchestrator."""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Dict, List
from unittest.mock import MagicMock

import pytest

from tagcoder.analysis.orchestrator import (
    AnalysisNotice,
    AnalysisOrchestrator,
    AnalysisSnapshot,
    NoticeKind,
    RunStatus,
)
from tagcoder.config import AppConfig
from tagcoder.errors import ConfigurationError, ProviderError
from tagcoder.models import AnalysisProgress, Document, ProviderConfig, Tag, TagStatus
from tagcoder.tags.collection import create_tag
from tagcoder.tags.fingerprint import fingerprint

DOCUMENT = Document(
    name="sky.pdf", content="The sky is blue. The grass is green.", page_count=1
)
CONFIG = ProviderConfig(api_key="secret")


class FakeClient:
    """Provider client returning canned replies keyed by tag name."""

    def __init__(self, replies: Dict[str, object]) -> None:
        self.replies = replies
        self.calls: List[str] = []

    def analyze(self, document_text: str, tag: Tag) -> List[str]:
        self.calls.append(tag.name)
        reply = self.replies[tag.name]
        if isinstance(reply, Exception):
            raise reply
        return list(reply)


@pytest.fixture
def sleep() -> MagicMock:
    return MagicMock()


def _orchestrator(client: FakeClient, sleep: MagicMock, **kwargs) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(lambda config: client, sleep=sleep, **kwargs)


class TestPreconditions:
    """Runs refuse to start without document, config or tags."""

    @pytest.mark.parametrize(
        "document,tags,config",
        [
            (None, [create_tag("A", "B")], CONFIG),
            (DOCUMENT, [create_tag("A", "B")], None),
            (DOCUMENT, [], CONFIG),
        ],
    )
    def test_missing_inputs(self, document, tags, config, sleep: MagicMock) -> None:
        client = FakeClient({})
        factory = MagicMock(return_value=client)
        notices: List[AnalysisNotice] = []
        orchestrator = AnalysisOrchestrator(factory, sleep=sleep, on_notice=notices.append)

        outcome = orchestrator.start_analysis(document, tags, config)

        assert outcome.status is RunStatus.PRECONDITION_FAILED
        assert outcome.tags == tuple(tags)
        assert [notice.kind for notice in notices] == [NoticeKind.PRECONDITION]
        assert orchestrator.progress == AnalysisProgress()
        factory.assert_not_called()

    def test_refuses_while_processing(self, sleep: MagicMock) -> None:
        client = FakeClient({"A": ["q"]})
        orchestrator = _orchestrator(client, sleep)
        orchestrator.progress = AnalysisProgress(1, 3, is_processing=True)

        outcome = orchestrator.start_analysis(DOCUMENT, [create_tag("A", "B")], CONFIG)

        assert outcome.status is RunStatus.ALREADY_RUNNING
        assert [notice.kind for notice in outcome.notices] == [NoticeKind.ALREADY_RUNNING]
        assert "already running" in outcome.notices[0].message
        assert client.calls == []


class TestReentrancy:
    """Only one run at a time per orchestrator."""

    def test_overlapping_call_is_refused(self, sleep: MagicMock) -> None:
        started = threading.Event()
        release = threading.Event()
        client = FakeClient({"A": ["q"]})

        def slow_factory(config: ProviderConfig) -> FakeClient:
            started.set()
            release.wait(timeout=5)
            return client

        orchestrator = AnalysisOrchestrator(slow_factory, sleep=sleep)
        results = {}

        def first_run() -> None:
            results["first"] = orchestrator.start_analysis(
                DOCUMENT, [create_tag("A", "B")], CONFIG
            )

        worker = threading.Thread(target=first_run)
        worker.start()
        assert started.wait(timeout=5)

        second = orchestrator.start_analysis(DOCUMENT, [create_tag("A", "B")], CONFIG)

        release.set()
        worker.join(timeout=5)

        assert second.status is RunStatus.ALREADY_RUNNING
        assert results["first"].status is RunStatus.FINISHED
        assert client.calls == ["A"]

    def test_next_run_accepted_after_finish(self, sleep: MagicMock) -> None:
        client = FakeClient({"A": ["q"], "B": ["r"]})
        orchestrator = _orchestrator(client, sleep)

        first = orchestrator.start_analysis(DOCUMENT, [create_tag("A", "x")], CONFIG)
        second = orchestrator.start_analysis(DOCUMENT, [create_tag("B", "y")], CONFIG)

        assert first.status is RunStatus.FINISHED
        assert second.status is RunStatus.FINISHED
        assert client.calls == ["A", "B"]

    def test_failing_client_factory_releases_run(self, sleep: MagicMock) -> None:
        factory = MagicMock(side_effect=[RuntimeError("boom"), FakeClient({"A": ["q"]})])
        orchestrator = AnalysisOrchestrator(factory, sleep=sleep)

        with pytest.raises(RuntimeError):
            orchestrator.start_analysis(DOCUMENT, [create_tag("A", "B")], CONFIG)

        assert orchestrator.progress.is_processing is False
        outcome = orchestrator.start_analysis(DOCUMENT, [create_tag("A", "B")], CONFIG)
        assert outcome.status is RunStatus.FINISHED


class TestDefaults:
    def test_delay_comes_from_app_config(self) -> None:
        assert AnalysisOrchestrator().delay == AppConfig().request_delay


class TestScenarios:
    """End-to-end runs with a fake provider."""

    def test_quotes_found(self, sleep: MagicMock) -> None:
        tag = create_tag("Color", "mentions of color")
        client = FakeClient({"Color": ["The sky is blue.", "The grass is green."]})

        outcome = _orchestrator(client, sleep).start_analysis(DOCUMENT, [tag], CONFIG)

        (result,) = outcome.tags
        assert outcome.status is RunStatus.FINISHED
        assert result.status is TagStatus.COMPLETED
        assert result.quotes == ("The sky is blue.", "The grass is green.")
        assert outcome.analyzed == 1
        assert outcome.failed == 0
        sleep.assert_not_called()

    def test_no_matches(self, sleep: MagicMock) -> None:
        tag = create_tag("Color", "mentions of color")
        client = FakeClient({"Color": []})

        outcome = _orchestrator(client, sleep).start_analysis(DOCUMENT, [tag], CONFIG)

        (result,) = outcome.tags
        assert result.status is TagStatus.NO_RESULTS
        assert result.quotes == ()

    def test_all_up_to_date(self, sleep: MagicMock) -> None:
        tags = [
            replace(create_tag("A", "d"), status=TagStatus.COMPLETED, quotes=("q1",)),
            replace(create_tag("B", "d"), status=TagStatus.COMPLETED, quotes=("q2",)),
        ]
        client = FakeClient({})
        updates: List[AnalysisSnapshot] = []

        outcome = _orchestrator(client, sleep, on_update=updates.append).start_analysis(
            DOCUMENT, tags, CONFIG
        )

        assert outcome.status is RunStatus.NOTHING_TO_DO
        assert outcome.notices[0].kind is NoticeKind.NOTHING_TO_DO
        assert outcome.skipped == 2
        assert outcome.tags == tuple(tags)
        assert client.calls == []
        assert updates == []

    def test_partial_failure(self, sleep: MagicMock) -> None:
        tags = [create_tag("one", "d"), create_tag("two", "d"), create_tag("three", "d")]
        client = FakeClient({"one": ["q1"], "two": ProviderError(), "three": []})
        notices: List[AnalysisNotice] = []

        outcome = _orchestrator(client, sleep, on_notice=notices.append).start_analysis(
            DOCUMENT, tags, CONFIG
        )

        statuses = [tag.status for tag in outcome.tags]
        assert statuses == [TagStatus.COMPLETED, TagStatus.ERROR, TagStatus.NO_RESULTS]
        assert outcome.tags[1].quotes == ()
        assert outcome.progress.has_error is True
        assert outcome.progress.is_processing is False
        assert outcome.failed == 1
        assert client.calls == ["one", "two", "three"]
        assert [notice.tag_id for notice in notices] == [tags[1].id]

    def test_configuration_error_fails_tag(self, sleep: MagicMock) -> None:
        tags = [create_tag("one", "d"), create_tag("two", "d")]
        client = FakeClient(
            {"one": ConfigurationError("Custom endpoint URL is required"), "two": ["q"]}
        )

        outcome = _orchestrator(client, sleep).start_analysis(DOCUMENT, tags, CONFIG)

        assert [tag.status for tag in outcome.tags] == [TagStatus.ERROR, TagStatus.COMPLETED]

    def test_error_keeps_previous_quotes(self, sleep: MagicMock) -> None:
        tag = replace(create_tag("A", "d"), status=TagStatus.ERROR, quotes=("old",))
        client = FakeClient({"A": ProviderError()})

        outcome = _orchestrator(client, sleep).start_analysis(DOCUMENT, [tag], CONFIG)

        assert outcome.tags[0].status is TagStatus.ERROR
        assert outcome.tags[0].quotes == ("old",)


class TestSelectionAndBackfill:
    def test_skipped_tags_untouched(self, sleep: MagicMock) -> None:
        done = replace(create_tag("done", "d"), status=TagStatus.COMPLETED, quotes=("q",))
        fresh = create_tag("fresh", "d")
        client = FakeClient({"fresh": ["new"]})

        outcome = _orchestrator(client, sleep).start_analysis(DOCUMENT, [done, fresh], CONFIG)

        assert outcome.tags[0] is done
        assert outcome.analyzed == 1
        assert outcome.skipped == 1
        assert outcome.progress.total_tags == 1
        assert client.calls == ["fresh"]

    def test_legacy_tags_backfilled(self, sleep: MagicMock) -> None:
        legacy = Tag(id="1", name="Color", description="mentions of color")
        client = FakeClient({"Color": ["The sky is blue."]})

        outcome = _orchestrator(client, sleep).start_analysis(DOCUMENT, [legacy], CONFIG)

        assert outcome.tags[0].fingerprint == fingerprint("Color", "mentions of color")
        assert legacy.fingerprint is None

    def test_input_collection_not_mutated(self, sleep: MagicMock) -> None:
        tags = [create_tag("A", "d")]
        client = FakeClient({"A": ["q"]})

        _orchestrator(client, sleep).start_analysis(DOCUMENT, tags, CONFIG)

        assert tags[0].status is TagStatus.IDLE


class TestProgressAndThrottle:
    """Snapshot ordering and the fixed inter-call delay."""

    def test_snapshots(self, sleep: MagicMock) -> None:
        tags = [create_tag("one", "d"), create_tag("two", "d")]
        client = FakeClient({"one": ["q"], "two": []})
        updates: List[AnalysisSnapshot] = []

        _orchestrator(client, sleep, on_update=updates.append).start_analysis(
            DOCUMENT, tags, CONFIG
        )

        # before/after each call, then the final snapshot
        assert len(updates) == 5
        assert [u.progress.current_tag_index for u in updates] == [1, 1, 2, 2, 2]
        assert all(u.progress.total_tags == 2 for u in updates)
        assert [u.progress.is_processing for u in updates] == [True, True, True, True, False]
        assert updates[0].tags[0].status is TagStatus.PROCESSING
        assert updates[0].tags[1].status is TagStatus.IDLE
        assert updates[1].tags[0].status is TagStatus.COMPLETED
        assert updates[2].tags[1].status is TagStatus.PROCESSING
        assert updates[4].tags[1].status is TagStatus.NO_RESULTS

    def test_snapshot_collections_are_new(self, sleep: MagicMock) -> None:
        tags = [create_tag("one", "d")]
        client = FakeClient({"one": ["q"]})
        updates: List[AnalysisSnapshot] = []

        _orchestrator(client, sleep, on_update=updates.append).start_analysis(
            DOCUMENT, tags, CONFIG
        )

        assert updates[0].tags is not updates[1].tags
        assert updates[0].tags[0].status is TagStatus.PROCESSING

    def test_delay_between_successful_calls(self, sleep: MagicMock) -> None:
        tags = [create_tag(name, "d") for name in ("a", "b", "c")]
        client = FakeClient({"a": ["q"], "b": ["q"], "c": ["q"]})

        AnalysisOrchestrator(lambda config: client, delay=1.0, sleep=sleep).start_analysis(
            DOCUMENT, tags, CONFIG
        )

        assert sleep.call_count == 2
        sleep.assert_called_with(1.0)

    def test_no_delay_after_failure(self, sleep: MagicMock) -> None:
        tags = [create_tag("a", "d"), create_tag("b", "d")]
        client = FakeClient({"a": ProviderError(), "b": ["q"]})

        _orchestrator(client, sleep).start_analysis(DOCUMENT, tags, CONFIG)

        sleep.assert_not_called()

    def test_has_error_reset_between_runs(self, sleep: MagicMock) -> None:
        tag = create_tag("a", "d")
        client = FakeClient({"a": ProviderError()})
        orchestrator = _orchestrator(client, sleep)

        first = orchestrator.start_analysis(DOCUMENT, [tag], CONFIG)
        client.replies["a"] = ["q"]
        second = orchestrator.start_analysis(DOCUMENT, first.tags, CONFIG)

        assert first.progress.has_error is True
        assert second.progress.has_error is False
        assert second.tags[0].status is TagStatus.COMPLETED

    def test_unexpected_error_clears_processing(self, sleep: MagicMock) -> None:
        client = FakeClient({"a": RuntimeError("bug")})
        orchestrator = _orchestrator(client, sleep)

        with pytest.raises(RuntimeError):
            orchestrator.start_analysis(DOCUMENT, [create_tag("a", "d")], CONFIG)

        assert orchestrator.progress.is_processing is False
