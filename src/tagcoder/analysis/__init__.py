"""Analysis orchestration."""

from tagcoder.analysis.orchestrator import (
    AnalysisNotice,
    AnalysisOrchestrator,
    AnalysisOutcome,
    AnalysisSnapshot,
    NoticeKind,
    RunStatus,
)

__all__ = [
    "AnalysisNotice",
    "AnalysisOrchestrator",
    "AnalysisOutcome",
    "AnalysisSnapshot",
    "NoticeKind",
    "RunStatus",
]
