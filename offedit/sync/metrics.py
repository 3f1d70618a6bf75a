from __future__ import annotations

from ..metrics.registry import (
    ADMISSIONS_TOTAL,
    REPLAY_FAILURES_TOTAL,
    REPLAY_SUBMISSIONS_TOTAL,
)


def observe_admission(status: str) -> None:
    ADMISSIONS_TOTAL.labels(status=status).inc()


def observe_replay_submission(operation: str) -> None:
    REPLAY_SUBMISSIONS_TOTAL.labels(operation=operation).inc()


def observe_replay_failure(operation: str) -> None:
    REPLAY_FAILURES_TOTAL.labels(operation=operation).inc()
