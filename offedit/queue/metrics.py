from __future__ import annotations

from ..metrics.registry import OUTCOMES_TOTAL, PENDING_MUTATIONS


def observe_outcome(operation: str, succeeded: bool) -> None:
    OUTCOMES_TOTAL.labels(operation=operation, succeeded=str(succeeded).lower()).inc()


def observe_queue_length(length: int) -> None:
    PENDING_MUTATIONS.set(length)
