"""
Contracts for the remote feature backend.

Backend calls are asynchronous: each call returns immediately and later
invokes exactly one of its callbacks. ``on_complete`` receives the per-item
results of the call; ``on_error`` receives the exception when the call itself
failed (network or remote error). Timeouts are the backend's concern.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, Sequence

from ..errors import BackendSubmissionError
from ..mutation.models import Feature, Mutation, Operation
from ..queue.models import OutcomeRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditResult:
    """Per-item result reported by the backend."""
    success: bool
    assigned_id: Optional[str] = None
    error: Optional[str] = None


CompletionCallback = Callable[[Sequence[EditResult]], None]
ErrorCallback = Callable[[Exception], None]


class FeatureLayer(Protocol):
    layer_id: str

    def create(self, feature: Feature, on_complete: CompletionCallback, on_error: ErrorCallback) -> None:
        ...

    def update(self, feature: Feature, on_complete: CompletionCallback, on_error: ErrorCallback) -> None:
        ...

    def delete(self, feature: Feature, on_complete: CompletionCallback, on_error: ErrorCallback) -> None:
        ...


class FeatureStore(Protocol):
    def resolve_layer(self, layer_id: str) -> Optional[FeatureLayer]:
        """Return the live layer handle, or None when the layer is unknown."""
        ...


def dispatch(
    layer: FeatureLayer,
    operation: Operation,
    feature: Feature,
    on_complete: CompletionCallback,
    on_error: ErrorCallback,
) -> None:
    """
    Issue one backend call for operation.

    An exception raised by the layer before either callback fired is reported
    through on_error as a BackendSubmissionError.
    """
    settled = False

    def complete(results: Sequence[EditResult]) -> None:
        nonlocal settled
        settled = True
        on_complete(list(results or []))

    def fail(exc: Exception) -> None:
        nonlocal settled
        settled = True
        on_error(exc)

    submit = {
        Operation.CREATE: layer.create,
        Operation.UPDATE: layer.update,
        Operation.DELETE: layer.delete,
    }[Operation(operation)]

    try:
        submit(feature, complete, fail)
    except Exception as exc:
        if settled:
            raise
        error = BackendSubmissionError(
            f"{Operation(operation).value} on layer {getattr(layer, 'layer_id', '?')} failed: {exc}"
        )
        error.__cause__ = exc
        fail(error)


def outcome_from_results(
    mutation: Mutation,
    results: Sequence[EditResult],
    timestamp: Optional[datetime] = None,
) -> OutcomeRecord:
    """Build the outcome of a completed call from its first item result."""
    first = results[0] if results else None
    if first is None:
        logger.warning(
            "Backend returned no item results for %s on layer %s",
            mutation.operation.value,
            mutation.layer_id,
        )
    return OutcomeRecord(
        layer_id=mutation.layer_id,
        remote_id=None if first is None or first.assigned_id is None else str(first.assigned_id),
        operation=mutation.operation,
        succeeded=bool(first and first.success),
        geometry_type=mutation.geometry.type,
        timestamp=timestamp or datetime.now(timezone.utc),
        error=None if first is None else first.error,
    )


def outcome_from_error(
    mutation: Mutation,
    error: Exception,
    timestamp: Optional[datetime] = None,
) -> OutcomeRecord:
    return OutcomeRecord(
        layer_id=mutation.layer_id,
        remote_id=None,
        operation=mutation.operation,
        succeeded=False,
        geometry_type=mutation.geometry.type,
        timestamp=timestamp or datetime.now(timezone.utc),
        error=str(error),
    )
