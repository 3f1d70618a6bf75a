from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional, Sequence

from ..config import SyncConfig
from ..errors import BackendSubmissionError, OffeditError, StoreError, StoreWriteError
from ..events import ConnectivityChanged, EventBus, OutcomeNotRecorded, SubmissionFailed
from ..queue.models import QueueEntry
from ..queue.outcomes import OutcomeIndex
from ..queue.pending import PendingQueue
from .backend import EditResult, FeatureLayer, FeatureStore, dispatch, outcome_from_results
from .metrics import observe_replay_failure, observe_replay_submission

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[OffeditError], None]


class SyncState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    REPLAYING = "replaying"


class SyncEngine:
    """
    Replays the pending queue against the feature backend when the network
    comes back.

    Flow on an "up" transition with a non-empty queue:
    1) take one snapshot of the queue
    2) submit every entry, in queue order, without waiting for completions
    3) return to IDLE

    Each completion appends an outcome and then removes the entry from the
    queue by content. A call that errors leaves its entry queued; it is
    submitted again on the next "up" transition. There are no automatic
    retries and no cancellation.

    With SyncConfig.strict_success=False (the legacy behavior) a completed
    call removes its entry even if the item result reports failure. With
    strict_success=True only a successful item result removes it.

    Failures never stop a replay. Each one is logged, published as an event
    and passed to on_error:
    - BackendSubmissionError when a call errors (the entry stays queued)
    - StoreWriteError when a completed call's outcome cannot be stored (the
      entry is still removed, since the backend already applied it; the
      outcome travels in the OutcomeNotRecorded event)

    An on_error handler that raises is logged and ignored.

    Usage:
        engine = SyncEngine(queue, outcomes, feature_store)
        monitor.subscribe(engine.on_connectivity)
    """

    def __init__(
        self,
        queue: PendingQueue,
        outcomes: OutcomeIndex,
        feature_store: FeatureStore,
        config: Optional[SyncConfig] = None,
        events: Optional[EventBus] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        self.queue = queue
        self.outcomes = outcomes
        self.feature_store = feature_store
        self.config = config or SyncConfig()
        self.events = events or EventBus()
        self.on_error = on_error
        self.state = SyncState.IDLE
        self._online: Optional[bool] = None
        self._in_flight: set[str] = set()

    @property
    def in_flight(self) -> int:
        """Submissions issued whose callbacks have not fired yet."""
        return len(self._in_flight)

    def arm(self) -> None:
        """Wait for the next "up" transition. Arming twice is a no-op."""
        if self.state == SyncState.IDLE:
            logger.info("Listening for connectivity to replay pending edits")
            self.state = SyncState.ARMED

    def on_connectivity(self, online: bool) -> None:
        """
        Connectivity callback. A repeated identical signal is ignored.
        """
        online = bool(online)
        if online == self._online:
            return
        self._online = online
        logger.info("Connectivity is %s", "up" if online else "down")
        self.events.publish(ConnectivityChanged(online=online))

        try:
            pending = not self.queue.is_empty()
        except StoreError as exc:
            logger.error("Cannot read pending queue after connectivity change: %s", exc)
            return

        if not pending:
            if self.state == SyncState.ARMED:
                logger.info("Pending queue is empty; nothing left to replay")
                self.state = SyncState.IDLE
            return
        if online:
            self.replay()
        else:
            self.arm()

    def replay(self) -> int:
        """
        Submit every queued mutation once.

        Entries whose layer cannot be resolved, and entries already in flight,
        are skipped and stay queued.

        Returns:
            Number of submissions issued
        """
        if self.state == SyncState.REPLAYING:
            return 0

        self.state = SyncState.REPLAYING
        submitted = 0
        try:
            snapshot = self.queue.entries()
            logger.info("Replaying %d pending edit(s)", len(snapshot))
            for entry in snapshot:
                if entry.payload in self._in_flight:
                    continue
                try:
                    layer = self.feature_store.resolve_layer(entry.mutation.layer_id)
                except Exception as exc:
                    self._fail(entry, exc)
                    continue
                if layer is None:
                    logger.warning(
                        "Layer %s is not available; %s stays queued",
                        entry.mutation.layer_id,
                        entry.mutation.operation.value,
                    )
                    continue
                submitted += 1
                try:
                    self._submit(layer, entry)
                except Exception as exc:
                    logger.error(
                        "Completion of %s on layer %s raised: %s",
                        entry.mutation.operation.value,
                        entry.mutation.layer_id,
                        exc,
                    )
        except StoreError as exc:
            logger.error("Cannot read pending queue for replay: %s", exc)
        finally:
            self.state = SyncState.IDLE
        return submitted

    def _submit(self, layer: FeatureLayer, entry: QueueEntry) -> None:
        mutation = entry.mutation
        decoded = self.queue.codec.to_decoded(mutation)

        def on_complete(results: Sequence[EditResult]) -> None:
            self._in_flight.discard(entry.payload)
            self._complete(entry, results)

        def on_error(exc: Exception) -> None:
            self._in_flight.discard(entry.payload)
            self._fail(entry, exc)

        self._in_flight.add(entry.payload)
        observe_replay_submission(mutation.operation.value)
        dispatch(layer, mutation.operation, decoded.feature, on_complete, on_error)

    def _complete(self, entry: QueueEntry, results: Sequence[EditResult]) -> None:
        outcome = outcome_from_results(entry.mutation, results)
        logger.info(
            "%s on layer %s completed: success=%s id=%s",
            outcome.operation.value,
            outcome.layer_id,
            outcome.succeeded,
            outcome.remote_id,
        )
        if not self.outcomes.append(outcome):
            error = StoreWriteError(
                f"outcome of {outcome.operation.value} on layer {outcome.layer_id} "
                f"(id={outcome.remote_id}, success={outcome.succeeded}) was not recorded"
            )
            self.events.publish(OutcomeNotRecorded(outcome=outcome, error=error))
            self._notify(error)

        if self.config.strict_success and not outcome.succeeded:
            logger.warning(
                "%s on layer %s reported failure (%s); keeping it queued",
                outcome.operation.value,
                outcome.layer_id,
                outcome.error,
            )
            return

        if not self.queue.remove_by_content(entry.payload):
            logger.warning(
                "Completed %s on layer %s was not removed from the pending queue",
                outcome.operation.value,
                outcome.layer_id,
            )

    def _fail(self, entry: QueueEntry, exc: Exception) -> None:
        mutation = entry.mutation
        if isinstance(exc, BackendSubmissionError):
            error = exc
        else:
            error = BackendSubmissionError(str(exc))
            error.__cause__ = exc

        logger.error(
            "Submitting %s on layer %s failed; it stays queued: %s",
            mutation.operation.value,
            mutation.layer_id,
            error,
        )
        observe_replay_failure(mutation.operation.value)
        self.events.publish(
            SubmissionFailed(
                layer_id=mutation.layer_id,
                operation=mutation.operation,
                error=error,
                payload=entry.payload,
            )
        )
        self._notify(error)

    def _notify(self, error: OffeditError) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(error)
        except Exception as exc:
            logger.error("on_error handler failed for %s: %s", type(error).__name__, exc)
