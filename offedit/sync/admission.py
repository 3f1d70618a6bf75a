from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from ..config import StoreConfig
from ..connectivity import ConnectivityMonitor
from ..errors import (
    EncodingFailure,
    OffeditError,
    QuotaExceededError,
    QuotaNearFullError,
    StoreError,
    StoreWriteError,
)
from ..mutation.models import Feature, Operation
from ..queue.models import OutcomeRecord
from ..queue.pending import PendingQueue
from ..store.base import size_of
from ..store.framing import frame_record
from .backend import EditResult, FeatureStore, dispatch, outcome_from_error, outcome_from_results
from .engine import SyncEngine
from .metrics import observe_admission

logger = logging.getLogger(__name__)

SubmissionCallback = Callable[[OutcomeRecord], None]


class AdmissionStatus(str, Enum):
    QUEUED = "queued"
    DUPLICATE = "duplicate"
    SUBMITTED = "submitted"
    QUOTA_EXCEEDED = "quota_exceeded"
    QUOTA_NEAR_FULL = "quota_near_full"
    STORE_FAILED = "store_failed"
    LAYER_UNAVAILABLE = "layer_unavailable"


@dataclass(frozen=True)
class AdmissionResult:
    status: AdmissionStatus
    size_bytes: int
    occupancy_bytes: int
    attributes_dropped: bool = False
    error: Optional[OffeditError] = None

    @property
    def accepted(self) -> bool:
        return self.status in (AdmissionStatus.QUEUED, AdmissionStatus.SUBMITTED)

    @property
    def duplicate(self) -> bool:
        return self.status == AdmissionStatus.DUPLICATE


class AdmissionController:
    """
    Entry point for edits.

    Every edit is first checked against the storage budget. Offline edits are
    queued durably (deduplicated) and the sync engine is armed; online edits
    go straight to the backend and are neither queued nor deduplicated.
    """

    def __init__(
        self,
        queue: PendingQueue,
        feature_store: FeatureStore,
        connectivity: ConnectivityMonitor,
        engine: SyncEngine,
        config: StoreConfig,
    ) -> None:
        self.queue = queue
        self.feature_store = feature_store
        self.connectivity = connectivity
        self.engine = engine
        self.config = config

    def _result(self, status: AdmissionStatus, **kwargs) -> AdmissionResult:
        observe_admission(status.value)
        return AdmissionResult(status=status, **kwargs)

    def submit(
        self,
        feature: Feature,
        layer_id: str,
        operation: Operation,
        callback: Optional[SubmissionCallback] = None,
    ) -> AdmissionResult:
        """
        Admit one edit.

        Args:
            feature: Geometry and attributes to apply
            layer_id: Target layer in the feature backend
            operation: CREATE, UPDATE or DELETE
            callback: Receives the outcome of an online submission once the
                backend call completes or errors; unused for queued edits

        Returns:
            AdmissionResult describing what happened to the edit
        """
        operation = Operation(operation)
        layer_id = str(layer_id)
        codec = self.queue.codec
        mutation = codec.encode(feature, layer_id, operation)
        payload = codec.to_payload(mutation)
        size = size_of(frame_record(payload))
        dropped = feature.attributes is not None and mutation.attributes is None
        encoding_error = (
            EncodingFailure(f"attributes of {operation.value} on layer {layer_id} were dropped")
            if dropped
            else None
        )

        try:
            occupancy = self.queue.store.occupancy(self.config.owned_keys)
        except StoreError as exc:
            logger.error("Cannot measure storage occupancy: %s", exc)
            return self._result(
                AdmissionStatus.STORE_FAILED, size_bytes=size, occupancy_bytes=0, error=exc
            )

        budget = self.config.budget_bytes
        if occupancy > budget:
            logger.warning(
                "Storage is over its budget (%d > %d bytes); no more edits can be stored",
                occupancy,
                budget,
            )
            return self._result(
                AdmissionStatus.QUOTA_NEAR_FULL,
                size_bytes=size,
                occupancy_bytes=occupancy,
                error=QuotaNearFullError(f"{occupancy} bytes stored, budget is {budget}"),
            )
        if occupancy + size > budget:
            logger.warning(
                "Edit of %d bytes does not fit the remaining storage (%d of %d bytes used)",
                size,
                occupancy,
                budget,
            )
            return self._result(
                AdmissionStatus.QUOTA_EXCEEDED,
                size_bytes=size,
                occupancy_bytes=occupancy,
                error=QuotaExceededError(f"edit needs {size} bytes, {budget - occupancy} left"),
            )

        if not self.connectivity.is_online():
            inserted = self.queue.insert(payload)
            if inserted.duplicate:
                status = AdmissionStatus.DUPLICATE
                error = encoding_error
            elif inserted.success:
                status = AdmissionStatus.QUEUED
                error = encoding_error
            else:
                status = AdmissionStatus.STORE_FAILED
                error = StoreWriteError("pending queue write was rejected")
            if status != AdmissionStatus.STORE_FAILED:
                self.engine.arm()
            return self._result(
                status,
                size_bytes=size,
                occupancy_bytes=occupancy,
                attributes_dropped=dropped,
                error=error,
            )

        layer = self.feature_store.resolve_layer(layer_id)
        if layer is None:
            logger.warning("Layer %s is not available for %s", layer_id, operation.value)
            return self._result(
                AdmissionStatus.LAYER_UNAVAILABLE, size_bytes=size, occupancy_bytes=occupancy
            )

        def on_complete(results: Sequence[EditResult]) -> None:
            outcome = outcome_from_results(mutation, results)
            logger.info(
                "%s on layer %s: success=%s id=%s",
                operation.value,
                layer_id,
                outcome.succeeded,
                outcome.remote_id,
            )
            if callback is not None:
                callback(outcome)

        def on_error(exc: Exception) -> None:
            logger.error("%s on layer %s failed: %s", operation.value, layer_id, exc)
            if callback is not None:
                callback(outcome_from_error(mutation, exc))

        dispatch(layer, operation, feature, on_complete, on_error)
        return self._result(
            AdmissionStatus.SUBMITTED,
            size_bytes=size,
            occupancy_bytes=occupancy,
            attributes_dropped=dropped,
            error=encoding_error,
        )
