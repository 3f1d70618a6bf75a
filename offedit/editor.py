from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .config import BYTES_PER_MB, StoreConfig, SyncConfig
from .connectivity import ConnectivityMonitor
from .errors import CollaboratorMissingError, OffeditError
from .events import EventBus
from .mutation.codec import AttributeCodec, MutationCodec
from .mutation.models import Feature, Operation
from .queue.models import OutcomeRecord
from .queue.outcomes import OutcomeIndex
from .queue.pending import PendingQueue, PendingQueueView
from .store.base import RecordStore
from .sync.admission import AdmissionController, AdmissionResult, SubmissionCallback
from .sync.backend import FeatureStore
from .sync.engine import SyncEngine

logger = logging.getLogger(__name__)


class OfflineEditor:
    """
    Wires the offline edit components together.

    Initialization is explicit:
    1) construction validates that every required collaborator is present
    2) start() subscribes to the connectivity monitor (once) and resumes any
       edits left queued by a previous process: replayed at once when
       online, or left armed for the next "up" transition when offline

    Usage:
        editor = OfflineEditor(
            record_store=RedisRecordStore(redis),
            feature_store=my_backend,
            connectivity=monitor,
        )
        editor.start()
        result = editor.apply_edits(feature, "parcels", Operation.CREATE)
    """

    REQUIRED_COLLABORATORS = ("record_store", "feature_store", "connectivity")

    def __init__(
        self,
        record_store: RecordStore,
        feature_store: FeatureStore,
        connectivity: ConnectivityMonitor,
        store_config: Optional[StoreConfig] = None,
        sync_config: Optional[SyncConfig] = None,
        attribute_codec: Optional[AttributeCodec] = None,
        on_error: Optional[Callable[[OffeditError], None]] = None,
    ) -> None:
        supplied = {
            "record_store": record_store,
            "feature_store": feature_store,
            "connectivity": connectivity,
        }
        missing = [name for name in self.REQUIRED_COLLABORATORS if supplied[name] is None]
        if missing:
            raise CollaboratorMissingError(f"missing required collaborators: {', '.join(missing)}")

        self.store_config = store_config or StoreConfig()
        self.record_store = record_store
        self.feature_store = feature_store
        self.connectivity = connectivity
        self.events = EventBus()

        codec = MutationCodec(attribute_codec)
        self.queue = PendingQueue(record_store, self.store_config, codec, self.events)
        self.outcomes = OutcomeIndex(record_store, self.store_config, self.events)
        self.engine = SyncEngine(
            self.queue,
            self.outcomes,
            feature_store,
            config=sync_config,
            events=self.events,
            on_error=on_error,
        )
        self.admission = AdmissionController(
            self.queue, feature_store, connectivity, self.engine, self.store_config
        )
        self._started = False

    def start(self) -> None:
        if self._started:
            return
        self.connectivity.subscribe(self.engine.on_connectivity)
        self._started = True
        logger.info("Offline editor is ready")
        self.engine.on_connectivity(self.connectivity.is_online())

    def apply_edits(
        self,
        feature: Feature,
        layer_id: str,
        operation: Operation,
        callback: Optional[SubmissionCallback] = None,
    ) -> AdmissionResult:
        return self.admission.submit(feature, layer_id, operation, callback)

    def is_online(self) -> bool:
        return self.connectivity.is_online()

    def pending(self) -> PendingQueueView:
        return self.queue.list_all()

    def outcome_log(self) -> list[OutcomeRecord]:
        return self.outcomes.list_all()

    def find_outcome(self, remote_id: Any) -> Optional[OutcomeRecord]:
        return self.outcomes.find(remote_id)

    def delete_pending(self, layer_id: str, remote_id: Any) -> bool:
        return self.queue.remove_by_layer_and_remote_id(layer_id, remote_id)

    def storage_used_mb(self) -> float:
        used = self.record_store.occupancy(self.store_config.owned_keys)
        return round(used / BYTES_PER_MB, 4)

    def subscribe(self, event_type, handler) -> None:
        self.events.subscribe(event_type, handler)

    def reset(self) -> bool:
        """Delete the pending queue and the outcome index."""
        return self.queue.clear() and self.outcomes.clear()
