from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any, Mapping, Optional

from ..config import StoreConfig
from ..errors import StoreError, UnparsableRecordError
from ..events import DuplicateDetected, EventBus
from ..mutation.codec import MutationCodec
from ..mutation.models import DecodedMutation, Feature, Operation
from ..store.base import RecordStore
from ..store.framing import append_record, join_records, split_records
from .metrics import observe_queue_length
from .models import InsertResult, QueueEntry

logger = logging.getLogger(__name__)


class PendingQueueView:
    """
    Lazy view over the queued mutations.

    Every iteration re-reads the store, so the view can be iterated again
    after the queue changes.
    """

    def __init__(self, queue: "PendingQueue") -> None:
        self._queue = queue

    def __iter__(self) -> Iterator[DecodedMutation]:
        for entry in self._queue.entries():
            yield self._queue.codec.to_decoded(entry.mutation)


class PendingQueue:
    """
    Owner of the pending-mutation blob.

    The substrate only offers whole-value reads and writes, so every change is
    a read of the full blob followed by a full overwrite. A failed write
    leaves the previously stored blob untouched.

    Not safe for concurrent writers: two processes sharing one store race on
    the read-modify-write cycle.
    """

    def __init__(
        self,
        store: RecordStore,
        config: StoreConfig,
        codec: Optional[MutationCodec] = None,
        events: Optional[EventBus] = None,
    ) -> None:
        self.store = store
        self.config = config
        self.codec = codec or MutationCodec()
        self.events = events or EventBus()

    @property
    def key(self) -> str:
        return self.config.pending_key

    def _parse(self, payload: str) -> Optional[QueueEntry]:
        try:
            return QueueEntry(payload, self.codec.from_payload(payload))
        except UnparsableRecordError as exc:
            logger.warning("Unparsable record in pending queue: %s", exc)
            return None

    def _rewrite(self, payloads: list[str]) -> bool:
        try:
            if payloads:
                self.store.set(self.key, join_records(payloads))
            else:
                self.store.remove(self.key)
        except StoreError as exc:
            logger.error("Pending queue rewrite failed: %s", exc)
            return False
        observe_queue_length(len(payloads))
        return True

    def insert(self, payload: str) -> InsertResult:
        """
        Append a record unless an identical one is already queued.

        Raises:
            UnparsableRecordError: If payload is not a valid mutation record
        """
        self.codec.from_payload(payload)

        try:
            blob = self.store.get(self.key)
        except StoreError as exc:
            logger.error("Pending queue read failed: %s", exc)
            return InsertResult(success=False)

        existing = split_records(blob)
        if payload in existing:
            logger.info("Duplicate edit skipped")
            self.events.publish(DuplicateDetected(payload=payload))
            return InsertResult(success=False, duplicate=True)

        try:
            self.store.set(self.key, append_record(blob, payload))
        except StoreError as exc:
            logger.error("Pending queue write failed: %s", exc)
            return InsertResult(success=False)

        observe_queue_length(len(existing) + 1)
        return InsertResult(success=True)

    def enqueue(self, feature: Feature, layer_id: str, operation: Operation) -> InsertResult:
        return self.insert(self.codec.encode_record(feature, layer_id, operation))

    def _remove_first(self, matches) -> bool:
        try:
            payloads = split_records(self.store.get(self.key))
        except StoreError as exc:
            logger.error("Pending queue read failed: %s", exc)
            return False

        kept: list[str] = []
        removed = False
        for payload in payloads:
            entry = self._parse(payload)
            if entry is None:
                continue
            if not removed and matches(entry):
                removed = True
                continue
            kept.append(payload)

        if not removed:
            return False
        return self._rewrite(kept)

    def remove_by_content(self, payload: str) -> bool:
        """Remove the first queued record identical to payload."""
        return self._remove_first(lambda entry: entry.payload == payload)

    def remove_by_layer_and_remote_id(self, layer_id: str, remote_id: Any) -> bool:
        """
        Remove the first queued record on layer_id whose object-id attribute
        equals remote_id (compared as strings).
        """
        layer_id = str(layer_id)
        wanted = str(remote_id)

        def matches(entry: QueueEntry) -> bool:
            if entry.mutation.layer_id != layer_id:
                return False
            attributes = self.codec.attributes_of(entry.mutation)
            found = _lookup_field(attributes, self.config.object_id_field)
            return found is not None and str(found) == wanted

        return self._remove_first(matches)

    def entries(self) -> list[QueueEntry]:
        """Snapshot of the parseable queued records, in queue order."""
        parsed = (self._parse(p) for p in split_records(self.store.get(self.key)))
        return [entry for entry in parsed if entry is not None]

    def list_all(self) -> PendingQueueView:
        return PendingQueueView(self)

    def clear(self) -> bool:
        """Delete every queued mutation."""
        logger.info("Clearing pending queue")
        return self._rewrite([])

    def is_empty(self) -> bool:
        return len(self) == 0

    def __len__(self) -> int:
        return len(self.entries())


def _lookup_field(attributes: Optional[Mapping[str, Any]], name: str) -> Any:
    if not attributes:
        return None
    if name in attributes:
        return attributes[name]
    lowered = name.lower()
    for key, value in attributes.items():
        if isinstance(key, str) and key.lower() == lowered:
            return value
    return None
