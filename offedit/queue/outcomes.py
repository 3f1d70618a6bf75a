from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any, Optional

from ..config import StoreConfig
from ..errors import StoreError, UnparsableRecordError
from ..events import EventBus, OutcomeLogged
from ..store.base import RecordStore
from ..store.framing import append_record, split_records
from .metrics import observe_outcome
from .models import OutcomeRecord

logger = logging.getLogger(__name__)


class OutcomeIndex:
    """
    Append-only log of replay results.

    Records are never changed or compacted; lookups scan the whole log, which
    is bounded by the storage budget.
    """

    def __init__(
        self,
        store: RecordStore,
        config: StoreConfig,
        events: Optional[EventBus] = None,
    ) -> None:
        self.store = store
        self.config = config
        self.events = events or EventBus()

    @property
    def key(self) -> str:
        return self.config.outcome_key

    def append(self, outcome: OutcomeRecord) -> bool:
        """
        Add an outcome to the end of the log and publish OutcomeLogged.

        Returns False when the store rejects the write.
        """
        try:
            blob = self.store.get(self.key)
            self.store.set(self.key, append_record(blob, outcome.to_payload()))
        except StoreError as exc:
            logger.error("Outcome index write failed: %s", exc)
            return False

        observe_outcome(outcome.operation.value, outcome.succeeded)
        self.events.publish(OutcomeLogged(outcome=outcome))
        return True

    def __iter__(self) -> Iterator[OutcomeRecord]:
        for payload in split_records(self.store.get(self.key)):
            try:
                yield OutcomeRecord.from_payload(payload)
            except UnparsableRecordError as exc:
                logger.warning("Skipping unparsable outcome record: %s", exc)

    def list_all(self) -> list[OutcomeRecord]:
        return list(self)

    def find(self, remote_id: Any) -> Optional[OutcomeRecord]:
        """Return the first outcome carrying remote_id (compared as strings)."""
        wanted = str(remote_id)
        for outcome in self:
            if outcome.remote_id is not None and outcome.remote_id == wanted:
                return outcome
        return None

    def contains(self, remote_id: Any) -> bool:
        return self.find(remote_id) is not None

    def clear(self) -> bool:
        logger.info("Clearing outcome index")
        try:
            self.store.remove(self.key)
        except StoreError as exc:
            logger.error("Outcome index removal failed: %s", exc)
            return False
        return True

    def __len__(self) -> int:
        return sum(1 for _ in self)
