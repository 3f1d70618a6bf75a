from __future__ import annotations

from .models import InsertResult, OutcomeRecord, QueueEntry
from .outcomes import OutcomeIndex
from .pending import PendingQueue, PendingQueueView

__all__ = [
    "InsertResult",
    "OutcomeRecord",
    "QueueEntry",
    "OutcomeIndex",
    "PendingQueue",
    "PendingQueueView",
]
