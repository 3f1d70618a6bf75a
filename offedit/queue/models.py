from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from ..errors import UnparsableRecordError
from ..mutation.models import Mutation, Operation


@dataclass(frozen=True)
class InsertResult:
    """
    Result of adding a record to the pending queue.

    duplicate=True means an identical record was already queued and nothing
    was written; success is then False.
    """
    success: bool
    duplicate: bool = False


@dataclass(frozen=True)
class QueueEntry:
    """A queued record: the exact stored payload and its parsed mutation."""
    payload: str
    mutation: Mutation


@dataclass(frozen=True)
class OutcomeRecord:
    layer_id: str
    remote_id: Optional[str]
    operation: Operation
    succeeded: bool
    geometry_type: str
    timestamp: datetime
    error: Optional[str] = None

    def to_payload(self) -> str:
        body: dict[str, Any] = {
            "layerId": self.layer_id,
            "id": self.remote_id,
            "type": self.operation.value,
            "success": self.succeeded,
            "geometryType": self.geometry_type,
            "date": self.timestamp.isoformat(),
            "error": self.error,
        }
        return json.dumps(body, sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_payload(cls, payload: str) -> "OutcomeRecord":
        try:
            body = json.loads(payload)
            remote_id = body.get("id")
            timestamp = datetime.fromisoformat(body["date"])
            if timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
            return cls(
                layer_id=str(body["layerId"]),
                remote_id=None if remote_id is None else str(remote_id),
                operation=Operation(body["type"]),
                succeeded=bool(body["success"]),
                geometry_type=str(body["geometryType"]),
                timestamp=timestamp,
                error=body.get("error"),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise UnparsableRecordError(f"invalid outcome record: {exc}") from exc
