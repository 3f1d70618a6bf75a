from __future__ import annotations

from typing import Optional

from ..errors import StoreWriteError
from .base import RecordStore, size_of


class MemoryRecordStore(RecordStore):
    """
    Process-local RecordStore.

    Nothing survives the process; use it for tests and for hosts that supply
    their own durability. ``capacity_bytes`` emulates a substrate-level quota
    (such as a browser's ~5MB local storage) that is independent of the
    logical storage budget.
    """

    backend = "memory"

    def __init__(self, capacity_bytes: Optional[int] = None) -> None:
        self.capacity_bytes = capacity_bytes
        self._data: dict[str, str] = {}

    def _read(self, key: str) -> str | None:
        return self._data.get(key)

    def _write(self, key: str, value: str) -> None:
        if self.capacity_bytes is not None:
            used = sum(size_of(v) for k, v in self._data.items() if k != key)
            if used + size_of(value) > self.capacity_bytes:
                raise StoreWriteError(
                    f"substrate quota exceeded writing {key!r} "
                    f"({used + size_of(value)} > {self.capacity_bytes} bytes)"
                )
        self._data[key] = value

    def _delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)
