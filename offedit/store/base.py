from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Iterable

from ..errors import StoreError, StoreReadError, StoreWriteError
from .metrics import observe_store_write


def size_of(value: str | None) -> int:
    """Bytes a string value occupies once persisted (UTF-8)."""
    if not value:
        return 0
    return len(value.encode("utf-8"))


class RecordStore(ABC):
    """
    Abstract base for the flat key/string substrate.

    Backends only implement raw access; this base adds metrics and error
    wrapping. Writes that the substrate rejects raise StoreWriteError, reads
    that fail raise StoreReadError. A store offers no transactions: callers
    needing list semantics rebuild and overwrite the whole value.
    """

    backend: str = "abstract"

    @abstractmethod
    def _read(self, key: str) -> str | None:
        """Return the stored string, or None when the key is absent."""
        ...

    @abstractmethod
    def _write(self, key: str, value: str) -> None:
        """Overwrite the value stored under key."""
        ...

    @abstractmethod
    def _delete(self, key: str) -> None:
        """Delete key; deleting an absent key is not an error."""
        ...

    def get(self, key: str) -> str | None:
        """
        Return the value under key, or None when absent.

        Raises:
            StoreReadError: If the substrate cannot be read
        """
        try:
            return self._read(key)
        except StoreError:
            raise
        except Exception as exc:
            raise StoreReadError(f"read of {key!r} failed: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        """
        Overwrite the value under key.

        Raises:
            StoreWriteError: If the substrate rejects the write
        """
        start_time = time.monotonic()
        status = "success"
        try:
            self._write(key, value)
        except StoreWriteError:
            status = "error"
            raise
        except Exception as exc:
            status = "error"
            raise StoreWriteError(f"write to {key!r} failed: {exc}") from exc
        finally:
            observe_store_write(self.backend, status, time.monotonic() - start_time)

    def remove(self, key: str) -> None:
        """
        Delete key.

        Raises:
            StoreWriteError: If the substrate rejects the removal
        """
        try:
            self._delete(key)
        except StoreWriteError:
            raise
        except Exception as exc:
            raise StoreWriteError(f"removal of {key!r} failed: {exc}") from exc

    def occupancy(self, keys: Iterable[str]) -> int:
        """Total bytes stored under the given keys."""
        return sum(size_of(self.get(key)) for key in keys)
