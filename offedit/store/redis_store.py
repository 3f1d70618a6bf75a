from __future__ import annotations

from collections.abc import Iterable

from redis import Redis
from redis.exceptions import RedisError

from ..errors import StoreReadError
from .base import RecordStore


class RedisRecordStore(RecordStore):
    """
    RecordStore over plain Redis strings (GET / SET / DEL / STRLEN).

    Only string commands are used, so the store behaves like any other flat
    key/value substrate: queue and log blobs are rewritten whole.

    Usage:
        store = RedisRecordStore(Redis.from_url("redis://localhost:6379/0"), prefix="device-7:")
    """

    backend = "redis"

    def __init__(self, redis: Redis, prefix: str = "") -> None:
        """
        Args:
            redis: Redis client instance (decode_responses may be either value)
            prefix: Namespace prepended to every key
        """
        self.redis = redis
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _read(self, key: str) -> str | None:
        raw = self.redis.get(self._key(key))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            return raw.decode("utf-8")
        return raw

    def _write(self, key: str, value: str) -> None:
        self.redis.set(self._key(key), value.encode("utf-8"))

    def _delete(self, key: str) -> None:
        self.redis.delete(self._key(key))

    def occupancy(self, keys: Iterable[str]) -> int:
        """Sum of STRLEN over the given keys (missing keys count as 0)."""
        keys = list(keys)
        if not keys:
            return 0
        try:
            pipe = self.redis.pipeline(transaction=False)
            for key in keys:
                pipe.strlen(self._key(key))
            return sum(int(n) for n in pipe.execute())
        except RedisError as exc:
            raise StoreReadError(f"occupancy query failed: {exc}") from exc
