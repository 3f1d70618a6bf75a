from __future__ import annotations

import os
import uuid
from collections.abc import Iterator

import pytest
from redis import Redis
from redis.exceptions import RedisError

from offedit.errors import StoreReadError, StoreWriteError
from offedit.store import RedisRecordStore

DEFAULT_TEST_REDIS_URL = "redis://127.0.0.1:6379/0"


@pytest.fixture(scope="module")
def redis_client() -> Iterator[Redis]:
    """
    Redis client for store tests.

    Set OFFEDIT_TEST_REDIS_URL to point at a server; the tests are skipped
    when none is reachable.
    """
    url = os.environ.get("OFFEDIT_TEST_REDIS_URL", DEFAULT_TEST_REDIS_URL)
    client = Redis.from_url(url, decode_responses=False, socket_connect_timeout=0.5)
    try:
        client.ping()
    except RedisError as exc:
        client.close()
        pytest.skip(f"Redis is not reachable at {url!r}: {exc}")

    yield client
    client.close()


@pytest.fixture
def redis_store(redis_client: Redis) -> Iterator[RedisRecordStore]:
    prefix = f"offedit-test-{uuid.uuid4().hex[:10]}:"
    yield RedisRecordStore(redis_client, prefix=prefix)

    for key in redis_client.scan_iter(match=f"{prefix}*"):
        redis_client.delete(key)


class TestRedisRecordStore:
    """Tests for RedisRecordStore against a live server."""

    def test_get_set_remove(self, redis_store: RedisRecordStore) -> None:
        assert redis_store.get("k") is None

        redis_store.set("k", "välue")
        assert redis_store.get("k") == "välue"

        redis_store.remove("k")
        assert redis_store.get("k") is None

    def test_keys_are_prefixed(self, redis_client: Redis, redis_store: RedisRecordStore) -> None:
        redis_store.set("k", "v")

        assert redis_client.get(f"{redis_store.prefix}k") == b"v"

    def test_occupancy_uses_strlen(self, redis_store: RedisRecordStore) -> None:
        redis_store.set("a", "abc")
        redis_store.set("b", "é")

        assert redis_store.occupancy(["a", "b", "missing"]) == 5
        assert redis_store.occupancy([]) == 0


class TestRedisErrors:
    """Tests for error wrapping with an unreachable server."""

    @pytest.fixture
    def dead_store(self) -> Iterator[RedisRecordStore]:
        client = Redis(host="127.0.0.1", port=1, socket_connect_timeout=0.1)
        yield RedisRecordStore(client)
        client.close()

    def test_write_raises_store_write_error(self, dead_store: RedisRecordStore) -> None:
        with pytest.raises(StoreWriteError):
            dead_store.set("k", "v")

    def test_read_raises_store_read_error(self, dead_store: RedisRecordStore) -> None:
        with pytest.raises(StoreReadError):
            dead_store.get("k")

    def test_occupancy_raises_store_read_error(self, dead_store: RedisRecordStore) -> None:
        with pytest.raises(StoreReadError):
            dead_store.occupancy(["k"])
