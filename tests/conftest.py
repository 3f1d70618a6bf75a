from __future__ import annotations

from collections.abc import Callable
from typing import Any, Optional

import pytest

from offedit.config import StoreConfig, SyncConfig
from offedit.connectivity import ManualConnectivityMonitor
from offedit.events import EventBus
from offedit.mutation import Feature, MutationCodec, Operation, Point, Polygon, Polyline
from offedit.queue import OutcomeIndex, PendingQueue
from offedit.store import MemoryRecordStore
from offedit.sync import AdmissionController, EditResult, SyncEngine


class FakeLayer:
    """
    Feature layer double.

    Modes:
    - "success": completes at once with a successful item result
    - "item_failure": completes at once, item result reports failure
    - "error": the call itself fails through on_error
    - "raise": the call raises before any callback
    - "manual": calls are parked until complete_next()/fail_next()
    """

    def __init__(self, layer_id: str, mode: str = "success", first_id: int = 101) -> None:
        self.layer_id = layer_id
        self.mode = mode
        self._next_id = first_id
        self.calls: list[tuple[str, Feature]] = []
        self.parked: list[tuple[str, Feature, Callable, Callable]] = []

    def _assign_id(self) -> str:
        assigned = str(self._next_id)
        self._next_id += 1
        return assigned

    def _call(self, op: str, feature: Feature, on_complete: Callable, on_error: Callable) -> None:
        self.calls.append((op, feature))
        if self.mode == "manual":
            self.parked.append((op, feature, on_complete, on_error))
        elif self.mode == "error":
            on_error(ConnectionError("network unreachable"))
        elif self.mode == "raise":
            raise ConnectionError("socket closed")
        elif self.mode == "item_failure":
            on_complete([EditResult(success=False, assigned_id=None, error="rejected by server")])
        else:
            on_complete([EditResult(success=True, assigned_id=self._assign_id())])

    def create(self, feature: Feature, on_complete: Callable, on_error: Callable) -> None:
        self._call("add", feature, on_complete, on_error)

    def update(self, feature: Feature, on_complete: Callable, on_error: Callable) -> None:
        self._call("update", feature, on_complete, on_error)

    def delete(self, feature: Feature, on_complete: Callable, on_error: Callable) -> None:
        self._call("delete", feature, on_complete, on_error)

    def complete_at(self, index: int, success: bool = True) -> None:
        _, _, on_complete, _ = self.parked.pop(index)
        on_complete([EditResult(success=success, assigned_id=self._assign_id() if success else None)])

    def fail_at(self, index: int) -> None:
        _, _, _, on_error = self.parked.pop(index)
        on_error(TimeoutError("request timed out"))


class FakeFeatureStore:
    def __init__(self) -> None:
        self.layers: dict[str, FakeLayer] = {}

    def add_layer(self, layer_id: str, **kwargs: Any) -> FakeLayer:
        layer = FakeLayer(layer_id, **kwargs)
        self.layers[layer_id] = layer
        return layer

    def resolve_layer(self, layer_id: str) -> Optional[FakeLayer]:
        return self.layers.get(layer_id)


@pytest.fixture
def store_config() -> StoreConfig:
    return StoreConfig(budget_mb=5)


@pytest.fixture
def memory_store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def codec() -> MutationCodec:
    return MutationCodec()


@pytest.fixture
def pending_queue(
    memory_store: MemoryRecordStore,
    store_config: StoreConfig,
    codec: MutationCodec,
    events: EventBus,
) -> PendingQueue:
    return PendingQueue(memory_store, store_config, codec, events)


@pytest.fixture
def outcome_index(
    memory_store: MemoryRecordStore, store_config: StoreConfig, events: EventBus
) -> OutcomeIndex:
    return OutcomeIndex(memory_store, store_config, events)


@pytest.fixture
def feature_store() -> FakeFeatureStore:
    return FakeFeatureStore()


@pytest.fixture
def monitor() -> ManualConnectivityMonitor:
    return ManualConnectivityMonitor(online=False)


@pytest.fixture
def sync_errors() -> list:
    return []


@pytest.fixture
def engine_factory(
    pending_queue: PendingQueue,
    outcome_index: OutcomeIndex,
    feature_store: FakeFeatureStore,
    events: EventBus,
    sync_errors: list,
) -> Callable[..., SyncEngine]:
    """
    Factory fixture for sync engines sharing the test's queue and index.

    Usage:
        engine = engine_factory(strict_success=True)
    """
    def _create(strict_success: bool = False) -> SyncEngine:
        return SyncEngine(
            pending_queue,
            outcome_index,
            feature_store,
            config=SyncConfig(strict_success=strict_success),
            events=events,
            on_error=sync_errors.append,
        )

    return _create


@pytest.fixture
def engine(engine_factory: Callable[..., SyncEngine]) -> SyncEngine:
    return engine_factory()


@pytest.fixture
def admission(
    pending_queue: PendingQueue,
    feature_store: FakeFeatureStore,
    monitor: ManualConnectivityMonitor,
    engine: SyncEngine,
    store_config: StoreConfig,
) -> AdmissionController:
    return AdmissionController(pending_queue, feature_store, monitor, engine, store_config)


@pytest.fixture
def point_feature() -> Feature:
    return Feature(Point(-122.41, 37.77, 4326), {"objectid": 7, "name": "hydrant"})


@pytest.fixture
def polyline_feature() -> Feature:
    return Feature(
        Polyline([[(0, 0), (1, 1), (2, 1)], [(5, 5), (6, 7)]], 102100),
        {"objectid": 8, "kind": "pipe"},
    )


@pytest.fixture
def polygon_feature() -> Feature:
    return Feature(
        Polygon([[(0, 0), (0, 4), (4, 4), (4, 0), (0, 0)]], 102100),
        {"objectid": 9, "zone": "R1"},
    )


@pytest.fixture
def point_payload(codec: MutationCodec, point_feature: Feature) -> str:
    return codec.encode_record(point_feature, "parcels", Operation.CREATE)
