from __future__ import annotations

import pytest

from offedit import (
    AdmissionStatus,
    Feature,
    ManualConnectivityMonitor,
    OfflineEditor,
    Operation,
    Point,
    StoreConfig,
)
from offedit.config import BYTES_PER_MB
from offedit.errors import CollaboratorMissingError
from offedit.events import DuplicateDetected
from offedit.store import MemoryRecordStore
from offedit.sync.engine import SyncState


@pytest.fixture
def editor(memory_store: MemoryRecordStore, feature_store, monitor: ManualConnectivityMonitor) -> OfflineEditor:
    editor = OfflineEditor(memory_store, feature_store, monitor)
    editor.start()
    return editor


class TestConstruction:
    def test_missing_collaborator_is_rejected(self, memory_store, monitor) -> None:
        with pytest.raises(CollaboratorMissingError, match="feature_store"):
            OfflineEditor(memory_store, None, monitor)

    def test_all_missing_are_named(self) -> None:
        with pytest.raises(CollaboratorMissingError, match="record_store, feature_store, connectivity"):
            OfflineEditor(None, None, None)

    def test_invalid_config_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            StoreConfig(pending_key="same", outcome_key="same")


class TestOfflineEditing:
    """End-to-end scenarios through the public surface."""

    def test_point_edit_made_offline_is_synced_when_online(
        self, editor: OfflineEditor, feature_store, monitor: ManualConnectivityMonitor
    ) -> None:
        feature_store.add_layer("parcels")
        feature = Feature(Point(-122.41, 37.77, 4326), {"name": "hydrant"})

        result = editor.apply_edits(feature, "parcels", Operation.CREATE)

        assert result.status == AdmissionStatus.QUEUED
        assert [m.feature for m in editor.pending()] == [feature]

        monitor.set_online(True)

        assert list(editor.pending()) == []
        outcome = editor.find_outcome("101")
        assert outcome is not None
        assert outcome.succeeded
        assert outcome.geometry_type == "point"
        assert outcome.layer_id == "parcels"

    def test_queued_edits_survive_a_restart(
        self, memory_store: MemoryRecordStore, feature_store, point_feature: Feature
    ) -> None:
        layer = feature_store.add_layer("parcels")
        first = OfflineEditor(memory_store, feature_store, ManualConnectivityMonitor(online=False))
        first.start()
        first.apply_edits(point_feature, "parcels", Operation.UPDATE)

        second = OfflineEditor(memory_store, feature_store, ManualConnectivityMonitor(online=True))
        second.start()

        assert layer.calls == [("update", point_feature)]
        assert list(second.pending()) == []

    def test_start_offline_with_queued_edits_arms_sync(
        self, memory_store: MemoryRecordStore, feature_store, point_feature: Feature
    ) -> None:
        OfflineEditor(memory_store, feature_store, ManualConnectivityMonitor()).apply_edits(
            point_feature, "parcels", Operation.CREATE
        )

        editor = OfflineEditor(memory_store, feature_store, ManualConnectivityMonitor())
        editor.start()

        assert editor.engine.state == SyncState.ARMED

    def test_start_is_idempotent(self, editor: OfflineEditor, feature_store, monitor, point_feature) -> None:
        layer = feature_store.add_layer("parcels")
        editor.start()
        editor.apply_edits(point_feature, "parcels", Operation.CREATE)

        monitor.set_online(True)

        assert len(layer.calls) == 1

    def test_online_edit_goes_straight_through(
        self, editor: OfflineEditor, feature_store, monitor, point_feature
    ) -> None:
        feature_store.add_layer("parcels")
        monitor.set_online(True)
        outcomes = []

        result = editor.apply_edits(point_feature, "parcels", Operation.CREATE, outcomes.append)

        assert result.status == AdmissionStatus.SUBMITTED
        assert editor.is_online()
        assert outcomes[0].remote_id == "101"
        assert editor.outcome_log() == []


class TestHousekeeping:
    def test_storage_used_mb(self, editor: OfflineEditor, memory_store, point_feature) -> None:
        assert editor.storage_used_mb() == 0

        editor.apply_edits(point_feature, "parcels", Operation.CREATE)

        used = sum(len(memory_store.get(k).encode("utf-8")) for k in memory_store.keys())
        assert editor.storage_used_mb() == round(used / BYTES_PER_MB, 4)

    def test_delete_pending(self, editor: OfflineEditor, point_feature: Feature) -> None:
        editor.apply_edits(point_feature, "parcels", Operation.UPDATE)

        assert editor.delete_pending("parcels", 7)
        assert list(editor.pending()) == []
        assert not editor.delete_pending("parcels", 7)

    def test_reset(self, editor: OfflineEditor, feature_store, monitor, point_feature, polygon_feature) -> None:
        feature_store.add_layer("parcels")
        editor.apply_edits(point_feature, "parcels", Operation.CREATE)
        monitor.set_online(True)
        monitor.set_online(False)
        editor.apply_edits(polygon_feature, "parcels", Operation.CREATE)

        assert editor.reset()

        assert list(editor.pending()) == []
        assert editor.outcome_log() == []
        assert editor.storage_used_mb() == 0

    def test_subscribe(self, editor: OfflineEditor, point_feature: Feature) -> None:
        seen: list[DuplicateDetected] = []
        editor.subscribe(DuplicateDetected, seen.append)

        editor.apply_edits(point_feature, "parcels", Operation.CREATE)
        result = editor.apply_edits(point_feature, "parcels", Operation.CREATE)

        assert result.status == AdmissionStatus.DUPLICATE
        assert len(seen) == 1
