from __future__ import annotations

from .admission import AdmissionController, AdmissionResult, AdmissionStatus
from .backend import EditResult, FeatureLayer, FeatureStore
from .engine import SyncEngine, SyncState

__all__ = [
    "AdmissionController",
    "AdmissionResult",
    "AdmissionStatus",
    "EditResult",
    "FeatureLayer",
    "FeatureStore",
    "SyncEngine",
    "SyncState",
]
