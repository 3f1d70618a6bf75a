from .config import StoreConfig, SyncConfig
from .connectivity import ManualConnectivityMonitor
from .editor import OfflineEditor
from .mutation import Feature, Operation, Point, Polygon, Polyline
from .sync import AdmissionStatus, EditResult

__all__ = [
    "OfflineEditor",
    "StoreConfig",
    "SyncConfig",
    "ManualConnectivityMonitor",
    "Feature",
    "Operation",
    "Point",
    "Polygon",
    "Polyline",
    "AdmissionStatus",
    "EditResult",
]
