from __future__ import annotations

from ..metrics.registry import STORE_WRITE_LATENCY_SECONDS, STORE_WRITES_TOTAL


def observe_store_write(backend: str, status: str, latency_s: float) -> None:
    STORE_WRITES_TOTAL.labels(backend=backend, status=status).inc()
    STORE_WRITE_LATENCY_SECONDS.labels(backend=backend).observe(latency_s)
