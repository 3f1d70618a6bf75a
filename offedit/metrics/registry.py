from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

ADMISSIONS_TOTAL = Counter(
    "offedit_admissions_total",
    "Edit submissions by admission status",
    ["status"],
)

STORE_WRITES_TOTAL = Counter(
    "offedit_store_writes_total",
    "Record store writes",
    ["backend", "status"],
)

STORE_WRITE_LATENCY_SECONDS = Histogram(
    "offedit_store_write_latency_seconds",
    "Record store write latency",
    ["backend"],
)

PENDING_MUTATIONS = Gauge(
    "offedit_pending_mutations",
    "Mutations currently waiting in the pending queue",
)

REPLAY_SUBMISSIONS_TOTAL = Counter(
    "offedit_replay_submissions_total",
    "Queued mutations submitted to the feature backend during replay",
    ["operation"],
)

REPLAY_FAILURES_TOTAL = Counter(
    "offedit_replay_failures_total",
    "Replay submissions whose backend call errored",
    ["operation"],
)

OUTCOMES_TOTAL = Counter(
    "offedit_outcomes_total",
    "Outcome records appended to the outcome index",
    ["operation", "succeeded"],
)
