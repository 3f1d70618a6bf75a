from dataclasses import dataclass

BYTES_PER_MB = 1024 * 1024


@dataclass
class StoreConfig:
    pending_key: str = "___OffeditPendingQueue___"
    outcome_key: str = "___OffeditOutcomeIndex___"
    budget_mb: float = 4.75
    object_id_field: str = "objectid"

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not self.pending_key or not self.outcome_key:
            raise ValueError("pending_key and outcome_key must be non-empty")
        if self.pending_key == self.outcome_key:
            raise ValueError(
                "pending_key and outcome_key must differ; both blobs would share one record"
            )
        if self.budget_mb <= 0:
            raise ValueError("budget_mb must be > 0")

    @property
    def budget_bytes(self) -> int:
        return int(round(self.budget_mb * BYTES_PER_MB))

    @property
    def owned_keys(self) -> tuple[str, str]:
        return (self.pending_key, self.outcome_key)


@dataclass
class SyncConfig:
    # False keeps the legacy behavior: a completed backend call removes the
    # mutation even when the item result inside it reports failure.
    strict_success: bool = False
