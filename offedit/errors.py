class OffeditError(Exception):
    """Base exception for offedit errors."""


class QuotaExceededError(OffeditError):
    """The candidate mutation does not fit in the remaining storage budget."""


class QuotaNearFullError(OffeditError):
    """Stored data alone already exceeds the storage budget."""


class EncodingFailure(OffeditError):
    """Attribute serialization failed; the mutation is kept without attributes."""


class StoreError(OffeditError):
    """General persistence substrate issues."""


class StoreReadError(StoreError):
    """The persistence substrate failed to return a record."""


class StoreWriteError(StoreError):
    """The persistence substrate rejected a write or removal."""


class BackendSubmissionError(OffeditError):
    """The feature backend call itself failed (network or remote error)."""


class UnparsableRecordError(OffeditError):
    """A persisted record could not be decoded."""


class CollaboratorMissingError(OffeditError):
    """A required collaborator was not supplied before activation."""
