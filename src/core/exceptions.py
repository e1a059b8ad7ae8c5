"""
Error taxonomy shared by the stores, the detection engine and the CLIs.
"""


class AnomalyDetectionError(Exception):
    """Base exception for anomaly detection failures."""


class InsufficientDataError(AnomalyDetectionError):
    """Raised when a metric has no population to build a baseline from."""

    def __init__(self, metric: str):
        super().__init__(f"No records carry metric '{metric}'")
        self.metric = metric


class PersistenceError(AnomalyDetectionError):
    """Raised when a storage read or write fails."""


class NotFoundError(AnomalyDetectionError):
    """Raised when a lookup by identifier matches nothing."""


class ValidationError(AnomalyDetectionError):
    """Raised when a rule definition is malformed."""


class DataValidationError(AnomalyDetectionError):
    """Raised when ingested input cannot be decoded into a record."""
