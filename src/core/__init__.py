"""
Core utilities shared across the stores, the detection engine and the CLIs.
"""

from .config import DatabaseConfig
from .database import PostgresConnection
from .exceptions import (
    AnomalyDetectionError,
    DataValidationError,
    InsufficientDataError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from .logger import setup_logging

__all__ = [
    "DatabaseConfig",
    "PostgresConnection",
    "setup_logging",
    "AnomalyDetectionError",
    "DataValidationError",
    "InsufficientDataError",
    "NotFoundError",
    "PersistenceError",
    "ValidationError",
]
