"""
Anomaly detection: baselines, the detection engine, the anomaly store and the batch runner.
"""

from .batch import BatchRunner
from .database import AnomalyDatabase
from .engine import DetectionEngine
from .models import (
    AnomalyKind,
    DetectionConfig,
    DetectionError,
    DetectionOutcome,
    DetectionPhase,
    Finding,
    MetricStatistics,
)
from .statistics import StatisticsCalculator

__all__ = [
    "AnomalyDatabase",
    "AnomalyKind",
    "BatchRunner",
    "DetectionConfig",
    "DetectionEngine",
    "DetectionError",
    "DetectionOutcome",
    "DetectionPhase",
    "Finding",
    "MetricStatistics",
    "StatisticsCalculator",
]
