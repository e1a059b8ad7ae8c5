"""
Population baselines for numeric metrics.
"""

import pandas as pd
import structlog

from src.core.exceptions import InsufficientDataError
from src.jobs.models import Metric

from .models import MetricStatistics

logger = structlog.get_logger(__name__)


class StatisticsCalculator:
    """Computes mean and population standard deviation of a metric

    Values are re-read from the record store on every call, so a baseline
    always reflects the current population.
    """

    def __init__(self, jobs):
        self.jobs = jobs

    def compute(self, metric: Metric) -> MetricStatistics:
        """Baseline over every record carrying the metric

        Raises:
            InsufficientDataError: If no record carries the metric
            PersistenceError: If the record store cannot be read
        """
        values = self.jobs.query_metric_values(metric)
        return self.from_values(metric, values)

    @staticmethod
    def from_values(metric: Metric, values: pd.Series) -> MetricStatistics:
        values = pd.Series(values, dtype="float64").dropna()
        if values.empty:
            raise InsufficientDataError(metric.value)

        stats = MetricStatistics(
            metric=metric,
            mean=float(values.mean()),
            stddev=float(values.std(ddof=0)),
            count=int(values.size),
        )
        logger.debug(
            "Computed metric baseline",
            metric=metric.value,
            mean=round(stats.mean, 4),
            stddev=round(stats.stddev, 4),
            count=stats.count,
        )
        return stats
