"""
Batch detection over many job records.
"""

import structlog

from src.jobs.models import JobRecord

from .engine import DetectionEngine

logger = structlog.get_logger(__name__)


class BatchRunner:
    """Runs the detection engine over a collection of records

    A failure on one record is logged and counted; the remaining records
    are still evaluated.
    """

    def __init__(self, engine: DetectionEngine, jobs):
        self.engine = engine
        self.jobs = jobs

    def detect_all(self) -> dict:
        """Evaluate every record currently in the record store

        Raises:
            PersistenceError: If the records cannot be enumerated
        """
        records = self.jobs.list_jobs()
        logger.info("Loaded records for batch detection", count=len(records))
        return self.run(records)

    def run(self, records: list[JobRecord]) -> dict:
        stats = {
            "total_records": len(records),
            "evaluated": 0,
            "failed": 0,
            "partial": 0,
            "findings": 0,
        }

        for record in records:
            try:
                outcome = self.engine.detect(record)
            except Exception as e:
                stats["failed"] += 1
                logger.error(
                    "Detection failed for record",
                    job_id=record.job_id,
                    error=str(e),
                    exc_info=True,
                )
                continue

            stats["evaluated"] += 1
            stats["findings"] += len(outcome.findings)
            if not outcome.ok:
                stats["partial"] += 1
                logger.warning(
                    "Detection completed with errors",
                    job_id=record.job_id,
                    errors=[str(error) for error in outcome.errors],
                )

            if stats["evaluated"] % 100 == 0:
                logger.info("Batch progress", **stats)

        logger.info("Batch detection completed", **stats)
        return stats
