"""
CLI for running anomaly detection over stored job records.

Usage:
    python -m src.detection.detect [--job-id ID] [options]
"""

import argparse
import sys
from contextlib import ExitStack

import structlog

from src.core.config import DatabaseConfig
from src.core.exceptions import NotFoundError
from src.core.logger import level_from_name, setup_logging
from src.jobs.ingest import (
    add_database_arguments,
    add_detection_arguments,
    build_database_config,
    open_stores,
)

from .batch import BatchRunner
from .engine import DetectionEngine
from .models import DetectionConfig
from .statistics import StatisticsCalculator

logger = structlog.get_logger(__name__)


def parse_arguments(argv: list[str] | None = None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        description="Detect anomalies on stored job records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
        Examples:
        # Evaluate every stored record
        python -m src.detection.detect

        # Evaluate a single record
        python -m src.detection.detect --job-id 4f2c9a

        # Stricter deviation threshold
        python -m src.detection.detect --z-score-threshold 4.0
        """,
    )

    parser.add_argument(
        "--job-id",
        help="Evaluate only this record (default: every stored record)",
    )
    add_database_arguments(parser)
    add_detection_arguments(parser)

    return parser.parse_args(argv)


def detect(db_config: DatabaseConfig, config: DetectionConfig, job_id: str | None = None) -> dict:
    """Evaluate one stored record, or all of them when no job_id is given

    Raises:
        NotFoundError: If job_id names no stored record
        PersistenceError: If the records cannot be read
    """
    with ExitStack() as stack:
        jobs_db, rules_db, anomalies_db = open_stores(stack, db_config)

        jobs_db.ensure_table_exists()
        rules_db.ensure_table_exists()
        anomalies_db.ensure_table_exists()

        engine = DetectionEngine(
            config=config,
            statistics=StatisticsCalculator(jobs_db),
            rules=rules_db,
            anomalies=anomalies_db,
        )

        if job_id is None:
            return BatchRunner(engine, jobs_db).detect_all()

        outcome = engine.detect(jobs_db.get_job(job_id))
        for finding in outcome.findings:
            logger.info(
                "Finding",
                job_id=finding.job_id,
                anomaly_id=finding.id,
                kind=finding.kind.value,
                description=finding.description,
            )
        return {
            "job_id": outcome.job_id,
            "findings": len(outcome.findings),
            "errors": [str(error) for error in outcome.errors],
        }


def main(argv: list[str] | None = None):
    """Main entry point"""
    args = parse_arguments(argv)

    setup_logging(level=level_from_name(args.log_level), log_format=args.log_format)

    logger.info("Starting anomaly detection", job_id=args.job_id)

    try:
        stats = detect(
            build_database_config(args),
            DetectionConfig(z_score_threshold=args.z_score_threshold),
            job_id=args.job_id,
        )
        logger.info("Detection completed successfully", **stats)
        return 0

    except NotFoundError as e:
        logger.error("Job not found", job_id=args.job_id, error=str(e))
        return 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0

    except Exception as e:
        logger.error("Detection failed", error=str(e), exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
