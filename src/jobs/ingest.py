"""
Job Ingestion - CLI Entry Point
Parses a job feed file, upserts every record and evaluates each one for anomalies.

Usage:
    python -m src.jobs.ingest --file jobs.jsonl.gz [options]
"""

import argparse
import os
import sys
from contextlib import ExitStack

import structlog

from src.core.config import DatabaseConfig
from src.core.exceptions import PersistenceError
from src.core.logger import level_from_name, setup_logging
from src.detection.batch import BatchRunner
from src.detection.database import AnomalyDatabase
from src.detection.engine import DetectionEngine
from src.detection.models import DetectionConfig
from src.detection.statistics import StatisticsCalculator
from src.rules.database import RuleDatabase

from .database import JobDatabase
from .models import JobRecord
from .parser import parse_jsonl_file

logger = structlog.get_logger(__name__)


def parse_arguments(argv: list[str] | None = None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        description="Ingest a job feed file and detect anomalies on write",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
        Examples:
        # Ingest a gzipped feed and evaluate every record
        python -m src.jobs.ingest --file 1743566710-000000000000.jsonl.gz

        # Store only, detect later with src.detection.detect
        python -m src.jobs.ingest --file jobs.jsonl --no-detect

        # Using environment variables
        export POSTGRES_HOST=postgres
        python -m src.jobs.ingest --file jobs.jsonl.gz
        """,
    )

    parser.add_argument(
        "--file",
        required=True,
        help="Path to the .jsonl or .jsonl.gz file to ingest",
    )
    parser.add_argument(
        "--no-detect",
        action="store_true",
        help="Store records without evaluating them",
    )
    add_database_arguments(parser)
    add_detection_arguments(parser)

    return parser.parse_args(argv)


def add_database_arguments(parser: argparse.ArgumentParser) -> None:
    """PostgreSQL and logging options shared by the CLIs"""
    parser.add_argument(
        "--postgres-host",
        default=os.getenv("POSTGRES_HOST", "localhost"),
        help="PostgreSQL host (default: localhost or POSTGRES_HOST env var)",
    )
    parser.add_argument(
        "--postgres-port",
        type=int,
        default=int(os.getenv("POSTGRES_PORT", "5432")),
        help="PostgreSQL port (default: 5432 or POSTGRES_PORT env var)",
    )
    parser.add_argument(
        "--postgres-db",
        default=os.getenv("POSTGRES_DB", "anomaly_detection"),
        help="PostgreSQL database (default: anomaly_detection or POSTGRES_DB env var)",
    )
    parser.add_argument(
        "--postgres-user",
        default=os.getenv("POSTGRES_USER", "postgres"),
        help="PostgreSQL user (default: postgres or POSTGRES_USER env var)",
    )
    parser.add_argument(
        "--postgres-password",
        default=os.getenv("POSTGRES_PASSWORD", ""),
        help="PostgreSQL password (default: POSTGRES_PASSWORD env var)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        default=os.getenv("LOG_FORMAT", "console").lower(),
        help="Log output format (default: console or LOG_FORMAT env var)",
    )


def add_detection_arguments(parser: argparse.ArgumentParser) -> None:
    """Detection threshold options shared by the CLIs"""
    parser.add_argument(
        "--z-score-threshold",
        type=float,
        default=3.0,
        help="Absolute z-score above which a value is a deviation (default: 3.0)",
    )


def build_database_config(args) -> DatabaseConfig:
    """Build a DatabaseConfig from command-line arguments"""
    return DatabaseConfig(
        postgres_host=args.postgres_host,
        postgres_port=args.postgres_port,
        postgres_database=args.postgres_db,
        postgres_user=args.postgres_user,
        postgres_password=args.postgres_password,
    )


def open_stores(stack: ExitStack, db_config: DatabaseConfig):
    """Connect the job, rule and anomaly stores, closing each one when the stack unwinds"""
    stores = []
    for store_class in (JobDatabase, RuleDatabase, AnomalyDatabase):
        store = store_class(db_config)
        stack.callback(store.close)
        stores.append(store)
    return tuple(stores)


def deduplicate(records: list[JobRecord]) -> list[JobRecord]:
    """Keep the last record per job_id, in order of first appearance"""
    latest: dict[str, JobRecord] = {}
    for record in records:
        latest[record.job_id] = record
    return list(latest.values())


def store_records(jobs_db: JobDatabase, records: list[JobRecord]) -> tuple[list[JobRecord], int]:
    """Upsert records, falling back to one transaction per record if the batch fails

    Returns:
        The records that were stored, and the number that failed
    """
    try:
        jobs_db.upsert_jobs(records)
        return records, 0
    except PersistenceError as e:
        logger.warning("Batch upsert failed, storing records one by one", error=str(e))

    stored: list[JobRecord] = []
    failed = 0
    for record in records:
        try:
            jobs_db.upsert_job(record)
        except PersistenceError as e:
            failed += 1
            logger.error("Failed to store job, skipping it", job_id=record.job_id, error=str(e))
            continue
        stored.append(record)
    return stored, failed


def ingest(
    file_path: str, db_config: DatabaseConfig, config: DetectionConfig, detect: bool
) -> dict:
    """Parse, store and (optionally) evaluate every record of a feed file

    Records that cannot be stored are skipped and counted; only stored
    records are evaluated.
    """
    parsed = parse_jsonl_file(file_path)
    records = deduplicate(parsed)
    if len(records) < len(parsed):
        logger.info("Dropped repeated job IDs", duplicates=len(parsed) - len(records))

    with ExitStack() as stack:
        jobs_db, rules_db, anomalies_db = open_stores(stack, db_config)

        jobs_db.ensure_table_exists()
        rules_db.ensure_table_exists()
        anomalies_db.ensure_table_exists()
        rules_db.seed_default_rules()

        stored, failed = store_records(jobs_db, records)
        stats = {
            "parsed": len(parsed),
            "unique": len(records),
            "stored": len(stored),
            "store_failed": failed,
        }

        if detect:
            engine = DetectionEngine(
                config=config,
                statistics=StatisticsCalculator(jobs_db),
                rules=rules_db,
                anomalies=anomalies_db,
            )
            stats.update(BatchRunner(engine, jobs_db).run(stored))

        return stats


def main(argv: list[str] | None = None):
    """Main entry point"""
    args = parse_arguments(argv)

    setup_logging(level=level_from_name(args.log_level), log_format=args.log_format)

    logger.info("Starting job ingestion", file=args.file, detect=not args.no_detect)

    try:
        stats = ingest(
            args.file,
            build_database_config(args),
            DetectionConfig(z_score_threshold=args.z_score_threshold),
            detect=not args.no_detect,
        )
        logger.info("Ingestion completed successfully", **stats)
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0

    except Exception as e:
        logger.error("Ingestion failed", error=str(e), exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
