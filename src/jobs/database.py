"""
PostgreSQL operations for the job record store.

Handles:
- Upserting ingested job postings by job_id
- Lookup by identifier and full scans
- Fetching the population of a numeric metric for baselines
"""

from datetime import datetime, timezone

import pandas as pd
import psycopg2.extras
import structlog

from src.core.config import DatabaseConfig
from src.core.database import PostgresConnection
from src.core.exceptions import NotFoundError, PersistenceError

from .models import JOB_COLUMNS, JobRecord, Metric

logger = structlog.get_logger(__name__)

_SELECT_COLUMNS = ", ".join(JOB_COLUMNS)

_UPSERT_QUERY = """
    INSERT INTO jobs ({columns})
    VALUES ({placeholders})
    ON CONFLICT (job_id) DO UPDATE SET
        {updates}
""".format(
    columns=", ".join(JOB_COLUMNS),
    placeholders=", ".join(f"%({name})s" for name in JOB_COLUMNS),
    # created_at keeps the first ingestion time
    updates=",\n        ".join(
        f"{name} = EXCLUDED.{name}" for name in JOB_COLUMNS if name not in ("job_id", "created_at")
    ),
)


class JobDatabase(PostgresConnection):
    """Record store for ingested job postings"""

    def __init__(self, config: DatabaseConfig):
        super().__init__(config)

    def ensure_table_exists(self):
        """Create the jobs table if it doesn't exist"""
        query = """
            CREATE TABLE IF NOT EXISTS jobs (
                job_id TEXT PRIMARY KEY,
                company_name TEXT,
                company_rating DOUBLE PRECISION,
                company_address TEXT,
                company_website TEXT,
                job_title TEXT,
                job_posted_time TIMESTAMPTZ,
                job_link TEXT,
                job_description TEXT,
                job_requirements TEXT[],
                job_benefits TEXT[],
                job_types TEXT[],
                is_new_job BOOLEAN,
                is_no_resume_job BOOLEAN,
                is_urgently_hiring BOOLEAN,
                role_type TEXT,
                min_salary DOUBLE PRECISION,
                max_salary DOUBLE PRECISION,
                salary_granularity TEXT,
                hires_needed TEXT,
                city TEXT,
                state TEXT,
                zip TEXT,
                place_id TEXT,
                latitude DOUBLE PRECISION,
                longitude DOUBLE PRECISION,
                location_count INTEGER,
                facebook TEXT,
                instagram TEXT,
                tiktok TEXT,
                youtube TEXT,
                twitter TEXT,
                yelp TEXT,
                scheduling_link TEXT,
                invocation_id TEXT,
                task_id TEXT,
                date_represented TIMESTAMPTZ,
                date_collected TIMESTAMPTZ,
                attempt_id TEXT,
                created_at TIMESTAMPTZ DEFAULT NOW(),
                updated_at TIMESTAMPTZ DEFAULT NOW()
            );
        """
        try:
            self.execute(query)
            logger.info("Ensured jobs table exists")
        except Exception as e:
            logger.error("Failed to create jobs table", error=str(e))
            raise PersistenceError(f"Failed to create jobs table: {e}") from e

    def upsert_job(self, job: JobRecord) -> None:
        """Insert a job, or replace the stored one with the same job_id"""
        self._stamp(job)
        try:
            self.execute(_UPSERT_QUERY, job.to_db_dict())
            logger.debug("Job upserted", job_id=job.job_id)
        except Exception as e:
            logger.error("Failed to upsert job", job_id=job.job_id, error=str(e))
            raise PersistenceError(f"Failed to upsert job {job.job_id}: {e}") from e

    def upsert_jobs(self, jobs: list[JobRecord]) -> int:
        """Batch upsert jobs for better performance

        Returns:
            Number of jobs written
        """
        if not jobs:
            return 0

        for job in jobs:
            self._stamp(job)

        try:
            with self.get_cursor() as cursor:
                psycopg2.extras.execute_batch(
                    cursor, _UPSERT_QUERY, [job.to_db_dict() for job in jobs], page_size=100
                )
        except Exception as e:
            logger.error("Failed to batch upsert jobs", count=len(jobs), error=str(e))
            raise PersistenceError(f"Failed to batch upsert {len(jobs)} jobs: {e}") from e

        logger.info("Jobs upserted", count=len(jobs))
        return len(jobs)

    def get_job(self, job_id: str) -> JobRecord:
        """Fetch one job by identifier

        Raises:
            NotFoundError: If no job has this identifier
            PersistenceError: If the query fails
        """
        query = f"SELECT {_SELECT_COLUMNS} FROM jobs WHERE job_id = %s"
        try:
            row = self.fetch_one(query, (job_id,))
        except Exception as e:
            logger.error("Failed to query job", job_id=job_id, error=str(e))
            raise PersistenceError(f"Failed to query job {job_id}: {e}") from e

        if row is None:
            raise NotFoundError(f"Job with ID {job_id} not found")
        return JobRecord.from_row(row)

    def list_jobs(self) -> list[JobRecord]:
        """Fetch every stored job, newest first"""
        query = f"SELECT {_SELECT_COLUMNS} FROM jobs ORDER BY created_at DESC"
        try:
            rows = self.fetch_all(query)
        except Exception as e:
            logger.error("Failed to list jobs", error=str(e))
            raise PersistenceError(f"Failed to list jobs: {e}") from e

        logger.debug("Listed jobs", count=len(rows))
        return [JobRecord.from_row(row) for row in rows]

    def query_metric_values(self, metric: Metric) -> pd.Series:
        """Fetch every present value of a metric across the population

        A value is present when it is non-null, and nonzero for rating-like
        metrics. Column names come from the Metric enum, never from input.
        """
        column = metric.value
        query = f"SELECT {column} AS value FROM jobs WHERE {column} IS NOT NULL"
        if metric.zero_is_absent:
            query += f" AND {column} <> 0"

        try:
            rows = self.fetch_all(query)
        except Exception as e:
            logger.error("Failed to query metric values", metric=column, error=str(e))
            raise PersistenceError(f"Failed to query values for {column}: {e}") from e

        values = pd.Series([row["value"] for row in rows], dtype="float64", name=column)
        logger.debug("Queried metric values", metric=column, rows=len(values))
        return values

    @staticmethod
    def _stamp(job: JobRecord) -> None:
        now = datetime.now(timezone.utc)
        if job.created_at is None:
            job.created_at = now
        job.updated_at = now
