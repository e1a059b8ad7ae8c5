"""
PostgreSQL operations for the anomaly (finding) store.

Findings are append-only: each detection pass inserts new rows, and the core
never updates or deletes them.
"""

import structlog

from src.core.config import DatabaseConfig
from src.core.database import PostgresConnection
from src.core.exceptions import PersistenceError

from .models import Finding

logger = structlog.get_logger(__name__)

_FINDING_COLUMNS = (
    "id, job_id, kind, description, value, threshold, operator, created_at, violations"
)


class AnomalyDatabase(PostgresConnection):
    """Database operations for detected anomalies"""

    def __init__(self, config: DatabaseConfig):
        super().__init__(config)

    def ensure_table_exists(self):
        """Create the anomalies table if it doesn't exist"""
        query = """
            CREATE TABLE IF NOT EXISTS anomalies (
                id BIGSERIAL PRIMARY KEY,
                job_id TEXT NOT NULL REFERENCES jobs(job_id),
                kind TEXT NOT NULL,
                description TEXT NOT NULL,
                value DOUBLE PRECISION,
                threshold DOUBLE PRECISION,
                operator TEXT,
                created_at TIMESTAMPTZ DEFAULT NOW(),
                violations TEXT[]
            );

            CREATE INDEX IF NOT EXISTS idx_anomalies_job_id ON anomalies(job_id);
            CREATE INDEX IF NOT EXISTS idx_anomalies_kind ON anomalies(kind);
        """
        try:
            self.execute(query)
            logger.info("Ensured anomalies table exists")
        except Exception as e:
            logger.error("Failed to create anomalies table", error=str(e))
            raise PersistenceError(f"Failed to create anomalies table: {e}") from e

    def insert_finding(self, finding: Finding) -> int:
        """Insert a detected anomaly

        Returns:
            The id assigned by the database

        Raises:
            PersistenceError: If the insert fails
        """
        query = """
            INSERT INTO anomalies (
                job_id, kind, description, value,
                threshold, operator, created_at, violations
            ) VALUES (
                %(job_id)s, %(kind)s, %(description)s, %(value)s,
                %(threshold)s, %(operator)s, %(created_at)s, %(violations)s
            )
            RETURNING id
        """
        try:
            row = self.fetch_one(query, finding.to_db_dict())
        except Exception as e:
            logger.error(
                "Failed to insert anomaly",
                job_id=finding.job_id,
                kind=finding.kind.value,
                error=str(e),
            )
            raise PersistenceError(f"Failed to insert anomaly for job {finding.job_id}: {e}") from e

        logger.debug(
            "Anomaly inserted",
            anomaly_id=row["id"],
            job_id=finding.job_id,
            kind=finding.kind.value,
        )
        return row["id"]

    def list_by_job_id(self, job_id: str) -> list[Finding]:
        """Fetch every finding recorded for a job, newest first"""
        query = f"""
            SELECT {_FINDING_COLUMNS}
            FROM anomalies
            WHERE job_id = %s
            ORDER BY created_at DESC, id DESC
        """
        try:
            rows = self.fetch_all(query, (job_id,))
        except Exception as e:
            logger.error("Failed to query anomalies by job ID", job_id=job_id, error=str(e))
            raise PersistenceError(f"Failed to query anomalies for job {job_id}: {e}") from e

        return [Finding.from_row(row) for row in rows]

    def list_all(self) -> list[Finding]:
        """Fetch every finding, newest first"""
        query = f"""
            SELECT {_FINDING_COLUMNS}
            FROM anomalies
            ORDER BY created_at DESC, id DESC
        """
        try:
            rows = self.fetch_all(query)
        except Exception as e:
            logger.error("Failed to query all anomalies", error=str(e))
            raise PersistenceError(f"Failed to query anomalies: {e}") from e

        return [Finding.from_row(row) for row in rows]
