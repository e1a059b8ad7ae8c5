"""
Tests for the anomaly store.
"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from src.core.exceptions import PersistenceError
from src.detection.database import AnomalyDatabase
from src.detection.models import AnomalyKind, Finding
from src.rules.models import Operator

CREATED = datetime(2025, 4, 2, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def anomalies_db(db_config, mock_connection):
    """AnomalyDatabase over a mocked connection."""
    with patch("src.core.database.psycopg2.connect", return_value=mock_connection):
        yield AnomalyDatabase(db_config)


@pytest.fixture
def cursor(mock_connection):
    return mock_connection.cursor.return_value


@pytest.fixture
def finding():
    return Finding(
        job_id="job-001",
        kind=AnomalyKind.NULL_VALUES,
        description="Required fields are null",
        value=0.0,
        threshold=0.0,
        operator=Operator.EQUAL,
        created_at=CREATED,
        violations=("city", "job_link"),
    )


def finding_row(anomaly_id, **overrides):
    row = {
        "id": anomaly_id,
        "job_id": "job-001",
        "kind": "threshold",
        "description": "Alert if maximum salary is negative",
        "value": -1000.0,
        "threshold": 0.0,
        "operator": "<",
        "created_at": CREATED,
        "violations": ["max_salary"],
    }
    row.update(overrides)
    return row


class TestAnomalyDatabase:
    """Tests for AnomalyDatabase."""

    def test_ensure_table_exists(self, anomalies_db, cursor):
        """Test the anomalies table references jobs."""
        anomalies_db.ensure_table_exists()

        query = cursor.execute.call_args[0][0]
        assert "CREATE TABLE IF NOT EXISTS anomalies" in query
        assert "REFERENCES jobs(job_id)" in query
        assert "violations TEXT[]" in query

    def test_insert_finding_returns_id(self, anomalies_db, cursor, finding):
        """Test insert returns the id assigned by the database."""
        cursor.fetchone.return_value = {"id": 42}

        anomaly_id = anomalies_db.insert_finding(finding)

        assert anomaly_id == 42
        query, params = cursor.execute.call_args[0]
        assert "RETURNING id" in query
        assert params["kind"] == "null_values"
        assert params["operator"] == "="
        assert params["violations"] == ["city", "job_link"]

    def test_insert_finding_failure(self, anomalies_db, cursor, mock_connection, finding):
        """Test insert failures roll back and raise PersistenceError."""
        cursor.execute.side_effect = Exception("foreign key violation")

        with pytest.raises(PersistenceError, match="job-001"):
            anomalies_db.insert_finding(finding)
        mock_connection.rollback.assert_called_once()

    def test_list_by_job_id(self, anomalies_db, cursor):
        """Test findings for a job are decoded, newest first."""
        cursor.fetchall.return_value = [finding_row(2), finding_row(1, kind="null_values")]

        findings = anomalies_db.list_by_job_id("job-001")

        assert [f.id for f in findings] == [2, 1]
        assert findings[0].kind is AnomalyKind.RULE_THRESHOLD
        assert findings[0].operator is Operator.LESS_THAN
        assert findings[0].violations == ("max_salary",)
        query, params = cursor.execute.call_args[0]
        assert "WHERE job_id = %s" in query
        assert "ORDER BY created_at DESC, id DESC" in query
        assert params == ("job-001",)

    def test_list_all_handles_null_violations(self, anomalies_db, cursor):
        """Test rows without violations decode to an empty tuple."""
        cursor.fetchall.return_value = [finding_row(1, violations=None)]

        findings = anomalies_db.list_all()

        assert findings[0].violations == ()

    def test_list_all_failure(self, anomalies_db, cursor):
        """Test query failures raise PersistenceError."""
        cursor.execute.side_effect = Exception("timeout")

        with pytest.raises(PersistenceError, match="timeout"):
            anomalies_db.list_all()
