"""
Tests for batch detection over stored records.
"""

from unittest.mock import MagicMock

import pytest

from src.core.exceptions import PersistenceError
from src.detection.batch import BatchRunner
from src.detection.models import DetectionError, DetectionOutcome, DetectionPhase
from src.jobs.models import JobRecord


def outcome_for(record, findings=0, errors=0):
    return DetectionOutcome(
        job_id=record.job_id,
        findings=[MagicMock() for _ in range(findings)],
        errors=[
            DetectionError(phase=DetectionPhase.PERSIST, error=PersistenceError("x"))
            for _ in range(errors)
        ],
    )


@pytest.fixture
def records():
    return [JobRecord(job_id=f"job-{i}") for i in range(5)]


class TestBatchRunner:
    """Tests for BatchRunner."""

    def test_detect_all_evaluates_every_record(self, records):
        """Test the engine is invoked once per stored record."""
        jobs = MagicMock()
        jobs.list_jobs.return_value = records
        engine = MagicMock()
        engine.detect.side_effect = lambda record: outcome_for(record, findings=1)

        stats = BatchRunner(engine, jobs).detect_all()

        assert engine.detect.call_count == 5
        assert [c.args[0].job_id for c in engine.detect.call_args_list] == [
            r.job_id for r in records
        ]
        assert stats == {
            "total_records": 5,
            "evaluated": 5,
            "failed": 0,
            "partial": 0,
            "findings": 5,
        }

    def test_failure_on_one_record_does_not_stop_the_scan(self, records):
        """Test record k failing still lets record k+1 be evaluated."""

        def detect(record):
            if record.job_id == "job-2":
                raise RuntimeError("unexpected")
            return outcome_for(record)

        engine = MagicMock()
        engine.detect.side_effect = detect

        stats = BatchRunner(engine, MagicMock()).run(records)

        assert engine.detect.call_count == 5
        assert engine.detect.call_args_list[3].args[0].job_id == "job-3"
        assert stats["failed"] == 1
        assert stats["evaluated"] == 4

    def test_partial_outcomes_are_counted(self, records):
        """Test outcomes with recorded errors are counted as partial."""
        engine = MagicMock()
        engine.detect.side_effect = lambda record: outcome_for(
            record, findings=2, errors=1 if record.job_id == "job-0" else 0
        )

        stats = BatchRunner(engine, MagicMock()).run(records)

        assert stats["partial"] == 1
        assert stats["findings"] == 10

    def test_enumeration_failure_propagates(self):
        """Test a failure to list records aborts the batch."""
        jobs = MagicMock()
        jobs.list_jobs.side_effect = PersistenceError("Failed to list jobs")
        engine = MagicMock()

        with pytest.raises(PersistenceError):
            BatchRunner(engine, jobs).detect_all()
        engine.detect.assert_not_called()

    def test_empty_store(self):
        """Test an empty record store yields zeroed stats."""
        jobs = MagicMock()
        jobs.list_jobs.return_value = []

        stats = BatchRunner(MagicMock(), jobs).detect_all()

        assert stats["total_records"] == 0
        assert stats["evaluated"] == 0
