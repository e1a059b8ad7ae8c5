"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from src.core.config import DatabaseConfig
from src.detection.models import DetectionConfig
from src.jobs.models import JobRecord


# Database fixtures
@pytest.fixture
def db_config():
    """Database configuration pointing at a test database."""
    return DatabaseConfig(
        postgres_host="localhost",
        postgres_port=5432,
        postgres_database="test_db",
        postgres_user="test_user",
        postgres_password="test_password",
    )


@pytest.fixture
def mock_connection():
    """Mocked psycopg2 connection with a single reusable cursor."""
    connection = MagicMock()
    cursor = MagicMock()
    connection.cursor.return_value = cursor
    return connection


# Detection fixtures
@pytest.fixture
def detection_config():
    """Default detection configuration."""
    return DetectionConfig()


@pytest.fixture
def complete_job():
    """Job record with every required field populated."""
    return JobRecord(
        job_id="job-001",
        company_name="Acme Plumbing",
        company_rating=4.2,
        company_address="12 Main St, Springfield, IL",
        company_website="https://acme.example.com",
        job_title="Service Plumber",
        job_posted_time=datetime(2025, 4, 1, 12, 0, tzinfo=timezone.utc),
        job_link="https://jobs.example.com/job-001",
        job_description="Install and repair residential plumbing.",
        job_requirements=["Valid driver's license"],
        job_types=["Full-time"],
        min_salary=50000.0,
        max_salary=70000.0,
        salary_granularity="yearly",
        city="Springfield",
        state="IL",
        zip="62701",
    )


@pytest.fixture
def job_document():
    """Decoded ingestion document with camelCase wire keys."""
    return {
        "companyName": "Acme Plumbing",
        "companyRating": 4.2,
        "companyAddress": "12 Main St, Springfield, IL",
        "companyWebsite": "https://acme.example.com",
        "jobTitle": "Service Plumber",
        "jobPostedTime": "2025-04-01T12:00:00Z",
        "jobID": "job-001",
        "jobLink": "https://jobs.example.com/job-001",
        "jobDescription": "Install and repair residential plumbing.",
        "jobRequirements": ["Valid driver's license"],
        "jobBenefits": None,
        "jobTypes": ["Full-time"],
        "isNewJob": True,
        "isNoResumeJob": False,
        "isUrgentlyHiring": None,
        "roleType": "Plumber",
        "minSalary": 50000,
        "maxSalary": 70000,
        "salaryGranularity": "yearly",
        "hiresNeeded": "1",
        "city": "Springfield",
        "state": "IL",
        "zip": "62701",
        "placeId": "ChIJ123",
        "latitude": 39.78,
        "longitude": -89.65,
        "locationCount": 2,
        "invocationID": "inv-1",
        "taskID": "task-1",
        "dateRepresented": "2025-04-02 00:00:00 UTC",
        "dateCollected": "2025-04-02 03:15:20.123456",
        "attemptID": "attempt-1",
    }
