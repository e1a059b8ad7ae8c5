"""
Job posting record model and the numeric metrics it exposes.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from src.core.exceptions import DataValidationError


class Metric(Enum):
    """Numeric record fields eligible for statistics and threshold rules"""

    MAX_SALARY = "max_salary"
    MIN_SALARY = "min_salary"
    COMPANY_RATING = "company_rating"

    @property
    def label(self) -> str:
        """Human-readable name used in finding descriptions"""
        return METRIC_LABELS[self]

    @property
    def zero_is_absent(self) -> bool:
        """Rating-like metrics use 0 to mean 'not rated'"""
        return self is Metric.COMPANY_RATING

    @classmethod
    def parse(cls, value: "str | Metric") -> "Metric":
        """Convert a raw metric name, raising ValueError on unknown names"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            available = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown metric '{value}'. Available metrics: {available}") from None


METRIC_LABELS = {
    Metric.MAX_SALARY: "Salary",
    Metric.MIN_SALARY: "Minimum salary",
    Metric.COMPANY_RATING: "Company rating",
}

# Wire key (camelCase, as found in ingestion files) -> record attribute
WIRE_FIELDS = {
    "companyName": "company_name",
    "companyRating": "company_rating",
    "companyAddress": "company_address",
    "companyWebsite": "company_website",
    "jobTitle": "job_title",
    "jobPostedTime": "job_posted_time",
    "jobID": "job_id",
    "jobLink": "job_link",
    "jobDescription": "job_description",
    "jobRequirements": "job_requirements",
    "jobBenefits": "job_benefits",
    "jobTypes": "job_types",
    "isNewJob": "is_new_job",
    "isNoResumeJob": "is_no_resume_job",
    "isUrgentlyHiring": "is_urgently_hiring",
    "roleType": "role_type",
    "minSalary": "min_salary",
    "maxSalary": "max_salary",
    "salaryGranularity": "salary_granularity",
    "hiresNeeded": "hires_needed",
    "city": "city",
    "state": "state",
    "zip": "zip",
    "placeId": "place_id",
    "latitude": "latitude",
    "longitude": "longitude",
    "locationCount": "location_count",
    "facebook": "facebook",
    "instagram": "instagram",
    "tiktok": "tiktok",
    "youtube": "youtube",
    "twitter": "twitter",
    "yelp": "yelp",
    "schedulingLink": "scheduling_link",
    "invocationID": "invocation_id",
    "taskID": "task_id",
    "dateRepresented": "date_represented",
    "dateCollected": "date_collected",
    "attemptID": "attempt_id",
}

FLOAT_FIELDS = {"company_rating", "min_salary", "max_salary", "latitude", "longitude"}
LIST_FIELDS = {"job_requirements", "job_benefits", "job_types"}
BOOL_FIELDS = {"is_new_job", "is_no_resume_job", "is_urgently_hiring"}
TIMESTAMP_FIELDS = {"job_posted_time", "date_represented", "date_collected"}

_TIMESTAMP_FORMATS = ("%Y-%m-%d %H:%M:%S.%f", "%Y-%m-%d %H:%M:%S")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse the timestamp layouts found in job feeds

    Accepts ISO 8601 / RFC 3339 (with 'Z' or an offset) and
    'YYYY-MM-DD HH:MM:SS[.fff][ UTC]'. Empty values map to None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise DataValidationError(f"Cannot parse {type(value).__name__} as a timestamp")

    text = value.strip()
    utc = text.endswith(" UTC")
    if utc:
        text = text[: -len(" UTC")]

    parsed = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        for fmt in _TIMESTAMP_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        raise DataValidationError(f"Could not parse time '{value}' with any known format")
    if utc and parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class JobRecord:
    """One ingested job posting, identified by job_id"""

    job_id: str

    # Company information
    company_name: str | None = None
    company_rating: float | None = None
    company_address: str | None = None
    company_website: str | None = None

    # Job information
    job_title: str | None = None
    job_posted_time: datetime | None = None
    job_link: str | None = None
    job_description: str | None = None
    job_requirements: list[str] = field(default_factory=list)
    job_benefits: list[str] = field(default_factory=list)
    job_types: list[str] = field(default_factory=list)
    is_new_job: bool = False
    is_no_resume_job: bool = False
    is_urgently_hiring: bool = False

    # Role information
    role_type: str | None = None
    min_salary: float | None = None
    max_salary: float | None = None
    salary_granularity: str | None = None
    hires_needed: str | None = None

    # Location information
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    place_id: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    location_count: int = 0

    # Social media links
    facebook: str | None = None
    instagram: str | None = None
    tiktok: str | None = None
    youtube: str | None = None
    twitter: str | None = None
    yelp: str | None = None
    scheduling_link: str | None = None

    # Collection metadata
    invocation_id: str | None = None
    task_id: str | None = None
    date_represented: datetime | None = None
    date_collected: datetime | None = None
    attempt_id: str | None = None

    # Managed by the record store
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def metric_value(self, metric: Metric) -> float | None:
        """Value of a metric, or None when the record does not carry it"""
        value = getattr(self, metric.value)
        if value is None:
            return None
        if metric.zero_is_absent and value == 0:
            return None
        return float(value)

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dict for database insertion"""
        return {name: getattr(self, name) for name in JOB_COLUMNS}

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "JobRecord":
        """Create from a database row keyed by column name"""
        values = {name: row.get(name) for name in JOB_COLUMNS if name in row}
        for name in LIST_FIELDS:
            if values.get(name) is None:
                values[name] = []
        for name in BOOL_FIELDS:
            if values.get(name) is None:
                values[name] = False
        if values.get("location_count") is None:
            values["location_count"] = 0
        return cls(**values)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "JobRecord":
        """Create from a decoded ingestion document (camelCase keys)

        Raises:
            DataValidationError: If the document has no job ID or a field
                cannot be converted
        """
        if not isinstance(data, dict):
            raise DataValidationError(f"Expected a JSON object, got {type(data).__name__}")

        job_id = data.get("jobID")
        if not job_id:
            raise DataValidationError("Record is missing 'jobID'")

        values: dict[str, Any] = {}
        for wire_key, name in WIRE_FIELDS.items():
            raw = data.get(wire_key)
            try:
                values[name] = _convert(name, raw)
            except (TypeError, ValueError) as e:
                raise DataValidationError(
                    f"Invalid value for '{wire_key}' in job {job_id}: {e}"
                ) from e

        return cls(**values)


def _convert(name: str, raw: Any) -> Any:
    if name in TIMESTAMP_FIELDS:
        return parse_timestamp(raw)
    if name in FLOAT_FIELDS:
        return float(raw) if raw is not None else None
    if name in LIST_FIELDS:
        return [str(item) for item in raw] if raw else []
    if name in BOOL_FIELDS:
        if raw is None:
            return False
        if not isinstance(raw, bool):
            raise TypeError(f"expected a boolean, got {raw!r}")
        return raw
    if name == "location_count":
        return int(raw) if raw is not None else 0
    return raw


JOB_COLUMNS = tuple(f.name for f in fields(JobRecord))
