"""
Data models and configuration for the anomaly detection engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from src.jobs.models import Metric
from src.rules.models import Operator


class AnomalyKind(Enum):
    """Kinds of findings the engine can emit"""

    NULL_VALUES = "null_values"
    DEVIATION = "standard_deviation"
    RULE_THRESHOLD = "threshold"


class DetectionPhase(Enum):
    """Detection steps, in execution order"""

    NULL_VALUES = "null_values"
    DEVIATION = "deviation"
    RULES = "rules"
    PERSIST = "persist"


@dataclass
class DetectionConfig:
    """Configuration for the detection engine"""

    z_score_threshold: float = 3.0

    # Fields that must be non-empty on every record, in reporting order
    required_fields: tuple[str, ...] = (
        "company_name",
        "job_title",
        "job_description",
        "city",
        "company_address",
        "company_website",
        "job_link",
    )

    deviation_metrics: tuple[Metric, ...] = (Metric.MAX_SALARY, Metric.COMPANY_RATING)


@dataclass(frozen=True)
class Finding:
    """One detected anomaly on a job record"""

    job_id: str
    kind: AnomalyKind
    description: str
    value: float
    threshold: float
    operator: Operator
    created_at: datetime
    violations: tuple[str, ...] = ()
    id: int | None = None

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dict for database insertion"""
        return {
            "job_id": self.job_id,
            "kind": self.kind.value,
            "description": self.description,
            "value": self.value,
            "threshold": self.threshold,
            "operator": self.operator.value,
            "created_at": self.created_at,
            "violations": list(self.violations),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Finding":
        """Create from an anomalies row"""
        return cls(
            id=row["id"],
            job_id=row["job_id"],
            kind=AnomalyKind(row["kind"]),
            description=row["description"],
            value=row["value"],
            threshold=row["threshold"],
            operator=Operator(row["operator"]),
            created_at=row["created_at"],
            violations=tuple(row.get("violations") or ()),
        )


@dataclass(frozen=True)
class MetricStatistics:
    """Population baseline for one metric, computed per detection pass"""

    metric: Metric
    mean: float
    stddev: float
    count: int


@dataclass(frozen=True)
class DetectionError:
    """A non-fatal failure recorded while detecting on one record"""

    phase: DetectionPhase
    error: Exception
    metric: Metric | None = None

    def __str__(self) -> str:
        where = f"{self.phase.value}:{self.metric.value}" if self.metric else self.phase.value
        return f"{where}: {self.error}"


@dataclass
class DetectionOutcome:
    """Findings that were persisted, plus every non-fatal error on the way"""

    job_id: str
    findings: list[Finding] = field(default_factory=list)
    errors: list[DetectionError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def kinds(self) -> list[AnomalyKind]:
        return [finding.kind for finding in self.findings]
