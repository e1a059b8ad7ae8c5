"""
Threshold rule model, request validation and comparison operators.
"""

import math
import operator as op
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from src.core.exceptions import ValidationError
from src.jobs.models import Metric


class Operator(Enum):
    """Comparison operators a rule may apply between a value and its threshold"""

    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL = ">="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL = "<="
    EQUAL = "="


# Registry of comparison functions, one per operator
COMPARATORS: dict[Operator, Callable[[float, float], bool]] = {
    Operator.GREATER_THAN: op.gt,
    Operator.GREATER_THAN_OR_EQUAL: op.ge,
    Operator.LESS_THAN: op.lt,
    Operator.LESS_THAN_OR_EQUAL: op.le,
    # Exact floating-point equality, no tolerance
    Operator.EQUAL: op.eq,
}


def compare_values(value: float, threshold: float, operator: Operator) -> bool:
    """Apply a rule operator as `value <operator> threshold`"""
    return COMPARATORS[operator](value, threshold)


@dataclass
class Rule:
    """A stored threshold rule on one metric

    Rules see a metric only when the record carries it. A company_rating of 0
    means the company is unrated, so no rating rule can match an unrated job,
    not even `company_rating = 0` or `company_rating < 1`.
    """

    id: int
    name: str
    description: str
    metric: Metric
    operator: Operator
    threshold: float
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Rule":
        """Create from an anomaly_rules row"""
        return cls(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            metric=Metric(row["metric"]),
            operator=Operator(row["operator"]),
            threshold=float(row["threshold"]),
            is_active=bool(row["is_active"]),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted rule shape"""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "metric": self.metric.value,
            "operator": self.operator.value,
            "threshold": self.threshold,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class RuleRequest:
    """Validated data needed to create or update a rule

    Construction raises ValidationError for an unknown metric or operator, an
    empty name or description, or a non-finite threshold. Rating rules are
    accepted with any threshold but never match unrated jobs (rating 0).
    """

    name: str
    description: str
    metric: Metric
    operator: Operator
    threshold: float
    is_active: bool = True

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Rule name is required")
        if not isinstance(self.description, str) or not self.description.strip():
            raise ValidationError("Rule description is required")

        try:
            self.metric = Metric.parse(self.metric)
        except ValueError as e:
            raise ValidationError(str(e)) from None

        if not isinstance(self.operator, Operator):
            try:
                self.operator = Operator(self.operator)
            except ValueError:
                available = ", ".join(o.value for o in Operator)
                raise ValidationError(
                    f"Unknown operator '{self.operator}'. Available operators: {available}"
                ) from None

        if isinstance(self.threshold, bool):
            raise ValidationError("Rule threshold must be a number")
        try:
            self.threshold = float(self.threshold)
        except (TypeError, ValueError):
            raise ValidationError(
                f"Rule threshold must be a number, got {self.threshold!r}"
            ) from None
        if not math.isfinite(self.threshold):
            raise ValidationError("Rule threshold must be finite")

        self.is_active = bool(self.is_active)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuleRequest":
        """Create from raw input such as a decoded JSON body"""
        required = ("name", "description", "metric", "operator", "threshold")
        missing = [key for key in required if key not in data]
        if missing:
            raise ValidationError(f"Rule is missing required fields: {', '.join(missing)}")
        return cls(
            name=data["name"],
            description=data["description"],
            metric=data["metric"],
            operator=data["operator"],
            threshold=data["threshold"],
            is_active=data.get("is_active", True),
        )

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dict for database insertion"""
        return {
            "name": self.name.strip(),
            "description": self.description,
            "metric": self.metric.value,
            "operator": self.operator.value,
            "threshold": self.threshold,
            "is_active": self.is_active,
        }
