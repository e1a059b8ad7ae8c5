"""
Anomaly detection engine.

Evaluates one job record in three independent phases, in this order:
1. Null values: required fields that are empty or absent
2. Deviation: z-score of each numeric metric against the current population
3. Rules: every active threshold rule from the rule store

Each finding is persisted as soon as it is produced. A failure in one phase,
or while persisting one finding, is recorded on the outcome and never stops
the remaining phases or findings.
"""

from collections.abc import Callable, Iterator
from dataclasses import replace
from datetime import datetime, timezone

import numpy as np
import structlog

from src.core.exceptions import InsufficientDataError
from src.jobs.models import JobRecord
from src.rules.models import Operator, compare_values

from .models import (
    AnomalyKind,
    DetectionConfig,
    DetectionError,
    DetectionOutcome,
    DetectionPhase,
    Finding,
)

logger = structlog.get_logger(__name__)


def is_empty(value) -> bool:
    """True for None and for blank strings"""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


class DetectionEngine:
    """Turns a job record into zero or more persisted findings

    Args:
        config: Thresholds, required fields and deviation metrics
        statistics: Object with compute(metric) -> MetricStatistics
        rules: Rule store exposing list_active_rules()
        anomalies: Anomaly store exposing insert_finding(finding) -> id
        comparator: Operator semantics for rules, compare_values by default
    """

    def __init__(
        self,
        config: DetectionConfig,
        statistics,
        rules,
        anomalies,
        comparator: Callable[[float, float, Operator], bool] = compare_values,
    ):
        self.config = config
        self.statistics = statistics
        self.rules = rules
        self.anomalies = anomalies
        self.comparator = comparator

        self.stats = {
            "records_evaluated": 0,
            "findings_persisted": 0,
            "persist_errors": 0,
            "phase_errors": 0,
        }

        logger.info(
            "Detection engine initialized",
            z_score_threshold=config.z_score_threshold,
            required_fields=list(config.required_fields),
            deviation_metrics=[m.value for m in config.deviation_metrics],
        )

    def detect(self, job: JobRecord) -> DetectionOutcome:
        """Run every detection phase on a record and persist what it finds"""
        self.stats["records_evaluated"] += 1
        outcome = DetectionOutcome(job_id=job.job_id)

        phases = (
            (DetectionPhase.NULL_VALUES, self._detect_null_values),
            (DetectionPhase.DEVIATION, self._detect_deviations),
            (DetectionPhase.RULES, self._detect_rule_violations),
        )
        for phase, check in phases:
            try:
                for finding in check(job, outcome):
                    self._persist(finding, outcome)
            except Exception as e:
                self.stats["phase_errors"] += 1
                outcome.errors.append(DetectionError(phase=phase, error=e))
                logger.error(
                    "Detection phase failed",
                    job_id=job.job_id,
                    phase=phase.value,
                    error=str(e),
                )

        logger.debug(
            "Detection completed",
            job_id=job.job_id,
            findings=len(outcome.findings),
            kinds=[kind.value for kind in outcome.kinds()],
            errors=len(outcome.errors),
        )
        return outcome

    def _detect_null_values(self, job: JobRecord, outcome: DetectionOutcome) -> Iterator[Finding]:
        violations = [
            name for name in self.config.required_fields if is_empty(getattr(job, name, None))
        ]
        if violations:
            # The violation count is the metric; any nonzero count is an anomaly
            yield self._finding(
                job,
                kind=AnomalyKind.NULL_VALUES,
                description="Required fields are null",
                value=0.0,
                threshold=0.0,
                operator=Operator.EQUAL,
                violations=violations,
            )

    def _detect_deviations(self, job: JobRecord, outcome: DetectionOutcome) -> Iterator[Finding]:
        for metric in self.config.deviation_metrics:
            value = job.metric_value(metric)
            if value is None:
                continue

            try:
                baseline = self.statistics.compute(metric)
            except InsufficientDataError:
                logger.debug("No baseline population, skipping", metric=metric.value)
                continue
            except Exception as e:
                self.stats["phase_errors"] += 1
                outcome.errors.append(
                    DetectionError(phase=DetectionPhase.DEVIATION, error=e, metric=metric)
                )
                logger.warning(
                    "Baseline unavailable, skipping metric",
                    job_id=job.job_id,
                    metric=metric.value,
                    error=str(e),
                )
                continue

            if not np.isfinite(baseline.stddev) or baseline.stddev == 0:
                logger.debug("Degenerate baseline, skipping", metric=metric.value)
                continue

            z_score = (value - baseline.mean) / baseline.stddev
            if abs(z_score) > self.config.z_score_threshold:
                yield self._finding(
                    job,
                    kind=AnomalyKind.DEVIATION,
                    description=(
                        f"{metric.label} deviates significantly from mean "
                        f"(z-score: {z_score:.2f})"
                    ),
                    value=value,
                    threshold=baseline.mean,
                    operator=Operator.EQUAL,
                    violations=[metric.value],
                )

    def _detect_rule_violations(
        self, job: JobRecord, outcome: DetectionOutcome
    ) -> Iterator[Finding]:
        for rule in self.rules.list_active_rules():
            if not rule.is_active:
                continue

            value = job.metric_value(rule.metric)
            if value is None:
                continue

            if self.comparator(value, rule.threshold, rule.operator):
                yield self._finding(
                    job,
                    kind=AnomalyKind.RULE_THRESHOLD,
                    description=rule.description,
                    value=value,
                    threshold=rule.threshold,
                    operator=rule.operator,
                    violations=[rule.metric.value],
                )

    def _persist(self, finding: Finding, outcome: DetectionOutcome) -> None:
        try:
            finding_id = self.anomalies.insert_finding(finding)
        except Exception as e:
            self.stats["persist_errors"] += 1
            outcome.errors.append(DetectionError(phase=DetectionPhase.PERSIST, error=e))
            logger.error(
                "Failed to persist finding, dropping it",
                job_id=finding.job_id,
                kind=finding.kind.value,
                error=str(e),
            )
            return

        self.stats["findings_persisted"] += 1
        outcome.findings.append(replace(finding, id=finding_id))
        logger.info(
            "Anomaly detected",
            job_id=finding.job_id,
            kind=finding.kind.value,
            value=finding.value,
            threshold=finding.threshold,
            operator=finding.operator.value,
            violations=list(finding.violations),
        )

    @staticmethod
    def _finding(
        job: JobRecord,
        kind: AnomalyKind,
        description: str,
        value: float,
        threshold: float,
        operator: Operator,
        violations: list[str],
    ) -> Finding:
        return Finding(
            job_id=job.job_id,
            kind=kind,
            description=description,
            value=value,
            threshold=threshold,
            operator=operator,
            created_at=datetime.now(timezone.utc),
            violations=tuple(violations),
        )
