"""
PostgreSQL operations for the threshold rule store.

The detection engine only reads active rules; the remaining operations form
the rule management surface used by operators and the CLIs.
"""

from typing import Any

import psycopg2.errors
import structlog

from src.core.config import DatabaseConfig
from src.core.database import PostgresConnection
from src.core.exceptions import NotFoundError, PersistenceError, ValidationError

from .models import Rule, RuleRequest

logger = structlog.get_logger(__name__)

_RULE_COLUMNS = (
    "id, name, description, metric, operator, threshold, is_active, created_at, updated_at"
)

DEFAULT_RULES = [
    RuleRequest(
        name="Negative Salary",
        description="Alert if maximum salary is negative",
        metric="max_salary",
        operator="<",
        threshold=0.0,
    ),
]


class RuleDatabase(PostgresConnection):
    """Rule store for threshold anomaly rules"""

    def __init__(self, config: DatabaseConfig):
        super().__init__(config)

    def ensure_table_exists(self):
        """Create the anomaly_rules table if it doesn't exist"""
        query = """
            CREATE TABLE IF NOT EXISTS anomaly_rules (
                id BIGSERIAL PRIMARY KEY,
                name TEXT UNIQUE NOT NULL,
                description TEXT NOT NULL,
                metric TEXT NOT NULL,
                operator TEXT NOT NULL,
                threshold DOUBLE PRECISION NOT NULL,
                is_active BOOLEAN NOT NULL DEFAULT true,
                created_at TIMESTAMPTZ DEFAULT NOW(),
                updated_at TIMESTAMPTZ DEFAULT NOW()
            );

            CREATE INDEX IF NOT EXISTS idx_anomaly_rules_active ON anomaly_rules(is_active);
        """
        try:
            self.execute(query)
            logger.info("Ensured anomaly_rules table exists")
        except Exception as e:
            logger.error("Failed to create anomaly_rules table", error=str(e))
            raise PersistenceError(f"Failed to create anomaly_rules table: {e}") from e

    def seed_default_rules(self) -> int:
        """Insert the default rules unless a rule with the same name exists

        Returns:
            Number of rules inserted
        """
        query = """
            INSERT INTO anomaly_rules (name, description, metric, operator, threshold, is_active)
            VALUES (
                %(name)s, %(description)s, %(metric)s,
                %(operator)s, %(threshold)s, %(is_active)s
            )
            ON CONFLICT (name) DO NOTHING
        """
        inserted = 0
        try:
            for request in DEFAULT_RULES:
                inserted += self.execute(query, request.to_db_dict())
        except Exception as e:
            logger.error("Failed to seed default rules", error=str(e))
            raise PersistenceError(f"Failed to seed default rules: {e}") from e

        logger.info("Default rules seeded", inserted=inserted)
        return inserted

    def create_rule(self, request: RuleRequest) -> Rule:
        """Store a new rule

        Raises:
            ValidationError: If a rule with the same name exists
            PersistenceError: If the insert fails
        """
        query = f"""
            INSERT INTO anomaly_rules (name, description, metric, operator, threshold, is_active)
            VALUES (
                %(name)s, %(description)s, %(metric)s,
                %(operator)s, %(threshold)s, %(is_active)s
            )
            RETURNING {_RULE_COLUMNS}
        """
        row = self._write(query, request.to_db_dict(), "create", name=request.name)
        rule = Rule.from_row(row)
        logger.info("Rule created", rule_id=rule.id, name=rule.name)
        return rule

    def get_rule(self, rule_id: int) -> Rule:
        """Fetch one rule by id

        Raises:
            NotFoundError: If no rule has this id
        """
        query = f"SELECT {_RULE_COLUMNS} FROM anomaly_rules WHERE id = %s"
        try:
            row = self.fetch_one(query, (rule_id,))
        except Exception as e:
            logger.error("Failed to query rule", rule_id=rule_id, error=str(e))
            raise PersistenceError(f"Failed to query rule {rule_id}: {e}") from e

        if row is None:
            raise NotFoundError(f"Anomaly rule with ID {rule_id} not found")
        return Rule.from_row(row)

    def list_rules(self) -> list[Rule]:
        """Fetch every rule, newest first"""
        query = f"SELECT {_RULE_COLUMNS} FROM anomaly_rules ORDER BY created_at DESC, id DESC"
        return self._list(query)

    def list_active_rules(self) -> list[Rule]:
        """Fetch active rules in creation order"""
        query = f"""
            SELECT {_RULE_COLUMNS}
            FROM anomaly_rules
            WHERE is_active
            ORDER BY created_at ASC, id ASC
        """
        return self._list(query)

    def update_rule(self, rule_id: int, request: RuleRequest) -> Rule:
        """Replace every editable field of a rule

        Raises:
            NotFoundError: If no rule has this id
            ValidationError: If the new name belongs to another rule
        """
        query = f"""
            UPDATE anomaly_rules
            SET name = %(name)s,
                description = %(description)s,
                metric = %(metric)s,
                operator = %(operator)s,
                threshold = %(threshold)s,
                is_active = %(is_active)s,
                updated_at = NOW()
            WHERE id = %(id)s
            RETURNING {_RULE_COLUMNS}
        """
        params = {**request.to_db_dict(), "id": rule_id}
        row = self._write(query, params, "update", rule_id=rule_id)
        if row is None:
            raise NotFoundError(f"Anomaly rule with ID {rule_id} not found for update")

        logger.info("Rule updated", rule_id=rule_id)
        return Rule.from_row(row)

    def toggle_rule(self, rule_id: int, is_active: bool) -> Rule:
        """Activate or deactivate a rule without deleting it

        Raises:
            NotFoundError: If no rule has this id
        """
        query = f"""
            UPDATE anomaly_rules
            SET is_active = %(is_active)s,
                updated_at = NOW()
            WHERE id = %(id)s
            RETURNING {_RULE_COLUMNS}
        """
        params = {"is_active": bool(is_active), "id": rule_id}
        row = self._write(query, params, "toggle", rule_id=rule_id)
        if row is None:
            raise NotFoundError(f"Anomaly rule with ID {rule_id} not found for toggle")

        logger.info("Rule toggled", rule_id=rule_id, is_active=bool(is_active))
        return Rule.from_row(row)

    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule

        Raises:
            NotFoundError: If no rule has this id
        """
        try:
            deleted = self.execute("DELETE FROM anomaly_rules WHERE id = %s", (rule_id,))
        except Exception as e:
            logger.error("Failed to delete rule", rule_id=rule_id, error=str(e))
            raise PersistenceError(f"Failed to delete rule {rule_id}: {e}") from e

        if deleted == 0:
            raise NotFoundError(f"Anomaly rule with ID {rule_id} not found for deletion")
        logger.info("Rule deleted", rule_id=rule_id)

    def _write(self, query: str, params: dict[str, Any], action: str, **context) -> dict | None:
        try:
            return self.fetch_one(query, params)
        except psycopg2.errors.UniqueViolation as e:
            logger.warning("Rule name already exists", action=action, **context)
            raise ValidationError(f"A rule named '{params['name']}' already exists") from e
        except Exception as e:
            logger.error(f"Failed to {action} rule", error=str(e), **context)
            raise PersistenceError(f"Failed to {action} rule: {e}") from e

    def _list(self, query: str) -> list[Rule]:
        try:
            rows = self.fetch_all(query)
        except Exception as e:
            logger.error("Failed to list rules", error=str(e))
            raise PersistenceError(f"Failed to list rules: {e}") from e

        rules = []
        for row in rows:
            try:
                rules.append(Rule.from_row(row))
            except ValueError as e:
                # Rows written outside the store may carry legacy metric names
                logger.warning("Skipping undecodable rule", rule_id=row.get("id"), error=str(e))
        return rules
