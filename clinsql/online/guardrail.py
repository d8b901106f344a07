import logging
from typing import List, Optional, Sequence, Set

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from ..config import settings
from ..models import SchemaTable
from .rules import CLINICAL_GUARDRAIL, GuardrailProfile


class Guardrail:
    """
    Replaces known-bad generated SQL with the profile's canonical fallback.

    Subclasses decide what "known-bad" means; substitution is shared.
    """

    def __init__(self, profile: GuardrailProfile = None, fallback_limit: int = None):
        self.logger = logging.getLogger(__name__)
        self.profile = profile or CLINICAL_GUARDRAIL
        self.fallback_limit = fallback_limit or settings.fallback_row_limit

    def violations(self, sql: str, whitelist: Optional[Sequence[SchemaTable]] = None) -> List[str]:
        raise NotImplementedError

    def validate(
        self,
        sql: str,
        question: str,
        whitelist: Optional[Sequence[SchemaTable]] = None
    ) -> str:
        """
        Return ``sql`` unchanged, or the fallback statement if it violates a check.

        Args:
            sql: Sanitized generated statement
            question: User question (for logging)
            whitelist: Current whitelist, used by schema-aware checks

        Returns:
            The statement to execute
        """
        found = self.violations(sql, whitelist)
        if not found:
            return sql

        self.logger.warning(
            f"Guardrail replaced generated SQL for question {question!r}: {', '.join(found)}"
        )
        return self.profile.fallback_sql(self.fallback_limit)


class PatternGuardrail(Guardrail):
    """Regex checks for constructs the model is known to invent."""

    def violations(self, sql: str, whitelist: Optional[Sequence[SchemaTable]] = None) -> List[str]:
        return [check.name for check in self.profile.forbidden if check.pattern.search(sql or "")]


class SchemaGuardrail(Guardrail):
    """Parses the statement and checks every table and column against the whitelist."""

    def __init__(self, profile: GuardrailProfile = None, fallback_limit: int = None, dialect: str = "postgres"):
        super().__init__(profile, fallback_limit)
        self.dialect = dialect

    def violations(self, sql: str, whitelist: Optional[Sequence[SchemaTable]] = None) -> List[str]:
        if not whitelist:
            return []

        try:
            parsed = sqlglot.parse_one(sql, dialect=self.dialect)
        except SqlglotError as e:
            # Let the database report it; the repair loop handles syntax errors
            self.logger.debug(f"Schema guardrail could not parse SQL: {e}")
            return []

        known_tables = {t.table.lower() for t in whitelist}
        known_columns = {c.lower() for t in whitelist for c in t.columns}

        local_names: Set[str] = set()
        for cte in parsed.find_all(exp.CTE):
            local_names.add(cte.alias_or_name.lower())
        for alias in parsed.find_all(exp.Alias):
            local_names.add(alias.alias.lower())
        for table_alias in parsed.find_all(exp.TableAlias):
            local_names.add(table_alias.name.lower())
            local_names.update(col.name.lower() for col in table_alias.columns)

        found = []
        for table in parsed.find_all(exp.Table):
            name = table.name.lower()
            if name and name not in known_tables and name not in local_names:
                found.append(f"unknown_table:{table.name}")

        for column in parsed.find_all(exp.Column):
            name = column.name.lower()
            if name in ("", "*"):
                continue
            if name not in known_columns and name not in local_names:
                found.append(f"unknown_column:{column.name}")

        return found


def create_guardrail(mode: str = None, profile: GuardrailProfile = None) -> Guardrail:
    """Build the guardrail selected by ``GUARDRAIL_MODE``."""
    mode = (mode or settings.guardrail_mode).lower()
    if mode == "pattern":
        return PatternGuardrail(profile)
    if mode == "schema":
        return SchemaGuardrail(profile)
    raise ValueError(f"Unsupported guardrail mode: {mode}")
