"""
Domain profile: prompt rules, forbidden SQL patterns and the canonical
fallback statement.

A new domain provides its own ``RuleSet`` and ``GuardrailProfile``; the rest
of the pipeline does not change.
"""

import re
from dataclasses import dataclass, field
from typing import Pattern, Tuple


@dataclass(frozen=True)
class Rule:
    """A named constraint rendered as one bullet in a prompt."""

    name: str
    text: str


@dataclass(frozen=True)
class RuleSet:
    """Versioned collection of prompt rules."""

    name: str
    version: str
    output_rules: Tuple[Rule, ...]
    domain_rules: Tuple[Rule, ...]
    repair_rules: Tuple[Rule, ...]

    def get(self, rule_name: str) -> Rule:
        for rule in self.output_rules + self.domain_rules + self.repair_rules:
            if rule.name == rule_name:
                return rule
        raise KeyError(rule_name)


@dataclass(frozen=True)
class ForbiddenPattern:
    name: str
    pattern: Pattern[str]


@dataclass(frozen=True)
class GuardrailProfile:
    """Known-bad constructs and the hand-verified statement that replaces them."""

    name: str
    forbidden: Tuple[ForbiddenPattern, ...]
    fallback_template: str
    fallback_limit: int = 5

    def fallback_sql(self, limit: int = None) -> str:
        return self.fallback_template.format(limit=int(limit or self.fallback_limit)).strip()


CLINICAL_RULES = RuleSet(
    name="clinical",
    version="2025.1",
    output_rules=(
        Rule("sql_only", "Return ONLY valid Postgres SQL."),
        Rule("no_fences", "Do NOT wrap in markdown fences."),
        Rule("single_statement", "One statement only (CTEs ok)."),
        Rule("no_terminator", "No trailing semicolon."),
    ),
    domain_rules=(
        Rule("qualify_tables", "Fully-qualify clinical tables (e.g., clinical.patients)."),
        Rule("no_phantom_columns", 'There is NO column "name" and NO column "next_appointment".'),
        Rule("patient_name", "Use clinical.patients.full_name for patient names."),
        Rule(
            "next_appointment",
            '"Next appointment" = the smallest clinical.appointments.starts_at >= NOW() '
            "with status='scheduled' per patient (use a LATERAL subquery or the view "
            "clinical.v_patient_next_appointment).",
        ),
        Rule("prefer_ctes", "Prefer CTEs."),
        Rule("no_parameters", "Avoid parameters ($1, $2...). Use NOW() and LIMIT 5 if unsure."),
    ),
    repair_rules=(
        Rule("qualify_tables", "Fully-qualify clinical tables."),
        Rule("no_phantom_columns", 'No unknown columns like "name" or "next_appointment".'),
        Rule("output_format", "One statement only; no markdown fences; no trailing semicolon."),
        Rule("defaults", "Prefer CTEs; use NOW() and LIMIT 5 if unsure."),
    ),
)


CLINICAL_GUARDRAIL = GuardrailProfile(
    name="clinical",
    forbidden=(
        # "name" as its own identifier; full_name and friends are fine. Qualified
        # (p.name), quoted ("name") and aliased (AS name) uses are caught too:
        # patients has no name column, so each one points at a wrong query.
        ForbiddenPattern("bare_name_column", re.compile(r"(?<!\w)name\b", re.IGNORECASE)),
        ForbiddenPattern("next_appointment_column", re.compile(r"\bnext_appointment\b", re.IGNORECASE)),
    ),
    fallback_template="""
WITH next_appt AS (
  SELECT p.id, p.full_name,
         (SELECT a.starts_at
          FROM clinical.appointments a
          WHERE a.patient_id = p.id
            AND a.status = 'scheduled'
            AND a.starts_at >= NOW()
          ORDER BY a.starts_at
          LIMIT 1) AS next_starts_at
  FROM clinical.patients p
)
SELECT id, full_name, next_starts_at
FROM next_appt
ORDER BY next_starts_at NULLS LAST
LIMIT {limit}
""",
)
