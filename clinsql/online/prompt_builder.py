import logging
from typing import List, Sequence

from ..models import ContextSnippet, SchemaTable
from .rules import CLINICAL_RULES, Rule, RuleSet


class PromptBuilder:
    """Builds generation and repair prompts from the question, context and whitelist."""

    def __init__(self, rule_set: RuleSet = None):
        """
        Initialize prompt builder.

        Args:
            rule_set: Rule configuration to embed (clinical rules by default)
        """
        self.logger = logging.getLogger(__name__)
        self.rule_set = rule_set or CLINICAL_RULES

    def build(
        self,
        question: str,
        snippets: Sequence[ContextSnippet],
        whitelist: Sequence[SchemaTable]
    ) -> str:
        """
        Build the prompt for the initial generation attempt.

        Deterministic for the same inputs.

        Args:
            question: User's natural language question
            snippets: Retrieved documentation, most relevant first
            whitelist: Tables and columns the SQL may reference

        Returns:
            Complete prompt string
        """
        prompt_parts = [
            # 1. Output format
            " ".join(rule.text for rule in self.rule_set.output_rules),
            # 2. Whitelist
            f"Use ONLY these tables/columns (anything else is invalid):\n{self.render_whitelist(whitelist)}",
            # 3. Retrieved context
            f"Extra context:\n{self.render_context(snippets)}",
            # 4. Domain rules
            f"Hard rules:\n{self.render_rules(self.rule_set.domain_rules)}",
            f'User question: "{question}"',
        ]

        prompt = "\n\n".join(prompt_parts).strip()
        self.logger.debug(f"Built prompt with {len(prompt)} characters")
        return prompt

    def build_repair(
        self,
        question: str,
        failed_sql: str,
        error_message: str,
        whitelist: Sequence[SchemaTable]
    ) -> str:
        """
        Build the prompt for the single repair attempt.

        Args:
            question: Original user question
            failed_sql: Statement that the database rejected
            error_message: Exact database error message
            whitelist: Same whitelist as the failed attempt

        Returns:
            Repair prompt
        """
        prompt = f"""Previous SQL had an error:

SQL:
{failed_sql}

DB error: {error_message}

Fix the SQL. Use ONLY these tables/columns:
{self.render_whitelist(whitelist)}

Rules:
{self.render_rules(self.rule_set.repair_rules)}

User question: "{question}"
"""

        return prompt.strip()

    @staticmethod
    def render_whitelist(whitelist: Sequence[SchemaTable]) -> str:
        return "\n".join(f"- {table.render()}" for table in whitelist or [])

    @staticmethod
    def render_context(snippets: Sequence[ContextSnippet]) -> str:
        return "\n\n".join(
            f"### Context {i}\n{snippet.content}"
            for i, snippet in enumerate(snippets or [], 1)
        )

    @staticmethod
    def render_rules(rules: Sequence[Rule]) -> str:
        lines: List[str] = [f"- {rule.text}" for rule in rules]
        return "\n".join(lines)
