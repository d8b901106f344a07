import logging
from enum import Enum
from typing import FrozenSet, List, Optional, Sequence

from pydantic import BaseModel, Field

from ..core import LLMManager
from ..models import DatabaseError, RowObject, SchemaTable
from .prompt_builder import PromptBuilder
from .query_executor import QueryExecutor
from .sql_sanitizer import clean_sql


# SQLSTATEs that usually mean the model got the schema or syntax wrong
REPAIRABLE_CODES: FrozenSet[str] = frozenset({
    "42703",  # undefined_column
    "42P01",  # undefined_table
    "42601",  # syntax_error
    "42883",  # undefined_function
})


class RepairState(str, Enum):
    INITIAL = "initial"
    EXECUTED = "executed"
    REPAIRING = "repairing"
    REPAIRED = "repaired"
    FAILED = "failed"
    DONE = "done"


TERMINAL_STATES = frozenset({RepairState.DONE, RepairState.REPAIRED, RepairState.FAILED})


class RepairResult(BaseModel):
    """Where the loop stopped and what it produced."""

    state: RepairState
    final_sql: str
    rows: List[RowObject] = Field(default_factory=list)
    error: Optional[DatabaseError] = None
    attempted_sql: Optional[str] = None

    @property
    def repaired(self) -> bool:
        return self.state == RepairState.REPAIRED


class RepairLoop:
    """
    Executes a statement and, on a repairable database error, regenerates and
    re-executes it exactly once.
    """

    def __init__(
        self,
        llm_manager: LLMManager,
        executor: QueryExecutor,
        prompt_builder: PromptBuilder = None,
        repairable_codes: FrozenSet[str] = REPAIRABLE_CODES
    ):
        self.logger = logging.getLogger(__name__)
        self.llm_manager = llm_manager
        self.executor = executor
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.repairable_codes = frozenset(repairable_codes)

    def is_repairable(self, error: Optional[DatabaseError]) -> bool:
        return bool(error and error.code in self.repairable_codes)

    def run(
        self,
        question: str,
        sql: str,
        whitelist: Sequence[SchemaTable]
    ) -> RepairResult:
        """
        Drive one statement to a terminal state.

        The repaired statement is sanitized but not passed through the
        guardrail again. A failed repair reports the repair's error.

        Args:
            question: User question
            sql: Sanitized, guardrail-checked statement
            whitelist: Whitelist used for the original prompt

        Returns:
            RepairResult in DONE, REPAIRED or FAILED state
        """
        state = RepairState.INITIAL

        first = self.executor.execute(sql)
        state = self._transition(state, RepairState.EXECUTED)

        if first.ok:
            state = self._transition(state, RepairState.DONE)
            return RepairResult(state=state, final_sql=sql, rows=first.rows)

        if not self.is_repairable(first.error):
            self.logger.warning(f"Database error {first.error.code} is not repairable: {first.error.message}")
            state = self._transition(state, RepairState.DONE)
            return RepairResult(state=state, final_sql=sql, error=first.error)

        state = self._transition(state, RepairState.REPAIRING)
        self.logger.info(f"Repairing SQL after database error {first.error.code}")

        repair_prompt = self.prompt_builder.build_repair(question, sql, first.error.message, whitelist)
        repaired_sql = clean_sql(self.llm_manager.complete(repair_prompt))
        second = self.executor.execute(repaired_sql)

        if second.ok:
            state = self._transition(state, RepairState.REPAIRED)
            return RepairResult(
                state=state,
                final_sql=repaired_sql,
                rows=second.rows,
                attempted_sql=repaired_sql,
            )

        state = self._transition(state, RepairState.FAILED)
        return RepairResult(
            state=state,
            final_sql=sql,
            error=second.error,
            attempted_sql=repaired_sql,
        )

    def _transition(self, current: RepairState, target: RepairState) -> RepairState:
        self.logger.debug(f"Repair loop: {current.value} -> {target.value}")
        return target
