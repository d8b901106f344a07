"""
Data carried through one pipeline run.

All of these are created and discarded within a single ``answer()`` call.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


RowObject = Dict[str, Any]


class SchemaTable(BaseModel):
    """One whitelist entry: a table and its columns in physical order."""

    model_config = ConfigDict(frozen=True)

    table: str
    columns: List[str] = Field(default_factory=list)

    def render(self) -> str:
        return f"{self.table}: {', '.join(self.columns)}"


# An ordered sequence of tables; produced fresh per request
SchemaWhitelist = List[SchemaTable]


class ContextSnippet(BaseModel):
    """A retrieved documentation fragment."""

    model_config = ConfigDict(frozen=True)

    content: str


class DatabaseError(BaseModel):
    """An error reported by the database for a statement (SQLSTATE + text)."""

    model_config = ConfigDict(frozen=True)

    code: Optional[str] = None
    message: str


class ExecutionResult(BaseModel):
    """Rows returned by a statement, or the database error it produced."""

    rows: List[RowObject] = Field(default_factory=list)
    error: Optional[DatabaseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PipelineOutcome(BaseModel):
    """Terminal state of a pipeline run, returned to the caller."""

    question: str = ""
    final_sql: str = ""
    repaired: bool = False
    rows: List[RowObject] = Field(default_factory=list)
    error_message: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return not self.error_message
