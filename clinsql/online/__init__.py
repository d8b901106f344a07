"""
Online processing module initialization.
"""

from .schema_catalog import SchemaCatalog
from .rag_retriever import RAGRetriever
from .prompt_builder import PromptBuilder
from .sql_sanitizer import clean_sql
from .guardrail import Guardrail, PatternGuardrail, SchemaGuardrail, create_guardrail
from .query_executor import QueryExecutor
from .repair import RepairLoop, RepairResult, RepairState, REPAIRABLE_CODES

__all__ = [
    "SchemaCatalog",
    "RAGRetriever",
    "PromptBuilder",
    "clean_sql",
    "Guardrail",
    "PatternGuardrail",
    "SchemaGuardrail",
    "create_guardrail",
    "QueryExecutor",
    "RepairLoop",
    "RepairResult",
    "RepairState",
    "REPAIRABLE_CODES",
]
