"""
clinsql: answers natural-language questions about the clinical schema.

Each question runs one stateless pipeline: live schema introspection,
retrieval of schema documentation, SQL generation under a whitelist,
sanitization, guardrails, read-only execution and at most one repair.
"""

__version__ = "0.1.0"

from .models import PipelineOutcome
from .text2sql import Text2SQL, answer

__all__ = ["Text2SQL", "answer", "PipelineOutcome"]
