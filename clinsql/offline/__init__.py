"""
Offline processing module initialization.
"""

from .knowledge_base import KnowledgeBaseBuilder

__all__ = ["KnowledgeBaseBuilder"]
