"""
Core module initialization.
"""

from ..config import settings
from .llm import LLMManager
from .embedding import EmbeddingManager
from .gateway import DatabaseGateway, GatewayResponse

__all__ = ["settings", "LLMManager", "EmbeddingManager", "DatabaseGateway", "GatewayResponse"]
