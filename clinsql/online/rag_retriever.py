import logging
from typing import List, Sequence

from ..config import settings
from ..core import DatabaseGateway
from ..exceptions import GatewayUnavailableError, RetrievalError
from ..models import ContextSnippet


class RAGRetriever:
    """Retrieves relevant schema documentation by vector similarity."""

    def __init__(self, gateway: DatabaseGateway, top_k: int = None):
        """
        Initialize RAG retriever.

        Args:
            gateway: Database gateway exposing ``match_schema``
            top_k: Default number of snippets to return
        """
        self.logger = logging.getLogger(__name__)
        self.gateway = gateway
        self.top_k = top_k or settings.rag_top_k

    def retrieve(self, vector: Sequence[float], top_k: int = None) -> List[ContextSnippet]:
        """
        Return at most ``top_k`` snippets, most relevant first.

        Ranking belongs to the database; results are neither re-ranked nor
        deduplicated.

        Raises:
            RetrievalError: If the similarity search fails
        """
        if top_k is None:
            top_k = self.top_k

        try:
            response = self.gateway.match_schema(vector, top_k)
        except GatewayUnavailableError as e:
            raise RetrievalError(f"match_schema: {e}") from e

        if response.error:
            raise RetrievalError(f"match_schema: {response.error.message}")

        snippets = [ContextSnippet(content=row.get("content") or "") for row in response.data[:top_k]]
        self.logger.info(f"Retrieved {len(snippets)} context snippets")
        return snippets
