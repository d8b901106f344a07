import logging
from typing import Any, Dict, List, Optional, Sequence

from ..core import DatabaseGateway, EmbeddingManager
from ..models import SchemaTable
from ..online.schema_catalog import SchemaCatalog


class KnowledgeBaseBuilder:
    """Builds the schema documentation that the retriever searches."""

    def __init__(self, gateway: DatabaseGateway, embedding_manager: EmbeddingManager):
        """Initialize knowledge base builder."""
        self.logger = logging.getLogger(__name__)
        self.gateway = gateway
        self.embedding_manager = embedding_manager
        self.catalog = SchemaCatalog(gateway)

    def build(
        self,
        business_rules: Optional[Dict[str, Any]] = None,
        force_rebuild: bool = False
    ) -> int:
        """
        Document every whitelisted table and store the embedded snippets.

        Args:
            business_rules: Optional ``{"general_terms": {...}, "table_terms": {table: {...}}}``
            force_rebuild: Replace existing snippets instead of skipping

        Returns:
            Number of snippets stored (0 when skipped)
        """
        if not force_rebuild and self.gateway.count_documents() > 0:
            self.logger.info("Knowledge base already exists. Use force_rebuild=True to rebuild.")
            return 0

        whitelist = self.catalog.fetch()
        documents = self.create_documents(whitelist, business_rules)

        self.logger.info(f"Embedding {len(documents)} documentation snippets")
        embeddings = self.embedding_manager.embed_documents(documents)
        return self.gateway.store_documents(documents, embeddings, replace=True)

    def create_documents(
        self,
        whitelist: Sequence[SchemaTable],
        business_rules: Optional[Dict[str, Any]] = None
    ) -> List[str]:
        """Render one snippet per table plus one for general business terms."""
        business_rules = business_rules or {}
        documents = [
            self._create_table_document(table, business_rules.get("table_terms", {}).get(table.table))
            for table in whitelist
        ]

        general_terms = business_rules.get("general_terms")
        if general_terms:
            documents.append(self._create_business_document(general_terms))

        return documents

    def _create_table_document(self, table: SchemaTable, terms: Optional[Dict[str, str]] = None) -> str:
        qualified = f"{self.gateway.schema}.{table.table}"
        content = f"# Table: {qualified}\n\n## Columns\n"
        content += "".join(f"- {column}\n" for column in table.columns)

        if terms:
            content += "\n## Business Terms\n"
            content += "".join(f"- **{term}**: {definition}\n" for term, definition in terms.items())

        return content

    def _create_business_document(self, terms: Dict[str, str]) -> str:
        content = "# Business Rules and Definitions\n\n"
        content += "".join(f"- **{term}**: {definition}\n" for term, definition in terms.items())
        return content
