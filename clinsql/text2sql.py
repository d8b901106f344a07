"""
Text2SQL: orchestrates one question-to-rows pipeline run.
"""

import logging
from typing import Any, Dict, List, Optional

from .core import DatabaseGateway, EmbeddingManager, LLMManager
from .exceptions import Text2SQLError
from .models import PipelineOutcome, SchemaTable
from .offline import KnowledgeBaseBuilder
from .online import (
    Guardrail,
    PromptBuilder,
    QueryExecutor,
    RAGRetriever,
    RepairLoop,
    SchemaCatalog,
    clean_sql,
    create_guardrail,
)


logger = logging.getLogger(__name__)


class Text2SQL:
    """Main Text2SQL orchestrator."""

    def __init__(
        self,
        database_url: str = None,
        gateway: DatabaseGateway = None,
        embedding_manager: EmbeddingManager = None,
        llm_manager: LLMManager = None,
        prompt_builder: PromptBuilder = None,
        guardrail: Guardrail = None,
        top_k: int = None
    ):
        """
        Initialize Text2SQL system.

        Components hold configuration only; nothing is carried between
        ``answer()`` calls.

        Args:
            database_url: Database connection URL
            gateway: Database gateway (built from ``database_url`` if None)
            embedding_manager: Embedding client
            llm_manager: Completion client
            prompt_builder: Prompt builder with the domain rule set
            guardrail: Guardrail validator (``GUARDRAIL_MODE`` if None)
            top_k: Number of context snippets to retrieve
        """
        self.logger = logging.getLogger(__name__)

        self.gateway = gateway or DatabaseGateway(database_url=database_url)
        self.embedding_manager = embedding_manager or EmbeddingManager()
        self.llm_manager = llm_manager or LLMManager()

        self.catalog = SchemaCatalog(self.gateway)
        self.rag_retriever = RAGRetriever(self.gateway, top_k=top_k)
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.guardrail = guardrail or create_guardrail()
        self.executor = QueryExecutor(self.gateway)
        self.repair_loop = RepairLoop(self.llm_manager, self.executor, self.prompt_builder)

    def answer(self, question: str) -> PipelineOutcome:
        """
        Answer a natural-language question with rows from the database.

        Never raises: any failure is reported through ``error_message``.

        Args:
            question: Natural language question

        Returns:
            PipelineOutcome
        """
        question = (question or "").strip()
        outcome = PipelineOutcome(question=question)
        if not question:
            outcome.error_message = "Question is empty"
            return outcome

        try:
            # 1. Fresh whitelist and retrieved context
            whitelist = self.catalog.fetch()
            query_vector = self.embedding_manager.embed(question, kind="query")
            snippets = self.rag_retriever.retrieve(query_vector)

            # 2. Generate, sanitize and guard
            prompt = self.prompt_builder.build(question, snippets, whitelist)
            sql = clean_sql(self.llm_manager.complete(prompt))
            sql = self.guardrail.validate(sql, question, whitelist)
            outcome.final_sql = sql

            # 3. Execute with at most one repair
            result = self.repair_loop.run(question, sql, whitelist)
        except Text2SQLError as e:
            self.logger.error(f"Pipeline aborted for question {question!r}: {e}")
            outcome.error_message = str(e) or type(e).__name__
            return outcome
        except Exception as e:
            self.logger.exception(f"Unexpected error answering {question!r}")
            outcome.error_message = str(e) or type(e).__name__
            return outcome

        outcome.final_sql = result.final_sql
        outcome.repaired = result.repaired
        outcome.rows = result.rows
        if result.error:
            outcome.error_message = result.error.message or "Query failed"
            outcome.error_code = result.error.code

        self.logger.info(
            f"Answered with {len(outcome.rows)} rows (state={result.state.value}, repaired={outcome.repaired})"
        )
        return outcome

    def get_schema_info(self) -> List[SchemaTable]:
        """Current table/column whitelist."""
        return self.catalog.fetch()

    def build_knowledge_base(
        self,
        business_rules: Optional[Dict[str, Any]] = None,
        force_rebuild: bool = False
    ) -> int:
        """
        Build the schema documentation searched by the retriever.

        Args:
            business_rules: Optional business rules and definitions
            force_rebuild: Whether to rebuild even if documents exist

        Returns:
            Number of stored snippets
        """
        builder = KnowledgeBaseBuilder(self.gateway, self.embedding_manager)
        return builder.build(business_rules=business_rules, force_rebuild=force_rebuild)

    def get_stats(self) -> Dict[str, Any]:
        """Get system statistics."""
        return {
            'schema': self.gateway.schema,
            'llm_model': self.llm_manager.model,
            'embedding_model': self.embedding_manager.model,
            'top_k': self.rag_retriever.top_k,
            'guardrail': type(self.guardrail).__name__,
            'rule_set': f"{self.prompt_builder.rule_set.name}@{self.prompt_builder.rule_set.version}",
        }


_default_pipeline: Optional[Text2SQL] = None


def answer(question: str) -> PipelineOutcome:
    """
    Answer one question with the default, settings-driven pipeline.

    Like ``Text2SQL.answer`` this never raises; a pipeline that cannot be
    built (bad ``GUARDRAIL_MODE``, malformed ``DATABASE_URL``) is reported
    through ``error_message`` and retried on the next call.
    """
    global _default_pipeline
    if _default_pipeline is None:
        try:
            _default_pipeline = Text2SQL()
        except Exception as e:
            logger.exception("Could not build the default pipeline")
            return PipelineOutcome(
                question=(question or "").strip(),
                error_message=str(e) or type(e).__name__,
            )
    return _default_pipeline.answer(question)
