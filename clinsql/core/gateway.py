import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from ..config import settings
from ..exceptions import GatewayUnavailableError
from ..models import DatabaseError


RAW_EXECUTION = {"no_parameters": True}


class GatewayResponse(BaseModel):
    """``{data, error}`` pair returned by every gateway operation."""

    data: List[Dict[str, Any]] = []
    error: Optional[DatabaseError] = None


def to_database_error(exc: DBAPIError) -> Optional[DatabaseError]:
    """
    Map a DBAPI error to a database-reported error.

    Returns None when the driver attached no SQLSTATE, which means the
    failure happened in transport rather than in the statement.
    """
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None)
    if not code or exc.connection_invalidated:
        return None

    diag = getattr(orig, "diag", None)
    message = getattr(diag, "message_primary", None) or str(orig).strip()
    return DatabaseError(code=code, message=message)


def format_vector(vector: Sequence[float]) -> str:
    """Render an embedding in pgvector's text input format."""
    return "[" + ",".join(repr(float(v)) for v in vector) + "]"


class DatabaseGateway:
    """Read-only access to the clinical database."""

    def __init__(
        self,
        database_url: str = None,
        schema: str = None,
        engine: Engine = None,
        statement_timeout: int = None
    ):
        """
        Create the gateway. No connection is opened until the first call.

        Args:
            database_url: SQLAlchemy URL (uses settings if None)
            schema: Schema that holds the clinical tables
            engine: Pre-built engine, mainly for tests
            statement_timeout: Per-statement timeout in seconds
        """
        self.logger = logging.getLogger(__name__)
        self.schema = schema or settings.db_schema
        self.statement_timeout = statement_timeout or settings.sql_timeout
        self.engine = engine or self._create_engine(database_url or settings.database_url)

    def _create_engine(self, database_url: str) -> Engine:
        engine = create_engine(database_url, pool_pre_ping=True)
        self.logger.info(f"Database engine ready for: {engine.url.render_as_string(hide_password=True)}")
        return engine

    def run_sql_ro(self, sql: str) -> GatewayResponse:
        """
        Execute one statement in a read-only transaction.

        The statement is passed to the driver untouched; the transaction is
        always rolled back.

        Returns:
            GatewayResponse with rows as dictionaries, or the database error

        Raises:
            GatewayUnavailableError: When the database cannot be reached
        """
        try:
            with self.engine.connect() as conn:
                try:
                    conn.execute(text("SET TRANSACTION READ ONLY"))
                    conn.execute(text(f"SET LOCAL statement_timeout = {int(self.statement_timeout) * 1000}"))
                    # No parameters at all, so psycopg2 leaves "%" in LIKE patterns alone
                    result = conn.exec_driver_sql(sql, execution_options=RAW_EXECUTION)
                    rows = [dict(row._mapping) for row in result] if result.returns_rows else []
                    return GatewayResponse(data=rows)
                finally:
                    conn.rollback()
        except DBAPIError as e:
            error = to_database_error(e)
            if error is None:
                raise GatewayUnavailableError(str(e.orig or e).strip()) from e
            self.logger.debug(f"Database reported {error.code}: {error.message}")
            return GatewayResponse(error=error)
        except SQLAlchemyError as e:
            raise GatewayUnavailableError(str(e)) from e

    def match_schema(self, query_embedding: Sequence[float], match_count: int) -> GatewayResponse:
        """
        Similarity search over the stored schema documentation.

        Ranking is done by the database function ``<schema>.match_schema``.
        """
        sql = text(
            f"SELECT content FROM {self.schema}.match_schema("
            f"CAST(:query_embedding AS vector), :match_count)"
        )
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    sql,
                    {"query_embedding": format_vector(query_embedding), "match_count": match_count},
                )
                return GatewayResponse(data=[dict(row._mapping) for row in result])
        except DBAPIError as e:
            error = to_database_error(e)
            if error is None:
                raise GatewayUnavailableError(str(e.orig or e).strip()) from e
            return GatewayResponse(error=error)
        except SQLAlchemyError as e:
            raise GatewayUnavailableError(str(e)) from e

    def count_documents(self) -> int:
        """Number of stored documentation snippets."""
        try:
            with self.engine.connect() as conn:
                return conn.execute(text(f"SELECT COUNT(*) FROM {self.schema}.schema_docs")).scalar() or 0
        except SQLAlchemyError as e:
            raise GatewayUnavailableError(str(e)) from e

    def store_documents(self, documents: List[str], embeddings: List[List[float]], replace: bool = False) -> int:
        """
        Write documentation snippets and their embeddings.

        This is the only write path and is used by the offline builder,
        never by ``answer()``.

        Args:
            documents: Snippet texts
            embeddings: One vector per snippet
            replace: Delete existing snippets first

        Returns:
            Number of rows written
        """
        if len(documents) != len(embeddings):
            raise ValueError("documents and embeddings must have the same length")

        rows = [
            {"content": doc, "embedding": format_vector(vec)}
            for doc, vec in zip(documents, embeddings)
        ]
        try:
            with self.engine.begin() as conn:
                if replace:
                    conn.execute(text(f"DELETE FROM {self.schema}.schema_docs"))
                if rows:
                    conn.execute(
                        text(
                            f"INSERT INTO {self.schema}.schema_docs (content, embedding) "
                            f"VALUES (:content, CAST(:embedding AS vector))"
                        ),
                        rows,
                    )
            self.logger.info(f"Stored {len(rows)} documentation snippets")
            return len(rows)
        except SQLAlchemyError as e:
            raise GatewayUnavailableError(str(e)) from e
