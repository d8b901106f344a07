"""
Schema catalog, context retriever and query executor against a fake gateway.
"""

import pytest

from clinsql.exceptions import CatalogError, ExecutionError, RetrievalError
from clinsql.models import DatabaseError, SchemaTable
from clinsql.online import QueryExecutor, RAGRetriever, SchemaCatalog
from tests.conftest import FakeGateway, db_error, rows


class TestSchemaCatalog:

    def test_fetch_returns_tables_with_ordered_columns(self, gateway):
        whitelist = SchemaCatalog(gateway).fetch()
        assert whitelist == [
            SchemaTable(table="appointments", columns=["id", "patient_id", "starts_at", "status"]),
            SchemaTable(table="patients", columns=["id", "full_name"]),
        ]

    def test_fetch_is_not_cached(self, gateway):
        catalog = SchemaCatalog(gateway)
        catalog.fetch()
        gateway.whitelist = [SchemaTable(table="patients", columns=["id", "full_name", "dob"])]
        assert catalog.fetch()[0].columns == ["id", "full_name", "dob"]

    def test_introspection_error_is_fatal(self, gateway):
        gateway.catalog_error = DatabaseError(code="42501", message="permission denied for schema clinical")
        with pytest.raises(CatalogError, match="permission denied"):
            SchemaCatalog(gateway).fetch()

    def test_connection_error_is_catalog_error(self, gateway, unavailable):
        gateway.catalog_error = unavailable
        with pytest.raises(CatalogError, match="Connection refused"):
            SchemaCatalog(gateway).fetch()


class TestRAGRetriever:

    def test_retrieve_keeps_order_and_duplicates(self):
        gateway = FakeGateway(snippets=["b", "a", "b"])
        snippets = RAGRetriever(gateway, top_k=6).retrieve([0.1, 0.2])
        assert [s.content for s in snippets] == ["b", "a", "b"]
        assert gateway.match_calls == [([0.1, 0.2], 6)]

    def test_retrieve_respects_top_k(self):
        gateway = FakeGateway(snippets=[str(i) for i in range(10)])
        assert len(RAGRetriever(gateway).retrieve([0.0], top_k=3)) == 3

    def test_default_top_k_is_six(self):
        gateway = FakeGateway(snippets=[str(i) for i in range(10)])
        assert len(RAGRetriever(gateway).retrieve([0.0])) == 6

    def test_search_error_is_retrieval_error(self, gateway):
        gateway.match_schema = lambda vector, count: db_error("42883", "function clinical.match_schema does not exist")
        with pytest.raises(RetrievalError, match="match_schema: function"):
            RAGRetriever(gateway).retrieve([0.0])


class TestQueryExecutor:

    def test_rows_are_returned(self):
        gateway = FakeGateway(results=[rows({"id": 1}, {"id": 2})])
        result = QueryExecutor(gateway).execute("SELECT id FROM clinical.patients")
        assert result.ok
        assert result.rows == [{"id": 1}, {"id": 2}]
        assert gateway.executed == ["SELECT id FROM clinical.patients"]

    def test_database_error_is_data_not_exception(self):
        gateway = FakeGateway(results=[db_error("42703", 'column "name" does not exist')])
        result = QueryExecutor(gateway).execute("SELECT name FROM clinical.patients")
        assert not result.ok
        assert result.rows == []
        assert result.error == DatabaseError(code="42703", message='column "name" does not exist')

    def test_transport_failure_raises(self, unavailable):
        gateway = FakeGateway(results=[unavailable])
        with pytest.raises(ExecutionError):
            QueryExecutor(gateway).execute("SELECT 1")
