"""
Shared fakes for the pipeline's external collaborators.
"""

from typing import List

import pytest

from clinsql.core.gateway import GatewayResponse
from clinsql.exceptions import GatewayUnavailableError
from clinsql.models import DatabaseError, SchemaTable


CLINICAL_WHITELIST = [
    SchemaTable(table="appointments", columns=["id", "patient_id", "starts_at", "status"]),
    SchemaTable(table="patients", columns=["id", "full_name"]),
]


class FakeGateway:
    """In-memory stand-in for DatabaseGateway."""

    def __init__(self, whitelist=None, snippets=None, results=None, schema="clinical"):
        self.schema = schema
        self.whitelist = CLINICAL_WHITELIST if whitelist is None else whitelist
        self.snippets = snippets if snippets is not None else ["patients holds demographics", "appointments link to patients"]
        # Queue of GatewayResponse / Exception for non-introspection statements
        self.results: List = list(results or [])
        self.executed: List[str] = []
        self.match_calls: List[tuple] = []
        self.stored: List[tuple] = []
        self.document_count = 0
        self.catalog_error = None

    def run_sql_ro(self, sql):
        if "information_schema.columns" in sql:
            if isinstance(self.catalog_error, Exception):
                raise self.catalog_error
            if self.catalog_error is not None:
                return GatewayResponse(error=self.catalog_error)
            return GatewayResponse(data=[{"table": t.table, "columns": list(t.columns)} for t in self.whitelist])

        self.executed.append(sql)
        result = self.results.pop(0) if self.results else GatewayResponse(data=[])
        if isinstance(result, Exception):
            raise result
        return result

    def match_schema(self, query_embedding, match_count):
        self.match_calls.append((list(query_embedding), match_count))
        return GatewayResponse(data=[{"content": s} for s in self.snippets[:match_count]])

    def count_documents(self):
        return self.document_count

    def store_documents(self, documents, embeddings, replace=False):
        self.stored.append((list(documents), list(embeddings), replace))
        return len(documents)


class FakeEmbedder:
    model = "fake-embed"

    def __init__(self, dimension=4):
        self.dimension = dimension
        self.calls = []

    def embed(self, text, kind="query"):
        self.calls.append((text, kind))
        return [0.1] * self.dimension

    def embed_documents(self, documents):
        return [self.embed(doc, kind="document") for doc in documents]


class FakeLLM:
    """Returns queued completions and records every prompt."""

    model = "fake-llm"

    def __init__(self, *outputs):
        self.outputs = list(outputs)
        self.prompts: List[str] = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        if not self.outputs:
            raise AssertionError("unexpected completion call")
        out = self.outputs.pop(0)
        if isinstance(out, Exception):
            raise out
        return out


def db_error(code, message):
    return GatewayResponse(error=DatabaseError(code=code, message=message))


def rows(*items):
    return GatewayResponse(data=list(items))


@pytest.fixture
def whitelist():
    return list(CLINICAL_WHITELIST)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def unavailable():
    return GatewayUnavailableError("could not connect to server: Connection refused")
