import json

import httpx
import pytest

from clinsql.core.embedding import EmbeddingManager, is_throttled
from clinsql.exceptions import ConfigurationError, EmbeddingError


VECTOR = [0.25, -0.5, 0.75]


def ok_response(vector=VECTOR):
    return httpx.Response(200, json={"data": [{"embedding": vector}]})


def throttled_response():
    return httpx.Response(429, json={"detail": "You have exceeded the reduced rate limits."})


class Recorder:
    """MockTransport handler replaying queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_manager(handler, sleeps=None):
    return EmbeddingManager(
        api_key="test-key",
        base_url="https://embed.test/v1",
        model="voyage-3.5",
        dimension=1024,
        retry_backoff=25,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=(sleeps.append if sleeps is not None else lambda _: None),
    )


def test_embed_sends_expected_request():
    handler = Recorder(ok_response())
    manager = make_manager(handler)

    assert manager.embed("next appointments", kind="query") == VECTOR

    request = handler.requests[0]
    assert request.url == "https://embed.test/v1/embeddings"
    assert request.headers["Authorization"] == "Bearer test-key"
    assert json.loads(request.content) == {
        "model": "voyage-3.5",
        "input": ["next appointments"],
        "input_type": "query",
        "output_dimension": 1024,
    }


def test_throttle_then_success_makes_exactly_two_calls():
    handler = Recorder(throttled_response(), ok_response())
    sleeps = []
    manager = make_manager(handler, sleeps)

    assert manager.embed("q") == VECTOR
    assert len(handler.requests) == 2
    assert sleeps == [25]


def test_throttle_twice_raises_embedding_error():
    handler = Recorder(throttled_response(), throttled_response())
    sleeps = []
    manager = make_manager(handler, sleeps)

    with pytest.raises(EmbeddingError):
        manager.embed("q")
    assert len(handler.requests) == 2
    assert sleeps == [25]


def test_non_throttle_error_is_not_retried():
    handler = Recorder(httpx.Response(401, json={"detail": "Invalid API key"}))
    sleeps = []
    manager = make_manager(handler, sleeps)

    with pytest.raises(EmbeddingError, match="401"):
        manager.embed("q")
    assert len(handler.requests) == 1
    assert sleeps == []


def test_transport_failure_is_wrapped():
    handler = Recorder(httpx.ConnectError("connection refused"))
    manager = make_manager(handler)

    with pytest.raises(EmbeddingError, match="connection refused"):
        manager.embed("q")
    assert len(handler.requests) == 1


def test_missing_embedding_in_success_payload_fails():
    handler = Recorder(httpx.Response(200, json={"data": []}))
    manager = make_manager(handler)

    with pytest.raises(EmbeddingError):
        manager.embed("q")


def test_missing_api_key_fails_without_request():
    handler = Recorder()
    manager = make_manager(handler)
    manager.api_key = ""

    with pytest.raises(ConfigurationError, match="VOYAGE_API_KEY"):
        manager.embed("q")
    assert handler.requests == []


def test_unknown_kind_is_rejected():
    manager = make_manager(Recorder())
    with pytest.raises(ValueError):
        manager.embed("q", kind="passage")


def test_embed_documents_uses_document_kind():
    handler = Recorder(ok_response(), ok_response())
    manager = make_manager(handler)

    assert manager.embed_documents(["a", "b"]) == [VECTOR, VECTOR]
    assert [json.loads(r.content)["input_type"] for r in handler.requests] == ["document", "document"]


@pytest.mark.parametrize("message, expected", [
    ("Embedding failed (429): too many requests", True),
    ("You are being RATE limited", True),
    ("Please add a payment method to lift limits", True),
    ("Embedding failed (401): invalid key", False),
])
def test_is_throttled(message, expected):
    assert is_throttled(Exception(message)) is expected
