import logging
import time
from typing import Callable, List

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from ..config import settings
from ..exceptions import ConfigurationError, EmbeddingError, Text2SQLError


logger = logging.getLogger(__name__)

# Case-insensitive markers of a throttled or quota-limited request
THROTTLE_MARKERS = ("429", "rate", "reduced rate", "payment method")

EMBEDDING_KINDS = ("query", "document")


def is_throttled(exc: BaseException) -> bool:
    """Whether an embedding failure looks like rate limiting."""
    message = str(exc).lower()
    return any(marker in message for marker in THROTTLE_MARKERS)


class EmbeddingManager:
    """Turns text into fixed-length vectors through the embedding service."""

    def __init__(
        self,
        api_key: str = None,
        base_url: str = None,
        model: str = None,
        dimension: int = None,
        retry_backoff: float = None,
        http_client: httpx.Client = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the embedding manager.

        Args:
            api_key: Service API key (uses settings if None)
            base_url: Service base URL
            model: Embedding model name
            dimension: Requested output dimension
            retry_backoff: Seconds to wait before the single throttle retry
            http_client: Pre-configured httpx client, mainly for tests
            sleep: Sleep function used for the backoff
        """
        self.logger = logging.getLogger(__name__)
        self.api_key = api_key if api_key is not None else settings.voyage_api_key
        self.base_url = (base_url or settings.embedding_base_url).rstrip("/")
        self.model = model or settings.embedding_model_name
        self.dimension = dimension or settings.embedding_dimension
        self.retry_backoff = settings.embedding_retry_backoff if retry_backoff is None else retry_backoff
        self.http_client = http_client or httpx.Client(timeout=settings.embedding_timeout)
        self._sleep = sleep

    def embed(self, text: str, kind: str = "query") -> List[float]:
        """
        Generate the embedding for one text.

        A throttled request is retried exactly once after a fixed backoff.

        Args:
            text: Text to embed
            kind: "query" for questions, "document" for stored snippets

        Returns:
            Embedding vector

        Raises:
            EmbeddingError: On any other failure, or when the retry fails too
        """
        if kind not in EMBEDDING_KINDS:
            raise ValueError(f"Unsupported embedding kind: {kind}")

        retrying = Retrying(
            retry=retry_if_exception(is_throttled),
            stop=stop_after_attempt(2),
            wait=wait_fixed(self.retry_backoff),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            return retrying(self._call, text, kind)
        except Text2SQLError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Embedding failed: {e}") from e

    def embed_documents(self, documents: List[str]) -> List[List[float]]:
        """Embed stored documentation snippets one by one."""
        return [self.embed(doc, kind="document") for doc in documents]

    def _call(self, text: str, kind: str) -> List[float]:
        """Single request to the embedding endpoint."""
        if not self.api_key:
            raise ConfigurationError("VOYAGE_API_KEY is not set")

        payload = {
            "model": self.model,
            "input": [text],
            "input_type": kind,
            "output_dimension": self.dimension,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = self.http_client.post(f"{self.base_url}/embeddings", headers=headers, json=payload)
        except httpx.HTTPError as e:
            raise EmbeddingError(f"Embedding failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        try:
            embedding = body["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError):
            embedding = None

        if response.status_code >= 300 or not embedding:
            raise EmbeddingError(f"Embedding failed ({response.status_code}): {body if body is not None else response.text}")

        self.logger.debug(f"Embedded {kind} text into {len(embedding)} dimensions")
        return embedding
