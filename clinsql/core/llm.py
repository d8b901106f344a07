import logging

import httpx

from ..config import settings
from ..exceptions import ConfigurationError, GenerationError


SYSTEM_PROMPT = "Return only SQL. No explanations."

# Deterministic sampling for SQL generation
GEN_PARAMS = {
    "temperature": 0,
}


class LLMManager:
    """Sends prompts to the chat-completion service and returns raw text."""

    def __init__(
        self,
        api_key: str = None,
        base_url: str = None,
        model: str = None,
        http_client: httpx.Client = None
    ):
        """Initialize the LLM manager."""
        self.logger = logging.getLogger(__name__)
        self.api_key = api_key if api_key is not None else settings.groq_api_key
        self.base_url = (base_url or settings.llm_base_url).rstrip("/")
        self.model = model or settings.llm_model_name
        self.http_client = http_client or httpx.Client(timeout=settings.llm_timeout)

    def complete(self, prompt: str) -> str:
        """
        Run one completion for a fully built prompt.

        There is no retry here; a failed generation is repaired one level up
        with a new prompt.

        Args:
            prompt: Generation or repair prompt

        Returns:
            Raw model output, stripped

        Raises:
            GenerationError: If the service fails or returns no text
        """
        if not self.api_key:
            raise ConfigurationError("GROQ_API_KEY is not set")

        payload = {
            "model": self.model,
            "temperature": GEN_PARAMS["temperature"],
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            r = self.http_client.post(f"{self.base_url}/chat/completions", headers=headers, json=payload)
        except httpx.HTTPError as e:
            self.logger.error(f"Completion request failed: {e}")
            raise GenerationError(f"Completion request failed: {e}") from e

        if r.status_code >= 300:
            raise GenerationError(f"Completion service error {r.status_code}: {r.text}")

        try:
            content = r.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            content = None

        sql = content.strip() if isinstance(content, str) else ""
        if not sql:
            raise GenerationError("No SQL from LLM")

        self.logger.info(f"Generated SQL: {sql}")
        return sql
