from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Completion service (OpenAI-compatible chat completions)
    groq_api_key: str = Field(default="")
    llm_base_url: str = Field(default="https://api.groq.com/openai/v1")
    llm_model_name: str = Field(default="llama-3.1-8b-instant")
    llm_timeout: float = Field(default=60.0)

    # Embedding service
    voyage_api_key: str = Field(default="")
    embedding_base_url: str = Field(default="https://api.voyageai.com/v1")
    embedding_model_name: str = Field(default="voyage-3.5")
    embedding_dimension: int = Field(default=1024)
    embedding_timeout: float = Field(default=30.0)
    # Single backoff before the one throttle retry (free-tier limits)
    embedding_retry_backoff: float = Field(default=25.0)

    # Database Configuration
    database_url_override: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")
    db_host: str = Field(default="localhost")
    db_port: int = Field(default=5432)
    db_user: str = Field(default="postgres")
    db_password: str = Field(default="")
    db_name: str = Field(default="postgres")
    db_schema: str = Field(default="clinical")
    sql_timeout: int = Field(default=30)

    # RAG Configuration
    rag_top_k: int = Field(default=6)

    # Guardrail Configuration
    guardrail_mode: str = Field(default="pattern")
    fallback_row_limit: int = Field(default=5)

    # Application Configuration
    app_host: str = Field(default="0.0.0.0")
    app_port: int = Field(default=8000)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    display_row_limit: int = Field(default=100)

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        if self.database_url_override:
            return self.database_url_override
        return f"postgresql+psycopg2://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"


# Global settings instance
settings = Settings()
