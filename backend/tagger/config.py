from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APP_",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    debug: bool = False
    log_level: str = "INFO"

    # API
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8000",
    ]

    cors_origin_regex: str | None = None
    trusted_hosts: list[str] = ["*"]
    root_path: str = ""

    # Text generation and embeddings (any OpenAI-compatible endpoint, Ollama by default)
    llm_base_url: str = "http://localhost:11434/v1"
    llm_api_key: str = "ollama"
    llm_model: str = "llama3:8b"
    llm_temperature: float = 0.0
    embedding_model: str = "nomic-embed-text"

    # Qdrant
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: str | None = None
    qdrant_prefer_grpc: bool = False
    collection_name: str = "image-tags"
    vector_size: int = 768  # must match the embedding model output
    ensure_collection_on_startup: bool = True

    # Pipelines
    embedding_concurrency: int = 1  # in-flight embed+search chains per call
    match_score_threshold: float = 0.8
    search_score_threshold: float = 0.6
    search_limit: int = 32
    backend_timeout: float = Field(default=30.0, gt=0)  # seconds, per embedding/search/generation call


settings = Settings()
