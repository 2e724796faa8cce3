"""
Configuration settings for the intranet retrieval core.

This module uses Pydantic Settings to manage configuration from environment
variables and ``.env`` files. Every retrieval threshold and boost lives here
as a tunable default; none of them is a correctness constraint.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbeddingSettings(BaseSettings):
    """Hash embedder configuration."""

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    dimensions: int = Field(
        default=384,
        ge=32,
        le=4096,
        description="Length of every embedding vector",
    )
    domain_boost: float = Field(
        default=2.0,
        gt=0.0,
        le=10.0,
        description="Weight multiplier for curated organisation terms",
    )
    cache_max_items: int = Field(
        default=1000,
        ge=0,
        le=100_000,
        description="Maximum number of cached embeddings (0 disables caching)",
    )


class ChunkingSettings(BaseSettings):
    """Web content chunking configuration."""

    model_config = SettingsConfigDict(env_prefix="")

    chunk_size: int = Field(
        default=1000,
        ge=100,
        le=10000,
        description="Target chunk size in characters",
    )
    chunk_overlap: int = Field(
        default=100,
        ge=0,
        le=1000,
        description="Characters repeated between consecutive chunks",
    )

    @model_validator(mode="after")
    def validate_overlap_less_than_size(self) -> "ChunkingSettings":
        """Ensure overlap is less than chunk size."""
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be less than chunk_size")
        return self


class SearchSettings(BaseSettings):
    """Retrieval orchestration defaults."""

    model_config = SettingsConfigDict(env_prefix="SEARCH_")

    limit: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum number of results handed to the chat layer",
    )
    min_similarity: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Similarity floor for direct store searches",
    )
    context_max_length: int = Field(
        default=2000,
        ge=50,
        le=100_000,
        description="Character budget shared by all returned results",
    )
    mode: Literal["hybrid", "internal_only", "web_only"] = Field(
        default="hybrid",
        description="Which partitions the orchestrator consults",
    )

    # Base query policy; per-query-type overrides live in the classifier
    internal_data_threshold: float = Field(default=0.4, ge=0.0, le=1.0)
    min_internal_results: int = Field(default=1, ge=0, le=100)
    internal_data_boost: float = Field(default=1.5, gt=0.0, le=10.0)
    internal_search_limit: int = Field(default=10, ge=1, le=500)
    web_search_limit: int = Field(default=15, ge=0, le=500)
    policy_min_similarity: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Floor applied to boosted internal and raw web matches",
    )


class StoreSettings(BaseSettings):
    """Document store configuration."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    max_documents: int = Field(
        default=1000,
        ge=1,
        le=1_000_000,
        description="Upper bound on stored documents (chunks)",
    )
    persistence_enabled: bool = Field(
        default=False,
        description="Write the store through to a JSON snapshot",
    )
    persistence_path: str = Field(
        default="./data/vectorstore_documents.json",
        description="Location of the JSON snapshot",
    )


class IndexingSettings(BaseSettings):
    """Website indexing configuration."""

    model_config = SettingsConfigDict(env_prefix="INDEXING_")

    website_url: str = Field(
        default="",
        description="Base URL of the website whose pages are indexed",
    )
    refresh_interval_hours: float = Field(
        default=24.0,
        gt=0.0,
        le=24 * 365,
        description="Skip re-indexing the website within this window",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log format",
    )
    debug: bool = Field(
        default=False,
        description="Force DEBUG log level",
    )


class Settings(BaseSettings):
    """Main settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(
        default="intranet-rag",
        description="Application name",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )

    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    chunking: ChunkingSettings = Field(default_factory=ChunkingSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    indexing: IndexingSettings = Field(default_factory=IndexingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="after")
    def validate_budget_covers_results(self) -> "Settings":
        """Every returned result needs at least a few characters of budget."""
        if self.search.context_max_length // self.search.limit < 10:
            raise ValueError(
                "search.context_max_length is too small for search.limit results"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Note:
        Settings are cached after first load. Call `get_settings.cache_clear()`
        to reload settings from environment.
    """
    return Settings()


def reload_settings() -> Settings:
    """Reload settings from environment."""
    get_settings.cache_clear()
    return get_settings()
