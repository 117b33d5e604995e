"""
Configuration management.

Process settings load from environment variables and .env file (prefix:
THREADMEM_). Memory behaviour (recall, working memory, processors) loads
from a YAML file validated into MemoryConfig.
"""

from pathlib import Path
from typing import Any, Literal

import pydantic
import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from threadmem.core.errors import ValidationError

DEFAULT_MEMORY_CONFIG = Path(__file__).parent.parent / "configs" / "memory.yaml"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="THREADMEM_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    provider: Literal["local", "upstash"] = Field(
        default="local", description="Storage backend"
    )

    # Local storage
    data_dir: Path = Field(default=Path("data"), description="Data storage directory")
    db_name: str = Field(default="threadmem.db", description="SQLite database name")

    # Key layout
    key_prefix: str = Field(default="mastra:", description="Prefix for all storage keys")

    # Upstash
    upstash_redis_url: str = Field(default="", description="Upstash Redis REST URL")
    upstash_redis_token: str = Field(default="", description="Upstash Redis REST token")
    upstash_vector_url: str = Field(default="", description="Upstash Vector REST URL")
    upstash_vector_token: str = Field(default="", description="Upstash Vector REST token")
    vector_index: str = Field(default="mastra-memory", description="Vector index name")
    http_timeout: float = Field(default=10.0, description="REST request timeout seconds")

    # Embeddings
    embedding_model: str = Field(
        default="",
        description="Embedding model: empty for offline hashing, "
        "'sentence-transformers/<name>' for local, otherwise a litellm model id",
    )
    embedding_dimension: int = Field(default=384, description="Embedding vector size")
    embedding_batch_size: int = Field(default=16, description="Texts per embedding batch")

    memory_config: Path | None = Field(
        default=None, description="YAML memory config (defaults to packaged config)"
    )

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()


class SemanticRecallConfig(BaseModel):
    enabled: bool = True
    top_k: int = Field(default=5, ge=1)
    message_range: int = Field(default=4, ge=0)
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    fallback_window: int = Field(default=50, ge=1)
    min_query_length: int = Field(default=3, ge=0)


class WorkingMemoryConfig(BaseModel):
    enabled: bool = True
    template: str | None = None


class ProcessorSpec(BaseModel):
    type: str
    options: dict[str, Any] = Field(default_factory=dict)


class MemoryConfig(BaseModel):
    """Per-store memory behaviour."""

    last_messages: int = Field(default=20, ge=1)
    auto_create_threads: bool = True
    message_ttl: int | None = Field(default=None, ge=1, description="Message key TTL seconds")
    semantic_recall: SemanticRecallConfig = Field(default_factory=SemanticRecallConfig)
    working_memory: WorkingMemoryConfig = Field(default_factory=WorkingMemoryConfig)
    processors: list[ProcessorSpec] = Field(default_factory=list)


def parse_memory_config(data: dict[str, Any] | None) -> MemoryConfig:
    """Validate a raw mapping into MemoryConfig."""
    try:
        return MemoryConfig.model_validate(data or {})
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid memory config: {e}") from e


def load_memory_config(path: Path | None = None) -> MemoryConfig:
    """Load memory config from YAML."""
    path = path or DEFAULT_MEMORY_CONFIG
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ValidationError(f"Cannot read memory config {path}: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ValidationError(f"Memory config {path} must be a mapping")
    return parse_memory_config(data)
