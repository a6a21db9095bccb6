from __future__ import annotations

import logging
import os
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from .constants import (
    ALLOWED_UPLOAD_EXTENSIONS,
    DEFAULT_LLM_TIMEOUT,
    DEFAULT_MAX_WORDS,
    DEFAULT_MIN_WORDS,
    DEFAULT_TOP_K,
    MAX_CONVERSATION_MESSAGES,
    MAX_UPLOAD_BYTES,
)
from .errors import ConfigError


class ChunkingConfig(BaseModel):
    """Word bounds used when splitting documents for storage."""

    min_words: int = DEFAULT_MIN_WORDS
    max_words: int = DEFAULT_MAX_WORDS

    @model_validator(mode="after")
    def _check_bounds(self) -> ChunkingConfig:
        if self.min_words < 1 or self.max_words < 1:
            raise ValueError("chunk word bounds must be positive")
        if self.min_words > self.max_words:
            raise ValueError(
                f"min_words ({self.min_words}) must not exceed max_words ({self.max_words})"
            )
        return self


class RetrievalConfig(BaseModel):
    top_k: int = DEFAULT_TOP_K


class MemoryConfig(BaseModel):
    max_messages: int = MAX_CONVERSATION_MESSAGES


class LLMConfig(BaseModel):
    """Outbound LLM request settings."""

    timeout: Optional[float] = DEFAULT_LLM_TIMEOUT


class UploadConfig(BaseModel):
    """Where uploads are staged and which files are accepted."""

    directory: str = "uploads"
    max_bytes: int = MAX_UPLOAD_BYTES
    allowed_extensions: List[str] = Field(
        default_factory=lambda: list(ALLOWED_UPLOAD_EXTENSIONS)
    )


class NodeflowConfig(BaseModel):
    """Top-level configuration model."""

    database_url: Optional[str] = None
    log_level: str = "INFO"
    chunking: ChunkingConfig = ChunkingConfig()
    retrieval: RetrievalConfig = RetrievalConfig()
    memory: MemoryConfig = MemoryConfig()
    llm: LLMConfig = LLMConfig()
    uploads: UploadConfig = UploadConfig()


def load_config(path: Optional[str] = None) -> NodeflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to NODEFLOW_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("NODEFLOW_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        try:
            config = NodeflowConfig(**data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration in {config_path}: {exc}") from exc
    else:
        config = NodeflowConfig()

    env_db_url = os.getenv("NODEFLOW_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    env_log_level = os.getenv("NODEFLOW_LOG_LEVEL")
    if env_log_level:
        config.log_level = env_log_level
    return config


def configure_logging(config: NodeflowConfig) -> None:
    """Configure the root logger from ``config.log_level``."""
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
