"""Persistence layer for nodeflow workflows, knowledge bases and conversations."""

from __future__ import annotations

import os
from typing import Optional

from ..config import NodeflowConfig, load_config
from ..errors import ConfigError
from .inmemory import InMemoryRepository
from .repository import Repository
from .sqlite import SQLiteRepository

try:  # pragma: no cover - asyncpg may fail to build on some platforms
    from .postgres import PostgresRepository
except Exception:  # pragma: no cover
    PostgresRepository = None  # type: ignore

SQLITE_SCHEME = "sqlite://"
POSTGRES_SCHEMES = ("postgres://", "postgresql://")

_repository_instance: Repository | None = None


def _resolve_database_url(
    database_url: Optional[str], config: NodeflowConfig
) -> Optional[str]:
    # load_config already folds the environment into ``config.database_url``;
    # checking it here too keeps an explicitly passed config overridable.
    return (
        database_url
        or os.getenv("NODEFLOW_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or config.database_url
    )


def create_repository(database_url: Optional[str]) -> Repository:
    """Build the repository backend that matches ``database_url``'s scheme."""
    if not database_url:
        return InMemoryRepository()
    if database_url.startswith(SQLITE_SCHEME):
        return SQLiteRepository(database_url[len(SQLITE_SCHEME) :])
    if database_url.startswith(POSTGRES_SCHEMES):
        if PostgresRepository is None:
            raise ConfigError("Postgres support not available: install asyncpg")
        return PostgresRepository(database_url)
    raise ConfigError(f"Unsupported database backend: {database_url}")


def get_repository(
    database_url: Optional[str] = None, config: Optional[NodeflowConfig] = None
) -> Repository:
    """Return the process-wide repository, creating it on first use.

    Passing ``database_url`` or ``config`` always builds a fresh backend and
    makes it the shared one. Without a configured database the repository
    lives in memory.
    """

    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    url = _resolve_database_url(database_url, config or load_config())
    _repository_instance = create_repository(url)
    return _repository_instance


__all__ = [
    "Repository",
    "InMemoryRepository",
    "SQLiteRepository",
    "PostgresRepository",
    "create_repository",
    "get_repository",
]
