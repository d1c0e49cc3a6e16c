"""
DocStore Configuration — Load and validate docstore.yaml at startup.

Usage:
    from docstore.engine.config import load_config, get_config

The configuration is loaded once and treated as read-only afterwards.
DocumentsConfig is frozen: its valid-roles table is normalized on load and
handed to the document service and authorization engine by reference.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from docstore.engine.errors import DocStoreConfigError

CONFIG_FILE_NAME = "docstore.yaml"
CONNECTION_STRING_ENV = "DOCSTORE_STORAGE_CONNECTION_STRING"


# ---------------------------------------------------------------------------
# Pydantic models for docstore.yaml
# ---------------------------------------------------------------------------

class StorageConfig(BaseModel):
    backend: str = "azure"
    connection_string: str = ""
    account_url: Optional[str] = None
    request_timeout_seconds: int = 30

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        if v not in ("azure", "memory"):
            raise ValueError(f"storage backend must be azure/memory, got '{v}'")
        return v


class DatabaseConfig(BaseModel):
    url: str = "sqlite+aiosqlite:///./var/docstore.sqlite"
    echo: bool = False


class DocumentsConfig(BaseModel):
    """Document service settings. Immutable after load."""

    model_config = ConfigDict(frozen=True)

    base_path: str = "Data"
    valid_roles: Tuple[str, ...] = ()
    max_path_segments: int = Field(default=10, ge=5)

    @field_validator("valid_roles", mode="before")
    @classmethod
    def normalize_roles(cls, v: object) -> Tuple[str, ...]:
        if v is None:
            return ()
        if isinstance(v, str):
            v = v.split(";")
        roles: List[str] = []
        for role in v:  # type: ignore[union-attr]
            normalized = str(role).strip().upper()
            if normalized and normalized not in roles:
                roles.append(normalized)
        return tuple(roles)

    @field_validator("base_path")
    @classmethod
    def validate_base_path(cls, v: str) -> str:
        if not v or not v.strip("\\/ "):
            raise ValueError("documents.base_path must not be empty")
        return v


class LogAsyncQueueConfig(BaseModel):
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000


class LoggingConfig(BaseModel):
    level: str = "INFO"
    directory: str = ".docstore/logs"
    structured: bool = True
    async_queue: LogAsyncQueueConfig = LogAsyncQueueConfig()

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"invalid logging level '{v}'")
        return v


class DocStoreConfig(BaseModel):
    """Root model for docstore.yaml."""
    name: str = "DocStore"
    environment: str = "dev"

    storage: StorageConfig = StorageConfig()
    database: DatabaseConfig = DatabaseConfig()
    documents: DocumentsConfig = DocumentsConfig()
    logging: LoggingConfig = LoggingConfig()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

_config: Optional[DocStoreConfig] = None


def _find_project_root() -> Path:
    """Find the project root by looking for docstore.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / CONFIG_FILE_NAME).exists():
            return parent
    return current


def load_config(config_path: Optional[str] = None) -> DocStoreConfig:
    """
    Load and validate docstore.yaml.

    Args:
        config_path: Explicit path to docstore.yaml. If None, auto-discovers.

    Returns:
        Validated DocStoreConfig instance (defaults when no file exists).

    Raises:
        DocStoreConfigError: If the file is not valid YAML or fails validation.
    """
    global _config

    if config_path is None:
        config_path = str(_find_project_root() / CONFIG_FILE_NAME)

    path = Path(config_path)
    raw: dict = {}
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise DocStoreConfigError(f"Invalid YAML in {path}: {e}", object_ref=str(path)) from e

    # Environment wins over the file so secrets stay out of docstore.yaml
    env_conn = os.getenv(CONNECTION_STRING_ENV)
    if env_conn:
        raw.setdefault("storage", {})["connection_string"] = env_conn

    try:
        _config = DocStoreConfig(**raw)
    except ValidationError as e:
        raise DocStoreConfigError(f"Invalid configuration in {path}: {e}", object_ref=str(path)) from e
    return _config


def get_config() -> DocStoreConfig:
    """Get the currently loaded config, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Forget the cached config (tests, reload)."""
    global _config
    _config = None
