"""Build the configured StorageGateway."""

from __future__ import annotations

import logging

from docstore.engine.config import StorageConfig
from docstore.storage.gateway import StorageGateway

logger = logging.getLogger("docstore.storage.factory")


def build_storage_gateway(config: StorageConfig) -> StorageGateway:
    """Return the gateway for ``storage.backend`` (azure or memory)."""
    if config.backend == "memory":
        from docstore.storage.memory import InMemoryStorageGateway

        logger.info("Using in-memory storage backend")
        return InMemoryStorageGateway()

    from docstore.storage.azure_blob import AzureBlobGateway

    return AzureBlobGateway.from_config(config)
