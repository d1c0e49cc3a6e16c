"""
Binary Storage Service — path-level document storage over a StorageGateway.

Handles:
- Save-path allocation (delegates to PathAllocator)
- Document writes into an allocated container, with upload metadata
- Existence checks, reads and physical deletes by storage path
- The storage health probe

Paths use either ``\\`` or ``/``; they are lower-cased and split into
container + object name by split_storage_path().
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Dict, Optional
from uuid import UUID

from docstore.engine.errors import DocStoreConsistencyError, DocStoreStorageError
from docstore.engine.logging import log, log_storage_event
from docstore.storage.gateway import ROOT_CONTAINER, BlobData, StorageGateway, UploadResult
from docstore.storage.paths import PathAllocator, split_storage_path

logger = logging.getLogger("docstore.storage.service")


class BinaryStorageService:
    """Stores and retrieves binary documents addressed by storage path."""

    def __init__(self, gateway: StorageGateway, allocator: Optional[PathAllocator] = None):
        self._gateway = gateway
        self._allocator = allocator or PathAllocator(gateway)

    @property
    def gateway(self) -> StorageGateway:
        return self._gateway

    @property
    def allocator(self) -> PathAllocator:
        return self._allocator

    async def create_save_path(self, base_path: str, unique_id: UUID) -> str:
        """Allocate a shard path for a new document under ``base_path``."""
        return await self._allocator.allocate(base_path, unique_id)

    async def create_document(
        self,
        data: BlobData,
        path: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> UploadResult:
        """
        Write a document to ``path``.

        The container must already exist (create_save_path made it). A missing
        container means the allocation step was skipped or failed silently.

        Raises:
            DocStoreConsistencyError: Target container does not exist
            DocStoreStorageError: Upload failed
            DocStoreMetadataError: Blob written, metadata not attached
        """
        container, name = split_storage_path(path)
        if not await self._gateway.container_exists(container):
            raise DocStoreConsistencyError(
                f"Expected existing container: {container}",
                container=container,
                object_ref=path,
            )

        try:
            result = await self._gateway.upload(container, name, data, metadata or None)
        except DocStoreStorageError as e:
            log(log_storage_event("blob_upload_failed", container, name, success=False, error=str(e)))
            raise

        log(log_storage_event("blob_uploaded", container, name, content_hash=result.content_hash))
        return result

    async def open_document(self, path: str) -> BinaryIO:
        """Open a stored document for reading (DocStoreNotFoundError if absent)."""
        container, name = split_storage_path(path)
        return await self._gateway.open(container, name)

    async def document_exists(self, path: str) -> bool:
        container, name = split_storage_path(path)
        if not await self._gateway.container_exists(container):
            return False
        return await self._gateway.blob_exists(container, name)

    async def delete(self, path: str) -> bool:
        """Physically remove a stored document. False if it was not there."""
        container, name = split_storage_path(path)
        deleted = await self._gateway.delete(container, name)
        if deleted:
            log(log_storage_event("blob_deleted", container, name))
        return deleted

    async def _create_root_container(self) -> None:
        try:
            identifier = await self._gateway.create_container_if_absent(ROOT_CONTAINER)
            logger.info(f"Created root container for {self._gateway.account_name}: {identifier}")
        except DocStoreStorageError as e:
            logger.info(f"Could not create root container: {e.status_code}: {e.error_code}")

    async def health(self) -> str:
        """
        Probe the storage backend. Never raises.

        Returns "Healthy", or a short text describing what is wrong.
        """
        try:
            if self._gateway is None:
                return "No storage gateway"
            if not self._gateway.account_name:
                return "Client has no account"
            if not await self._gateway.container_exists(ROOT_CONTAINER):
                await self._create_root_container()
            return "Healthy"
        except Exception as e:
            logger.error(f"Storage health check failed: {e}")
            return str(e) or e.__class__.__name__
