"""
In-memory StorageGateway — dictionary-backed fake of the object store.

Used by the test-suite and by the ``memory`` storage backend for local runs.
Follows the same contract as AzureBlobGateway: container names are validated
against the backend naming rules, content hashes are base64 MD5 digests and
metadata is attached after the primary write.

Fault injection switches (``fail_uploads``, ``fail_metadata``) let tests
exercise the error paths of the lifecycle service.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import BinaryIO, Dict, Optional

from docstore.engine.errors import (
    DocStoreMetadataError,
    DocStoreNotFoundError,
    DocStoreStorageError,
)
from docstore.storage.gateway import (
    BlobData,
    StorageGateway,
    UploadResult,
    is_valid_container_name,
)

logger = logging.getLogger("docstore.storage.memory")


@dataclass
class _StoredBlob:
    data: bytes
    content_hash: str
    metadata: Dict[str, str] = field(default_factory=dict)


class InMemoryStorageGateway(StorageGateway):
    """Dictionary-backed StorageGateway."""

    def __init__(self, account_name: str = "memory"):
        self._account_name = account_name
        self._containers: Dict[str, Dict[str, _StoredBlob]] = {}
        self.fail_uploads = False
        self.fail_metadata = False
        self.upload_count = 0

    @property
    def account_name(self) -> str:
        return self._account_name

    def _uri(self, container: str, name: str = "") -> str:
        base = f"memory://{self._account_name}/{container}"
        return f"{base}/{name}" if name else base

    async def container_exists(self, container: str) -> bool:
        await asyncio.sleep(0)
        if not is_valid_container_name(container):
            return False
        return container in self._containers

    async def blob_exists(self, container: str, name: str) -> bool:
        await asyncio.sleep(0)
        return name in self._containers.get(container, {})

    async def upload(
        self,
        container: str,
        name: str,
        data: BlobData,
        metadata: Optional[Dict[str, str]] = None,
    ) -> UploadResult:
        await asyncio.sleep(0)
        if self.fail_uploads:
            raise DocStoreStorageError(
                f"Upload failed: {container}/{name}", container=container, error_code="InjectedFailure"
            )
        blobs = self._containers.get(container)
        if blobs is None:
            raise DocStoreStorageError(
                f"Container not found: {container}", container=container, status_code=404,
                error_code="ContainerNotFound",
            )

        payload = data if isinstance(data, bytes) else data.read()
        content_hash = base64.b64encode(hashlib.md5(payload).digest()).decode("ascii")
        blob = _StoredBlob(data=payload, content_hash=content_hash)
        blobs[name] = blob
        self.upload_count += 1
        location = self._uri(container, name)
        logger.debug(f"Stored {location} ({len(payload)} bytes)")

        if metadata:
            await asyncio.sleep(0)
            if self.fail_metadata:
                raise DocStoreMetadataError(
                    f"Could not set metadata on {location}",
                    container=container,
                    location=location,
                    content_hash=content_hash,
                )
            blob.metadata = dict(metadata)

        return UploadResult(location=location, content_hash=content_hash, size=len(payload))

    async def open(self, container: str, name: str) -> BinaryIO:
        await asyncio.sleep(0)
        blob = self._containers.get(container, {}).get(name)
        if blob is None:
            raise DocStoreNotFoundError(
                f"Blob not found: {container}/{name}", container=container, blob_name=name
            )
        return BytesIO(blob.data)

    async def delete(self, container: str, name: str) -> bool:
        await asyncio.sleep(0)
        blobs = self._containers.get(container, {})
        if name not in blobs:
            return False
        del blobs[name]
        return True

    async def create_container_if_absent(self, container: str) -> str:
        await asyncio.sleep(0)
        if not is_valid_container_name(container):
            raise DocStoreStorageError(
                f"Invalid container name: {container!r}",
                container=container,
                status_code=400,
                error_code="InvalidResourceName",
            )
        self._containers.setdefault(container, {})
        return self._uri(container)

    def metadata_of(self, container: str, name: str) -> Dict[str, str]:
        """Return the metadata attached to a stored blob (empty if none)."""
        blob = self._containers.get(container, {}).get(name)
        return dict(blob.metadata) if blob else {}

    def blob_names(self, container: str) -> list:
        return sorted(self._containers.get(container, {}))
