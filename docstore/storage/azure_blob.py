"""
Azure Blob StorageGateway — adapter over the async Azure Storage SDK.

Container-level operations map one-to-one onto ``azure.storage.blob.aio``.
The adapter converts SDK exceptions into the docstore error hierarchy:

- ResourceNotFoundError on open          → DocStoreNotFoundError
- ResourceExistsError on create          → swallowed (create-if-absent is idempotent)
- malformed container reference on exists → False
- any other HttpResponseError            → DocStoreStorageError (no retry)
"""

from __future__ import annotations

import base64
import hashlib
import logging
from io import BytesIO
from typing import BinaryIO, Dict, Optional

from azure.core.exceptions import (
    HttpResponseError,
    ResourceExistsError,
    ResourceNotFoundError,
)
from azure.storage.blob.aio import BlobServiceClient

from docstore.engine.config import StorageConfig
from docstore.engine.errors import (
    DocStoreConfigError,
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

logger = logging.getLogger("docstore.storage.azure_blob")

# Error codes the service returns for a syntactically bad container reference
_MALFORMED_REFERENCE_CODES = {"InvalidUri", "InvalidResourceName", "OutOfRangeInput"}


def _storage_error(message: str, exc: HttpResponseError, container: str) -> DocStoreStorageError:
    return DocStoreStorageError(
        f"{message}: {exc}",
        container=container,
        status_code=getattr(exc, "status_code", None),
        error_code=getattr(exc, "error_code", None),
    )


class AzureBlobGateway(StorageGateway):
    """StorageGateway backed by Azure Blob Storage."""

    def __init__(self, service_client: BlobServiceClient, request_timeout_seconds: int = 30):
        self._service = service_client
        self._timeout = request_timeout_seconds

    @classmethod
    def from_config(cls, config: StorageConfig) -> "AzureBlobGateway":
        """Build a gateway from the ``storage`` section of docstore.yaml."""
        if config.connection_string:
            client = BlobServiceClient.from_connection_string(config.connection_string)
        elif config.account_url:
            from azure.identity.aio import DefaultAzureCredential

            client = BlobServiceClient(
                account_url=config.account_url,
                credential=DefaultAzureCredential(),
            )
        else:
            raise DocStoreConfigError(
                "Azure storage requires storage.connection_string or storage.account_url",
                object_ref="storage",
            )
        return cls(client, request_timeout_seconds=config.request_timeout_seconds)

    @property
    def account_name(self) -> str:
        return self._service.account_name or ""

    async def container_exists(self, container: str) -> bool:
        if not is_valid_container_name(container):
            return False
        client = self._service.get_container_client(container)
        try:
            return await client.exists(timeout=self._timeout)
        except HttpResponseError as e:
            if getattr(e, "error_code", None) in _MALFORMED_REFERENCE_CODES:
                return False
            raise _storage_error("Could not check container", e, container) from e

    async def blob_exists(self, container: str, name: str) -> bool:
        blob = self._service.get_blob_client(container=container, blob=name)
        try:
            return await blob.exists(timeout=self._timeout)
        except HttpResponseError as e:
            raise _storage_error("Could not check blob", e, container) from e

    async def upload(
        self,
        container: str,
        name: str,
        data: BlobData,
        metadata: Optional[Dict[str, str]] = None,
    ) -> UploadResult:
        blob = self._service.get_blob_client(container=container, blob=name)
        payload = data if isinstance(data, bytes) else data.read()

        try:
            result = await blob.upload_blob(payload, overwrite=True, timeout=self._timeout)
        except HttpResponseError as e:
            logger.error(f"Upload failed: container={container}, blob={name}, error={e}")
            raise _storage_error("Failed to upload blob", e, container) from e

        # Large block uploads do not report an MD5; hash locally in that case
        md5 = result.get("content_md5") if isinstance(result, dict) else None
        digest = bytes(md5) if md5 else hashlib.md5(payload).digest()
        content_hash = base64.b64encode(digest).decode("ascii")
        location = blob.url

        if metadata:
            try:
                await blob.set_blob_metadata(metadata, timeout=self._timeout)
            except HttpResponseError as e:
                logger.error(f"Metadata attach failed for {location}: {e}")
                raise DocStoreMetadataError(
                    f"Blob written but metadata could not be set: {e}",
                    container=container,
                    location=location,
                    content_hash=content_hash,
                    status_code=getattr(e, "status_code", None),
                ) from e

        logger.info(f"Uploaded blob: {location} ({len(payload)} bytes)")
        return UploadResult(location=location, content_hash=content_hash, size=len(payload))

    async def open(self, container: str, name: str) -> BinaryIO:
        blob = self._service.get_blob_client(container=container, blob=name)
        try:
            downloader = await blob.download_blob(timeout=self._timeout)
            data = await downloader.readall()
        except ResourceNotFoundError as e:
            raise DocStoreNotFoundError(
                f"Blob not found: {container}/{name}", container=container, blob_name=name
            ) from e
        except HttpResponseError as e:
            raise _storage_error("Failed to download blob", e, container) from e
        return BytesIO(data)

    async def delete(self, container: str, name: str) -> bool:
        blob = self._service.get_blob_client(container=container, blob=name)
        try:
            await blob.delete_blob(timeout=self._timeout)
        except ResourceNotFoundError:
            return False
        except HttpResponseError as e:
            raise _storage_error("Failed to delete blob", e, container) from e
        logger.info(f"Deleted blob: {container}/{name}")
        return True

    async def create_container_if_absent(self, container: str) -> str:
        client = self._service.get_container_client(container)
        try:
            await client.create_container(timeout=self._timeout)
            logger.info(f"Created container: {container}")
        except ResourceExistsError:
            pass
        except HttpResponseError as e:
            raise _storage_error("Failed to create container", e, container) from e
        return client.url

    async def close(self) -> None:
        await self._service.close()

    async def __aenter__(self) -> "AzureBlobGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
