"""
Storage Gateway — Port interface for the object-storage backend.

The document core only talks to this contract, never to a concrete SDK.
Addressing is container + object name:

- container: a single lower-case token (``$root`` is the backend default container)
- object name: may contain ``/`` separated segments below the container

Implementations:
    AzureBlobGateway        — docstore.storage.azure_blob
    InMemoryStorageGateway  — docstore.storage.memory
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO, Dict, Optional, Union

ROOT_CONTAINER = "$root"

# Azure container naming rules: 3-63 chars, lower-case letters, digits and
# single dashes, starting and ending with a letter or digit.
_CONTAINER_NAME = re.compile(r"^(?=.{3,63}$)[a-z0-9]+(-[a-z0-9]+)*$")

BlobData = Union[bytes, BinaryIO]


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a successful blob write.

    Attributes:
        location: Full URI of the stored blob
        content_hash: Base64 MD5 digest of the uploaded bytes
        size: Number of bytes written
    """
    location: str
    content_hash: str
    size: int


def is_valid_container_name(name: Optional[str]) -> bool:
    """True if ``name`` is a syntactically valid container name (or ``$root``)."""
    if not name:
        return False
    return name == ROOT_CONTAINER or bool(_CONTAINER_NAME.match(name))


class StorageGateway(ABC):
    """Port interface for container/blob operations.

    Every method is a suspension point and may be cancelled by the caller.
    No method retries on failure.
    """

    @property
    @abstractmethod
    def account_name(self) -> str:
        """Storage account identifier; empty when none is configured."""

    @abstractmethod
    async def container_exists(self, container: str) -> bool:
        """Check whether a container exists.

        Must not raise for a syntactically invalid container name;
        returns False instead.
        """

    @abstractmethod
    async def blob_exists(self, container: str, name: str) -> bool:
        """Check whether an object exists in a container."""

    @abstractmethod
    async def upload(
        self,
        container: str,
        name: str,
        data: BlobData,
        metadata: Optional[Dict[str, str]] = None,
    ) -> UploadResult:
        """Write bytes and return the location and content hash.

        The hash is stable for identical bytes. Non-empty ``metadata`` is
        attached after the primary write completes.

        Raises:
            DocStoreStorageError: If the write fails
            DocStoreMetadataError: If the blob was written but metadata could
                not be attached (the blob is NOT rolled back)
        """

    @abstractmethod
    async def open(self, container: str, name: str) -> BinaryIO:
        """Open an object for reading.

        Raises:
            DocStoreNotFoundError: If the object does not exist
        """

    @abstractmethod
    async def delete(self, container: str, name: str) -> bool:
        """Delete an object. Returns False (not an error) if it did not exist."""

    @abstractmethod
    async def create_container_if_absent(self, container: str) -> str:
        """Create a container unless it exists; return its identifier (URI).

        Idempotent: concurrent callers for the same name both succeed.
        """
