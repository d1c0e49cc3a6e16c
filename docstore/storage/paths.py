"""
Path allocation — deterministic, depth-bounded sharding of blob locations.

A storage path is the lower-cased base path followed by four two-hex-digit
segments taken from bytes 0..3 of a freshly generated UUID:

    allocate("Data\\Forms", UUID("01020304-...")) -> "data/forms/01/02/03/04"

Every base path therefore fans out over 256**4 terminal directories, which
bounds the number of objects per terminal prefix.

The first segment of a path names the container; the rest plus the file name
form the object name inside it (see split_storage_path).
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple
from uuid import UUID

from docstore.engine.errors import DocStoreValidationError
from docstore.storage.gateway import ROOT_CONTAINER, StorageGateway

logger = logging.getLogger("docstore.storage.paths")

SEPARATOR = "/"
SHARD_LEVELS = 4
DEFAULT_MAX_SEGMENTS = 10

_SPLIT = re.compile(r"[\\/]")


def path_segments(path: Optional[str]) -> List[str]:
    """Split on either separator, lower-case, drop empty segments."""
    if not path:
        return []
    return [s for s in _SPLIT.split(path.lower()) if s]


def normalize_path(path: Optional[str]) -> str:
    """Canonical form of a path: lower-case, ``/`` separated, no empty segments."""
    return SEPARATOR.join(path_segments(path))


def shard_segments(unique_id: UUID) -> List[str]:
    """The four shard segments for ``unique_id``, in byte order."""
    return [f"{b:02x}" for b in unique_id.bytes[:SHARD_LEVELS]]


def split_storage_path(path: str) -> Tuple[str, str]:
    """
    Split a full storage path into ``(container, object_name)``.

    The first segment is the container; the remaining segments (including the
    file name) are joined with ``/``. A bare file name lives in ``$root``.

        split_storage_path("Data\\Forms\\01\\x.pdf") -> ("data", "forms/01/x.pdf")
        split_storage_path("x.pdf")                -> ("$root", "x.pdf")
    """
    segments = path_segments(path)
    if not segments:
        raise DocStoreValidationError("Storage path must not be empty", field="path")
    if len(segments) == 1:
        return ROOT_CONTAINER, segments[0]
    return segments[0], SEPARATOR.join(segments[1:])


class PathAllocator:
    """
    Computes shard paths and makes sure their container exists.

    Capacity is ``max_segments`` path segments in total; four are reserved
    for the shard levels. Base paths with more segments than fit are
    rejected, never truncated.
    """

    def __init__(self, gateway: StorageGateway, max_segments: int = DEFAULT_MAX_SEGMENTS):
        if max_segments <= SHARD_LEVELS:
            raise ValueError(f"max_segments must exceed {SHARD_LEVELS}, got {max_segments}")
        self._gateway = gateway
        self._max_segments = max_segments

    @property
    def max_base_segments(self) -> int:
        return self._max_segments - SHARD_LEVELS

    def compute(self, base_path: str, unique_id: UUID) -> str:
        """Pure part of allocate(): the shard path without any I/O."""
        if base_path is None or not str(base_path).strip():
            raise DocStoreValidationError("Base path must not be empty", field="base_path")
        base = path_segments(base_path)
        if not base:
            raise DocStoreValidationError(
                f"Base path has no segments: {base_path!r}", field="base_path"
            )
        if len(base) > self.max_base_segments:
            raise DocStoreValidationError(
                f"Base path has {len(base)} segments, at most "
                f"{self.max_base_segments} are allowed",
                field="base_path",
            )
        return SEPARATOR.join(base + shard_segments(unique_id))

    async def allocate(self, base_path: str, unique_id: UUID) -> str:
        """
        Compute the shard path for ``unique_id`` under ``base_path`` and ensure
        its container exists.

        Raises:
            DocStoreValidationError: Empty base path or too many segments
            DocStoreStorageError: Backend could not create/verify the container
        """
        path = self.compute(base_path, unique_id)
        container = path.split(SEPARATOR, 1)[0]
        await self._gateway.create_container_if_absent(container)
        logger.debug(f"Allocated path {path}")
        return path
