"""
DocStore Storage — object-storage port, adapters and path sharding.

Azure adapter lives in docstore.storage.azure_blob (imported on demand).
"""

from docstore.storage.factory import build_storage_gateway
from docstore.storage.gateway import ROOT_CONTAINER, StorageGateway, UploadResult
from docstore.storage.memory import InMemoryStorageGateway
from docstore.storage.paths import PathAllocator, normalize_path, split_storage_path
from docstore.storage.service import BinaryStorageService

__all__ = [
    "ROOT_CONTAINER",
    "StorageGateway",
    "UploadResult",
    "InMemoryStorageGateway",
    "PathAllocator",
    "normalize_path",
    "split_storage_path",
    "BinaryStorageService",
    "build_storage_gateway",
]
