"""
DocStore — sharded document storage with role-based visibility.
Version: 1.0

Blobs live in object storage under ``<base>/<process>/<shard>/<uuid><ext>``;
one metadata row per blob carries ownership, roles and soft-delete state.

Entry points:
    docstore.documents.DocumentLifecycleService  — upload/read/search/update/delete
    docstore.storage.BinaryStorageService        — path-level storage access
    docstore.cli.main                            — ``docstore`` console script
"""

__version__ = "1.0.0"
__all__ = ["engine", "storage", "documents", "db"]
