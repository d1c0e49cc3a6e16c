"""
DocStore Error Hierarchy — Structured exceptions for storage and metadata failures.

Authorization outcomes (not found / not authorized) are NOT exceptions; they are
returned as AccessDecision values by docstore.documents.authorization.
Exceptions are reserved for input validation and backend failures.

Hierarchy:
    DocStoreError
    ├── DocStoreValidationError      — Required input missing or invalid (no I/O done)
    ├── DocStoreNotFoundError        — Blob absent on open
    ├── DocStoreStorageError         — Object-storage backend failure
    │   ├── DocStoreConsistencyError — Container expected to exist but missing
    │   └── DocStoreMetadataError    — Metadata attach failed after the blob was written
    ├── DocStoreRecordError          — Metadata row commit failed
    └── DocStoreConfigError          — Invalid docstore.yaml
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class DocStoreError(Exception):
    """
    Base error for all docstore failures.
    All context is serializable to JSON for the structured log files.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.execution_id: Optional[str] = context.get("execution_id")
        self.object_ref: Optional[str] = context.get("object_ref")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to JSON-compatible dict for logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "execution_id": self.execution_id,
            "object_ref": self.object_ref,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("execution_id", "object_ref")
            },
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.object_ref:
            parts.append(f"object_ref={self.object_ref}")
        if self.execution_id:
            parts.append(f"execution_id={self.execution_id}")
        return " | ".join(parts)


class DocStoreValidationError(DocStoreError):
    """
    Required input was empty or invalid (base path, container, file name).
    Raised before any storage or database call is made.
    """

    def __init__(self, message: str, **context: Any):
        self.field: Optional[str] = context.get("field")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["field"] = self.field
        return d


class DocStoreNotFoundError(DocStoreError):
    """Blob does not exist in the storage backend."""

    def __init__(self, message: str, **context: Any):
        self.container: Optional[str] = context.get("container")
        self.blob_name: Optional[str] = context.get("blob_name")
        super().__init__(message, **context)


class DocStoreStorageError(DocStoreError):
    """Object-storage backend call failed (transient or permanent). Never retried here."""

    def __init__(self, message: str, **context: Any):
        self.container: Optional[str] = context.get("container")
        self.status_code: Optional[int] = context.get("status_code")
        self.error_code: Optional[str] = context.get("error_code")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["container"] = self.container
        d["status_code"] = self.status_code
        d["error_code"] = self.error_code
        return d


class DocStoreConsistencyError(DocStoreStorageError):
    """
    Upload target container does not exist although the allocation step
    should have created it.
    """
    pass


class DocStoreMetadataError(DocStoreStorageError):
    """
    Blob was written but attaching its metadata failed.
    The blob is left in place; `location` and `content_hash` describe it.
    """

    def __init__(self, message: str, **context: Any):
        self.location: Optional[str] = context.get("location")
        self.content_hash: Optional[str] = context.get("content_hash")
        super().__init__(message, **context)


class DocStoreRecordError(DocStoreError):
    """Document metadata row could not be committed."""

    def __init__(self, message: str, **context: Any):
        self.public_id: Optional[str] = context.get("public_id")
        self.operation: Optional[str] = context.get("operation")
        super().__init__(message, **context)


class DocStoreConfigError(DocStoreError):
    """Configuration error — invalid docstore.yaml."""
    pass
