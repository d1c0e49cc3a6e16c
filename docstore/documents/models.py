"""
DocStore Document Models — Pydantic definitions.

Document: Metadata row for one stored blob (persisted by a DocumentRepository).
DocumentForm: Caller-supplied fields for create and update.
DocumentInformation: The field projection returned to callers.
DocumentResult: (success, message, document) outcome of a service operation.

Status is two independent flags plus a timestamp. The effective state is
derived from them by Document.state, never stored.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Iterable, List, NamedTuple, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger("docstore.documents.models")

ROLE_SEPARATOR = ";"
MAX_PROCESS_NAME_LENGTH = 200
MAX_FILE_NAME_LENGTH = 255
MAX_DCMI_TYPE_LENGTH = 20


def normalize_token(value: str) -> str:
    """Trim and upper-case a role or tag. Idempotent."""
    return value.strip().upper()


def normalize_tokens(values: Optional[Iterable[str]]) -> List[str]:
    """Normalize a role/tag list, dropping empty entries and keeping order."""
    if not values:
        return []
    if isinstance(values, str):
        values = values.split(ROLE_SEPARATOR)
    result = []
    for value in values:
        if value is None:
            continue
        token = normalize_token(str(value))
        if token:
            result.append(token)
    return result


class DocumentState(str, Enum):
    """Effective status derived from is_enabled / is_removed."""
    ACTIVE = "active"
    DISABLED = "disabled"
    REMOVED = "removed"


# ---------------------------------------------------------------------------
# Document record
# ---------------------------------------------------------------------------

class Document(BaseModel):
    """
    Document metadata row. The blob itself lives in object storage at
    ``<base_path>/<process_name>/<location>``.

    Immutable after create: public_id, location, size, created_by, created.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: Optional[int] = Field(default=None, description="Primary key assigned by the store")
    public_id: UUID = Field(default_factory=uuid4, description="Externally visible identifier")
    location: str = Field(max_length=500, description="Shard path relative to the process root")
    process_name: str = Field(max_length=MAX_PROCESS_NAME_LENGTH, description="Process the document was uploaded for")
    original_name: str = Field(max_length=MAX_FILE_NAME_LENGTH, description="File name as uploaded")
    extension: str = Field(default="", max_length=20, description="Extension including the dot")
    extension_group: str = Field(default="", max_length=20, description="Category from the extension table")
    dcmi_type: str = Field(default="Text", max_length=MAX_DCMI_TYPE_LENGTH, description="DCMI Type vocabulary term")
    content_hash: str = Field(default="", max_length=64, description="Base64 MD5 reported by storage")
    size: int = Field(ge=0, description="Byte length at upload time")
    remarks: str = Field(default="", description="Free text")
    roles: List[str] = Field(default_factory=list, description="Role tokens granting visibility")
    tags: List[str] = Field(default_factory=list, description="Searchable tags")

    created_by: int = Field(description="Owning user id")
    created: datetime = Field(description="Upload timestamp (UTC)")
    removed: Optional[datetime] = Field(default=None, description="Soft-delete timestamp")
    updated_at: Optional[datetime] = Field(default=None)
    updated_by: Optional[int] = Field(default=None)

    is_private: bool = Field(default=True, description="Only the owner (or an admin) may see it")
    is_enabled: bool = Field(default=True, description="Disabled rows drop out of default searches")
    is_removed: bool = Field(default=False, description="Soft-deleted; terminal")

    @field_validator("roles", "tags", mode="before")
    @classmethod
    def _normalize(cls, v: object) -> List[str]:
        return normalize_tokens(v)  # type: ignore[arg-type]

    @property
    def state(self) -> DocumentState:
        if self.is_removed:
            return DocumentState.REMOVED
        if not self.is_enabled:
            return DocumentState.DISABLED
        return DocumentState.ACTIVE

    def is_owned_by(self, user_id: int) -> bool:
        return self.created_by == user_id

    def storage_path(self, base_path: str) -> str:
        """Full storage path of the blob: base/process/location."""
        return f"{base_path}/{self.process_name}/{self.location}"


# ---------------------------------------------------------------------------
# Caller-facing models
# ---------------------------------------------------------------------------

class DocumentForm(BaseModel):
    """Fields a caller supplies on upload or update."""

    file_name: str = ""
    process_name: str = ""
    remarks: str = ""
    roles: List[str] = Field(default_factory=list)
    tags: Optional[List[str]] = None
    is_enabled: bool = True
    is_private: bool = True
    dcmi_type: Optional[str] = None


class DocumentInformation(BaseModel):
    """Projection of a Document that is safe to hand to an authorized caller."""

    public_id: Optional[UUID] = None
    document_identifier: str = ""
    process_name: str = ""
    file_name: str = ""
    extension: str = ""
    extension_group: str = ""
    dcmi_type: str = ""
    roles: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    remarks: str = ""
    size: int = -1
    created: Optional[datetime] = None
    uploaded_by: Optional[int] = None
    is_enabled: bool = True
    is_private: bool = True
    is_removed: bool = False
    removed: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Document) -> "DocumentInformation":
        return cls(
            public_id=document.public_id,
            document_identifier=document.location,
            process_name=document.process_name,
            file_name=document.original_name,
            extension=document.extension,
            extension_group=document.extension_group,
            dcmi_type=document.dcmi_type,
            roles=list(document.roles),
            tags=list(document.tags),
            remarks=document.remarks,
            size=document.size,
            created=document.created,
            uploaded_by=document.created_by,
            is_enabled=document.is_enabled,
            is_private=document.is_private,
            is_removed=document.is_removed,
            removed=document.removed,
        )


class DocumentResult(NamedTuple):
    """Outcome of a lifecycle operation. Unpacks like a tuple."""
    success: bool
    message: str
    document: Optional[DocumentInformation] = None
