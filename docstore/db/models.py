"""
DocStore SQL models.

Tables:
1. documents — one metadata row per stored blob

Role and tag lists are stored as ";"-joined upper-case text, the same form
accepted by the valid-roles setting.
"""

from __future__ import annotations

from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from docstore.db.base import AuditMixin, Base
from docstore.documents.models import ROLE_SEPARATOR, Document, normalize_tokens
from docstore.documents.repository import MUTABLE_FIELDS


def _join(values: List[str]) -> str:
    return ROLE_SEPARATOR.join(normalize_tokens(values))


class DocumentRecord(Base, AuditMixin):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    public_id = Column(String(36), unique=True, nullable=False, index=True)
    location = Column(String(500), unique=True, nullable=False)
    process_name = Column(String(200), nullable=False, index=True)
    original_name = Column(String(255), nullable=False)
    extension = Column(String(20), default="", nullable=False)
    extension_group = Column(String(20), default="", nullable=False)
    dcmi_type = Column(String(20), default="Text", nullable=False)
    content_hash = Column(String(64), default="", nullable=False)
    size = Column(Integer, default=0, nullable=False)
    remarks = Column(Text, default="", nullable=False)
    roles = Column(Text, default="", nullable=False)
    tags = Column(Text, default="", nullable=False)

    created_by = Column(Integer, nullable=False)
    created = Column(DateTime(timezone=True), nullable=False, index=True)
    removed = Column(DateTime(timezone=True), nullable=True)

    is_private = Column(Boolean, default=True, nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)
    is_removed = Column(Boolean, default=False, nullable=False, index=True)

    __table_args__ = (
        Index("idx_documents_process_created", "process_name", "created"),
    )

    @classmethod
    def from_document(cls, document: Document) -> "DocumentRecord":
        record = cls(
            public_id=str(document.public_id),
            location=document.location,
            process_name=document.process_name,
            original_name=document.original_name,
            extension=document.extension,
            extension_group=document.extension_group,
            dcmi_type=document.dcmi_type,
            content_hash=document.content_hash,
            size=document.size,
            created_by=document.created_by,
            created=document.created,
            **cls.column_values({f: getattr(document, f) for f in MUTABLE_FIELDS}),
        )
        return record

    @staticmethod
    def column_values(fields: Dict[str, Any]) -> Dict[str, Any]:
        """Column values for a set of changed mutable Document fields."""
        values: Dict[str, Any] = {}
        for field, value in fields.items():
            if field not in MUTABLE_FIELDS:
                raise ValueError(f"Field '{field}' cannot be changed")
            values[field] = _join(value) if field in ("roles", "tags") else value
        return values

    def to_document(self) -> Document:
        return Document(
            id=self.id,
            public_id=UUID(self.public_id),
            location=self.location,
            process_name=self.process_name,
            original_name=self.original_name,
            extension=self.extension or "",
            extension_group=self.extension_group or "",
            dcmi_type=self.dcmi_type or "Text",
            content_hash=self.content_hash or "",
            size=self.size,
            remarks=self.remarks or "",
            roles=self.roles or "",
            tags=self.tags or "",
            created_by=self.created_by,
            created=self.created,
            removed=self.removed,
            updated_at=self.updated_at,
            updated_by=self.updated_by,
            is_private=self.is_private,
            is_enabled=self.is_enabled,
            is_removed=self.is_removed,
        )

    def __repr__(self) -> str:
        return f"<DocumentRecord {self.public_id} {self.process_name}/{self.location}>"
