"""
Document repository — persistence port for document metadata rows.

Reads (find_document, query_documents) are plain: they return copies and
track nothing. Writes go through a DocumentUnitOfWork, one per operation:

    work = repository.unit_of_work()
    document = await work.find_document(public_id)
    document.remarks = "..."
    written = await work.complete(caller)

complete() writes only the fields the operation changed, stamped with the
caller for audit attribution, and returns the number of rows written. A row
that is already removed in the store is never written again; its public id
is reported in ``work.skipped`` instead.

Implementations:
    InMemoryDocumentRepository   — this module (tests, memory backend)
    SqlDocumentRepository        — docstore.db.repository
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from docstore.documents.models import Document
from docstore.engine.context import CallerContext
from docstore.engine.errors import DocStoreRecordError

logger = logging.getLogger("docstore.documents.repository")

# Fields an operation may change on an existing row; audit columns are excluded
MUTABLE_FIELDS = (
    "remarks", "roles", "tags", "is_private", "is_enabled", "is_removed", "removed",
)

# Changes per public id: {field: new value}
DocumentChanges = Dict[UUID, Dict[str, Any]]


class DocumentRepository(ABC):
    """Port interface for document metadata persistence."""

    @abstractmethod
    async def find_document(
        self,
        public_id: UUID,
        *,
        include_removed: bool = False,
    ) -> Optional[Document]:
        """Fetch one row by public id; removed rows only with include_removed."""

    @abstractmethod
    async def query_documents(
        self,
        *,
        search: str = "",
        process_name: Optional[str] = None,
        include_inactive: bool = False,
    ) -> List[Document]:
        """
        Non-removed rows, newest first.

        Args:
            search: Substring matched against remarks or original_name ("" = all)
            process_name: Restrict to one process
            include_inactive: Include rows with is_enabled=False
        """

    @abstractmethod
    async def write_changes(
        self,
        caller: CallerContext,
        inserts: List[Document],
        updates: DocumentChanges,
    ) -> Tuple[int, List[UUID]]:
        """
        Write new rows and field changes in one commit.

        Updates to rows that are removed in the store are not applied.

        Returns:
            (rows written, public ids skipped because their row is removed)

        Raises:
            DocStoreRecordError: If the commit fails (nothing is written)
        """

    def unit_of_work(self) -> "DocumentUnitOfWork":
        return DocumentUnitOfWork(self)


class DocumentUnitOfWork:
    """Changes made by one operation, written together by complete()."""

    def __init__(self, repository: DocumentRepository):
        self._repository = repository
        self._new: Dict[UUID, Document] = {}
        self._loaded: Dict[UUID, Tuple[Document, Document]] = {}
        self.skipped: List[UUID] = []

    async def find_document(
        self,
        public_id: UUID,
        *,
        include_removed: bool = False,
    ) -> Optional[Document]:
        """Load a row for modification; complete() writes what changed on it."""
        document = await self._repository.find_document(public_id, include_removed=include_removed)
        if document is not None:
            self._loaded[public_id] = (document.model_copy(deep=True), document)
        return document

    def save_document(self, document: Document) -> None:
        """Track a new row."""
        self._new[document.public_id] = document

    def changes(self) -> DocumentChanges:
        result: DocumentChanges = {}
        for public_id, (original, document) in self._loaded.items():
            diff = {
                f: getattr(document, f)
                for f in MUTABLE_FIELDS
                if getattr(document, f) != getattr(original, f)
            }
            if diff:
                result[public_id] = diff
        return result

    async def complete(self, caller: CallerContext) -> int:
        """
        Commit the tracked changes attributed to ``caller``.

        Returns:
            Number of rows written.

        Raises:
            DocStoreRecordError: If the commit fails (nothing is written)
        """
        inserts = list(self._new.values())
        updates = self.changes()
        self._new = {}
        self._loaded = {}
        if not inserts and not updates:
            return 0
        written, skipped = await self._repository.write_changes(caller, inserts, updates)
        self.skipped.extend(skipped)
        if skipped:
            logger.warning(f"Skipped changes to removed documents: {', '.join(map(str, skipped))}")
        return written


class InMemoryDocumentRepository(DocumentRepository):
    """Dictionary-backed repository. Callers always receive copies."""

    def __init__(self) -> None:
        self._rows: Dict[UUID, Document] = {}
        self._next_id = 1
        self.fail_commits = False

    async def find_document(
        self,
        public_id: UUID,
        *,
        include_removed: bool = False,
    ) -> Optional[Document]:
        await asyncio.sleep(0)
        row = self._rows.get(public_id)
        if row is None or (row.is_removed and not include_removed):
            return None
        return row.model_copy(deep=True)

    async def query_documents(
        self,
        *,
        search: str = "",
        process_name: Optional[str] = None,
        include_inactive: bool = False,
    ) -> List[Document]:
        await asyncio.sleep(0)
        rows = [r for r in self._rows.values() if not r.is_removed]
        if search:
            rows = [r for r in rows if search in r.remarks or search in r.original_name]
        if process_name:
            rows = [r for r in rows if r.process_name == process_name]
        if not include_inactive:
            rows = [r for r in rows if r.is_enabled]
        rows.sort(key=lambda r: (r.created, r.id or 0), reverse=True)
        return [r.model_copy(deep=True) for r in rows]

    async def write_changes(
        self,
        caller: CallerContext,
        inserts: List[Document],
        updates: DocumentChanges,
    ) -> Tuple[int, List[UUID]]:
        await asyncio.sleep(0)
        if self.fail_commits:
            raise DocStoreRecordError("Commit failed", operation="complete")
        if any(d.public_id in self._rows for d in inserts):
            raise DocStoreRecordError("Duplicate public id", operation="complete")

        written = 0
        skipped: List[UUID] = []
        now = datetime.now(timezone.utc)
        for document in inserts:
            document.id = self._next_id
            self._next_id += 1
            self._rows[document.public_id] = document.model_copy(deep=True)
            written += 1
        for public_id, fields in updates.items():
            stored = self._rows.get(public_id)
            if stored is None:
                continue
            if stored.is_removed:
                skipped.append(public_id)
                continue
            changed = {f: v for f, v in fields.items() if getattr(stored, f) != v}
            if not changed:
                continue
            self._rows[public_id] = stored.model_copy(
                update={**changed, "updated_at": now, "updated_by": caller.user_id}, deep=True
            )
            written += 1
        return written, skipped

    def __len__(self) -> int:
        return len(self._rows)
