"""
SQL document repository — DocumentRepository over an async SQLAlchemy session.

Reads use a short-lived session each and hand out plain pydantic copies.
write_changes() runs one transaction per unit of work: new rows are added,
existing rows receive only the changed fields through an UPDATE guarded by
``is_removed = false``, so a row removed by another operation stays as it is.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docstore.db.models import DocumentRecord
from docstore.documents.models import Document
from docstore.documents.repository import DocumentChanges, DocumentRepository
from docstore.engine.context import CallerContext
from docstore.engine.errors import DocStoreRecordError

logger = logging.getLogger("docstore.db.repository")


class SqlDocumentRepository(DocumentRepository):
    """DocumentRepository backed by the ``documents`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_document(
        self,
        public_id: UUID,
        *,
        include_removed: bool = False,
    ) -> Optional[Document]:
        stmt = select(DocumentRecord).where(DocumentRecord.public_id == str(public_id))
        if not include_removed:
            stmt = stmt.where(DocumentRecord.is_removed.is_(False))
        async with self._session_factory() as session:
            record = (await session.execute(stmt)).scalar_one_or_none()
        return record.to_document() if record is not None else None

    async def query_documents(
        self,
        *,
        search: str = "",
        process_name: Optional[str] = None,
        include_inactive: bool = False,
    ) -> List[Document]:
        stmt = select(DocumentRecord).where(DocumentRecord.is_removed.is_(False))
        if search:
            stmt = stmt.where(or_(
                DocumentRecord.remarks.contains(search, autoescape=True),
                DocumentRecord.original_name.contains(search, autoescape=True),
            ))
        if process_name:
            stmt = stmt.where(DocumentRecord.process_name == process_name)
        if not include_inactive:
            stmt = stmt.where(DocumentRecord.is_enabled.is_(True))
        stmt = stmt.order_by(DocumentRecord.created.desc(), DocumentRecord.id.desc())

        async with self._session_factory() as session:
            records = (await session.execute(stmt)).scalars().all()
        return [r.to_document() for r in records]

    async def write_changes(
        self,
        caller: CallerContext,
        inserts: List[Document],
        updates: DocumentChanges,
    ) -> Tuple[int, List[UUID]]:
        now = datetime.now(timezone.utc)
        written = 0
        skipped: List[UUID] = []
        async with self._session_factory() as session:
            try:
                for document in inserts:
                    record = DocumentRecord.from_document(document)
                    session.add(record)
                    await session.flush()
                    document.id = record.id
                    written += 1

                for public_id, fields in updates.items():
                    result = await session.execute(
                        update(DocumentRecord)
                        .where(
                            DocumentRecord.public_id == str(public_id),
                            DocumentRecord.is_removed.is_(False),
                        )
                        .values(
                            **DocumentRecord.column_values(fields),
                            updated_at=now,
                            updated_by=caller.user_id,
                        )
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount:
                        written += 1
                        continue
                    is_removed = (await session.execute(
                        select(DocumentRecord.is_removed)
                        .where(DocumentRecord.public_id == str(public_id))
                    )).scalar_one_or_none()
                    if is_removed:
                        skipped.append(public_id)

                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Document commit failed for user {caller.user_id}: {e}")
                raise DocStoreRecordError(
                    f"Could not commit document changes: {e}",
                    operation="complete",
                    execution_id=caller.execution_id,
                ) from e

        return written, skipped
