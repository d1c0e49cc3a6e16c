"""Integration tests for docstore.db — SqlDocumentRepository on SQLite (aiosqlite)."""

import asyncio
import io
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from docstore.db.base import create_tables
from docstore.db.models import DocumentRecord
from docstore.db.repository import SqlDocumentRepository
from docstore.documents.models import Document, DocumentForm
from docstore.documents.service import DocumentLifecycleService
from docstore.engine.errors import DocStoreRecordError


def make_document(name="x.pdf", created=None, **overrides):
    values = dict(
        location=f"aa/bb/cc/dd/{uuid.uuid4()}.pdf",
        process_name="Forms",
        original_name=name,
        size=3,
        roles="NURSE;DOCTOR",
        tags=["t"],
        created_by=1,
        created=created or datetime.now(timezone.utc),
    )
    values.update(overrides)
    return Document(**values)


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{(tmp_path / 'docs.sqlite').as_posix()}"


async def open_repository(db_url):
    engine = create_async_engine(db_url)
    await create_tables(engine)
    return engine, SqlDocumentRepository(async_sessionmaker(engine, expire_on_commit=False))


async def insert(repo, caller, *documents):
    work = repo.unit_of_work()
    for document in documents:
        work.save_document(document)
    return await work.complete(caller)


class TestDocumentRecord:
    def test_round_trip_fields(self):
        doc = make_document(remarks="r", tags=[" a ", "b"])
        back = DocumentRecord.from_document(doc)
        assert back.roles == "NURSE;DOCTOR"
        assert back.tags == "A;B"
        assert back.public_id == str(doc.public_id)
        back.id = 1
        back.updated_at = None
        back.updated_by = None
        restored = back.to_document()
        assert restored.public_id == doc.public_id
        assert restored.roles == ["NURSE", "DOCTOR"]
        assert restored.tags == ["A", "B"]

    def test_empty_lists(self):
        record = DocumentRecord.from_document(make_document(roles=[], tags=[]))
        record.id = 1
        assert record.roles == ""
        assert record.to_document().roles == []

    def test_column_values(self):
        assert DocumentRecord.column_values({"roles": ["nurse", "admin"], "remarks": "x"}) == {
            "roles": "NURSE;ADMIN",
            "remarks": "x",
        }
        with pytest.raises(ValueError):
            DocumentRecord.column_values({"location": "elsewhere"})


class TestSqlDocumentRepository:
    @pytest.mark.asyncio
    async def test_save_and_find(self, db_url, owner):
        engine, repo = await open_repository(db_url)
        try:
            doc = make_document()
            assert await insert(repo, owner, doc) == 1
            assert doc.id is not None
            found = await repo.find_document(doc.public_id)
            assert found.id == doc.id
            assert found.original_name == "x.pdf"
            assert found.roles == ["NURSE", "DOCTOR"]
            assert await repo.find_document(uuid.uuid4()) is None
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_update_counts_and_audit(self, db_url, owner, admin):
        engine, repo = await open_repository(db_url)
        try:
            doc = make_document()
            await insert(repo, owner, doc)

            work = repo.unit_of_work()
            await work.find_document(doc.public_id)
            assert await work.complete(admin) == 0

            work = repo.unit_of_work()
            found = await work.find_document(doc.public_id)
            found.remarks = "changed"
            assert await work.complete(admin) == 1
            again = await repo.find_document(doc.public_id)
            assert again.remarks == "changed"
            assert again.updated_by == admin.user_id
            assert again.updated_at is not None
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_removed_rows(self, db_url, owner):
        engine, repo = await open_repository(db_url)
        try:
            doc = make_document()
            await insert(repo, owner, doc)
            work = repo.unit_of_work()
            found = await work.find_document(doc.public_id)
            found.is_removed = True
            found.is_enabled = False
            found.removed = datetime.now(timezone.utc)
            assert await work.complete(owner) == 1

            assert await repo.find_document(doc.public_id) is None
            assert (await repo.find_document(doc.public_id, include_removed=True)).is_removed
            assert await repo.query_documents() == []
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_stale_update_cannot_restore_removed_row(self, db_url, owner):
        engine, repo = await open_repository(db_url)
        try:
            doc = make_document(remarks="original")
            await insert(repo, owner, doc)

            deleting, updating = repo.unit_of_work(), repo.unit_of_work()
            to_delete = await deleting.find_document(doc.public_id)
            to_update = await updating.find_document(doc.public_id)

            to_delete.is_removed = True
            to_delete.is_enabled = False
            to_delete.removed = datetime.now(timezone.utc)
            assert await deleting.complete(owner) == 1

            to_update.remarks = "changed"
            to_update.is_enabled = True
            assert await updating.complete(owner) == 0
            assert updating.skipped == [doc.public_id]

            row = await repo.find_document(doc.public_id, include_removed=True)
            assert row.is_removed is True
            assert row.is_enabled is False
            assert row.remarks == "original"
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_stale_delete_keeps_other_changes(self, db_url, owner):
        engine, repo = await open_repository(db_url)
        try:
            doc = make_document(remarks="original")
            await insert(repo, owner, doc)

            updating, deleting = repo.unit_of_work(), repo.unit_of_work()
            to_update = await updating.find_document(doc.public_id)
            to_delete = await deleting.find_document(doc.public_id)

            to_update.remarks = "changed"
            assert await updating.complete(owner) == 1
            to_delete.is_removed = True
            to_delete.removed = datetime.now(timezone.utc)
            assert await deleting.complete(owner) == 1

            row = await repo.find_document(doc.public_id, include_removed=True)
            assert row.is_removed is True
            assert row.remarks == "changed"
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_query_filters_and_order(self, db_url, owner):
        engine, repo = await open_repository(db_url)
        try:
            base = datetime(2024, 1, 1, tzinfo=timezone.utc)
            await insert(
                repo, owner,
                make_document("a.pdf", base, remarks="50% done"),
                make_document("b.pdf", base + timedelta(minutes=1), process_name="Visits"),
                make_document("c.pdf", base + timedelta(minutes=2), is_enabled=False),
            )

            assert [d.original_name for d in await repo.query_documents()] == ["b.pdf", "a.pdf"]
            everything = await repo.query_documents(include_inactive=True)
            assert [d.original_name for d in everything] == ["c.pdf", "b.pdf", "a.pdf"]
            assert [d.original_name for d in await repo.query_documents(search="b.p")] == ["b.pdf"]
            assert [d.original_name for d in await repo.query_documents(search="50%")] == ["a.pdf"]
            assert await repo.query_documents(search="%") != []
            assert [d.original_name for d in await repo.query_documents(process_name="Visits")] == ["b.pdf"]
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_commit_failure_raises_record_error(self, db_url, owner):
        engine, repo = await open_repository(db_url)
        try:
            doc = make_document()
            await insert(repo, owner, doc)
            # same location violates the unique constraint
            with pytest.raises(DocStoreRecordError):
                await insert(repo, owner, make_document(location=doc.location))
            assert len(await repo.query_documents()) == 1
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_lifecycle_service_on_sql(self, db_url, storage, documents_config, owner, other_user):
        engine, repo = await open_repository(db_url)
        try:
            service = DocumentLifecycleService(storage, repo, documents_config)
            form = DocumentForm(file_name="scan.pdf", process_name="Forms", roles=["nurse"])
            saved = await service.save_document(owner, io.BytesIO(b"abc"), form)
            assert saved.success

            public_id = saved.document.public_id
            assert (await service.get_document_information(owner, public_id)).success
            assert await service.delete_document(other_user, public_id) == (False, "Document not found")
            assert await service.delete_document(owner, public_id) == (True, "Document deleted")
            assert await service.find_documents(owner, "", ["NURSE"]) == []
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_concurrent_delete_and_update_on_sql(self, db_url, storage, documents_config, owner):
        engine, repo = await open_repository(db_url)
        try:
            service = DocumentLifecycleService(storage, repo, documents_config)
            form = DocumentForm(file_name="scan.pdf", process_name="Forms", roles=["nurse"])
            saved = await service.save_document(owner, io.BytesIO(b"abc"), form)
            public_id = saved.document.public_id

            deleted, updated = await asyncio.gather(
                service.delete_document(owner, public_id),
                service.update_document(owner, public_id, form.model_copy(update={"remarks": "changed"})),
            )
            assert deleted == (True, "Document deleted")
            row = await repo.find_document(public_id, include_removed=True)
            assert row.is_removed is True
            assert row.is_enabled is False
            if not updated.success:
                assert updated.message == "Document not found"
        finally:
            await engine.dispose()
