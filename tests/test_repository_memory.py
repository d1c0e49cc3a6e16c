"""Unit tests for docstore.documents.repository — units of work on the in-memory store."""

import asyncio
import uuid
from datetime import datetime, timezone

import pytest

from docstore.documents.models import Document
from docstore.documents.repository import InMemoryDocumentRepository
from docstore.engine.errors import DocStoreRecordError


def make_document(**overrides):
    values = dict(
        location=f"aa/bb/cc/dd/{uuid.uuid4()}.pdf",
        process_name="Forms",
        original_name="x.pdf",
        size=3,
        remarks="original",
        created_by=1,
        created=datetime.now(timezone.utc),
    )
    values.update(overrides)
    return Document(**values)


async def stored(repository, owner, **overrides):
    document = make_document(**overrides)
    work = repository.unit_of_work()
    work.save_document(document)
    assert await work.complete(owner) == 1
    return document


async def remove(work, public_id, owner):
    document = await work.find_document(public_id)
    document.is_removed = True
    document.is_enabled = False
    document.removed = datetime.now(timezone.utc)
    return await work.complete(owner)


class TestUnitOfWork:
    @pytest.mark.asyncio
    async def test_insert_assigns_id(self, repository, owner):
        document = await stored(repository, owner)
        assert document.id == 1
        assert len(repository) == 1

    @pytest.mark.asyncio
    async def test_reads_return_copies(self, repository, owner):
        document = await stored(repository, owner)
        found = await repository.find_document(document.public_id)
        found.remarks = "local only"
        assert (await repository.find_document(document.public_id)).remarks == "original"

    @pytest.mark.asyncio
    async def test_only_changed_fields_written(self, repository, owner, admin):
        document = await stored(repository, owner)
        work = repository.unit_of_work()
        await work.find_document(document.public_id)
        assert await work.complete(admin) == 0

        work = repository.unit_of_work()
        found = await work.find_document(document.public_id)
        found.roles = ["nurse"]
        assert await work.complete(admin) == 1
        row = await repository.find_document(document.public_id)
        assert row.roles == ["NURSE"]
        assert row.updated_by == admin.user_id

    @pytest.mark.asyncio
    async def test_units_do_not_share_changes(self, repository, owner):
        document = await stored(repository, owner)
        first, second = repository.unit_of_work(), repository.unit_of_work()
        found = await first.find_document(document.public_id)
        found.remarks = "first"
        await second.find_document(document.public_id)
        assert await second.complete(owner) == 0
        assert (await repository.find_document(document.public_id)).remarks == "original"
        assert await first.complete(owner) == 1

    @pytest.mark.asyncio
    async def test_removed_row_stays_removed(self, repository, owner):
        document = await stored(repository, owner)
        deleting, updating = repository.unit_of_work(), repository.unit_of_work()
        stale = await updating.find_document(document.public_id)
        assert await remove(deleting, document.public_id, owner) == 1

        stale.remarks = "changed"
        stale.is_removed = False
        assert await updating.complete(owner) == 0
        assert updating.skipped == [document.public_id]
        row = await repository.find_document(document.public_id, include_removed=True)
        assert row.is_removed is True
        assert row.remarks == "original"

    @pytest.mark.asyncio
    async def test_concurrent_units(self, repository, owner):
        document = await stored(repository, owner)
        updating = repository.unit_of_work()

        async def update():
            found = await updating.find_document(document.public_id)
            found.remarks = "changed"
            return await updating.complete(owner)

        removed, updated = await asyncio.gather(
            remove(repository.unit_of_work(), document.public_id, owner),
            update(),
        )
        assert removed == 1
        assert updated == 0
        assert updating.skipped == [document.public_id]
        assert (await repository.find_document(document.public_id, include_removed=True)).is_removed

    @pytest.mark.asyncio
    async def test_fail_commits(self, owner):
        repository = InMemoryDocumentRepository()
        repository.fail_commits = True
        work = repository.unit_of_work()
        work.save_document(make_document())
        with pytest.raises(DocStoreRecordError):
            await work.complete(owner)
        assert len(repository) == 0
