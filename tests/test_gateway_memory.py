"""Unit tests for docstore.storage.memory — InMemoryStorageGateway contract."""

import asyncio
import io

import pytest

from docstore.engine.errors import (
    DocStoreMetadataError,
    DocStoreNotFoundError,
    DocStoreStorageError,
)
from docstore.storage.gateway import ROOT_CONTAINER, is_valid_container_name
from docstore.storage.memory import InMemoryStorageGateway


class TestContainerNames:
    @pytest.mark.parametrize("name", ["data", "abc", "my-docs-01", ROOT_CONTAINER])
    def test_valid(self, name):
        assert is_valid_container_name(name)

    @pytest.mark.parametrize("name", ["", None, "ab", "Data", "a--b", "-ab", "ab-", "a_b", "x" * 64])
    def test_invalid(self, name):
        assert not is_valid_container_name(name)


class TestInMemoryGateway:
    def setup_method(self):
        self.gw = InMemoryStorageGateway(account_name="acct")

    @pytest.mark.asyncio
    async def test_container_exists_never_raises_for_bad_names(self):
        assert await self.gw.container_exists("Bad Name!") is False

    @pytest.mark.asyncio
    async def test_create_is_idempotent_under_concurrency(self):
        results = await asyncio.gather(*(self.gw.create_container_if_absent("data") for _ in range(10)))
        assert len(set(results)) == 1
        assert await self.gw.container_exists("data")

    @pytest.mark.asyncio
    async def test_create_invalid_name(self):
        with pytest.raises(DocStoreStorageError) as exc:
            await self.gw.create_container_if_absent("NO")
        assert exc.value.error_code == "InvalidResourceName"

    @pytest.mark.asyncio
    async def test_round_trip_bytes(self):
        await self.gw.create_container_if_absent("data")
        payload = b"\x00\x01hello\xff"
        first = await self.gw.upload("data", "a/b.bin", payload)
        second = await self.gw.upload("data", "a/c.bin", io.BytesIO(payload))
        assert first.content_hash == second.content_hash
        assert first.size == len(payload)
        assert first.location == "memory://acct/data/a/b.bin"
        stream = await self.gw.open("data", "a/c.bin")
        assert stream.read() == payload

    @pytest.mark.asyncio
    async def test_different_bytes_different_hash(self):
        await self.gw.create_container_if_absent("data")
        a = await self.gw.upload("data", "a", b"one")
        b = await self.gw.upload("data", "b", b"two")
        assert a.content_hash != b.content_hash

    @pytest.mark.asyncio
    async def test_upload_to_missing_container(self):
        with pytest.raises(DocStoreStorageError) as exc:
            await self.gw.upload("nowhere", "x", b"1")
        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_metadata_attached(self):
        await self.gw.create_container_if_absent("data")
        await self.gw.upload("data", "x", b"1", {"UserId": "7"})
        assert self.gw.metadata_of("data", "x") == {"UserId": "7"}

    @pytest.mark.asyncio
    async def test_metadata_failure_keeps_blob(self):
        await self.gw.create_container_if_absent("data")
        self.gw.fail_metadata = True
        with pytest.raises(DocStoreMetadataError) as exc:
            await self.gw.upload("data", "x", b"1", {"UserId": "7"})
        assert exc.value.content_hash
        assert await self.gw.blob_exists("data", "x")

    @pytest.mark.asyncio
    async def test_metadata_failure_ignored_without_metadata(self):
        await self.gw.create_container_if_absent("data")
        self.gw.fail_metadata = True
        await self.gw.upload("data", "x", b"1")

    @pytest.mark.asyncio
    async def test_open_missing(self):
        with pytest.raises(DocStoreNotFoundError):
            await self.gw.open("data", "missing")

    @pytest.mark.asyncio
    async def test_delete(self):
        await self.gw.create_container_if_absent("data")
        await self.gw.upload("data", "x", b"1")
        assert await self.gw.delete("data", "x") is True
        assert await self.gw.delete("data", "x") is False
        assert self.gw.blob_names("data") == []
