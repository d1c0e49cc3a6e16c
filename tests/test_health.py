"""Unit tests for docstore.engine.health — HealthCheckService."""

import asyncio
import pytest
from unittest.mock import AsyncMock

from sqlalchemy.ext.asyncio import create_async_engine

from docstore.engine.health import HealthCheckResult, HealthCheckService, HealthStatus
from docstore.storage.memory import InMemoryStorageGateway
from docstore.storage.service import BinaryStorageService


class TestHealthCheckResult:
    def test_to_dict(self):
        d = HealthCheckResult(name="storage", status=HealthStatus.HEALTHY, latency_ms=5.234, message="OK").to_dict()
        assert d["name"] == "storage"
        assert d["status"] == "healthy"
        assert d["latency_ms"] == 5.23
        assert "checked_at" in d


class TestHealthCheckService:
    def setup_method(self):
        self.svc = HealthCheckService(timeout=0.5)

    def test_register(self):
        async def ok():
            return True
        self.svc.register_check("x", ok)
        assert self.svc.registered_checks == ["x"]
        assert self.svc.get_last_result("x").status == HealthStatus.UNKNOWN

    @pytest.mark.asyncio
    async def test_unknown_check(self):
        result = await self.svc.check("missing")
        assert result.status == HealthStatus.UNKNOWN

    @pytest.mark.asyncio
    async def test_storage_check_healthy(self):
        self.svc.register_storage_check("storage", BinaryStorageService(InMemoryStorageGateway()))
        result = await self.svc.check("storage")
        assert result.status == HealthStatus.HEALTHY
        assert result.message == "Healthy"

    @pytest.mark.asyncio
    async def test_storage_check_status_text(self):
        storage = BinaryStorageService(InMemoryStorageGateway(account_name=""))
        self.svc.register_storage_check("storage", storage)
        result = await self.svc.check("storage")
        assert result.status == HealthStatus.UNHEALTHY
        assert result.message == "Client has no account"

    @pytest.mark.asyncio
    async def test_bool_and_exception_checks(self):
        self.svc.register_check("down", AsyncMock(return_value=False))
        self.svc.register_check("boom", AsyncMock(side_effect=RuntimeError("refused")))
        results = await self.svc.check_all()
        assert results["down"].status == HealthStatus.UNHEALTHY
        assert results["boom"].message == "refused"

    @pytest.mark.asyncio
    async def test_timeout(self):
        async def slow():
            await asyncio.sleep(5)
            return True
        self.svc.register_check("slow", slow)
        result = await self.svc.check("slow")
        assert result.status == HealthStatus.UNHEALTHY
        assert "Timeout" in result.message

    @pytest.mark.asyncio
    async def test_database_check(self, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{(tmp_path / 'h.sqlite').as_posix()}")
        try:
            self.svc.register_database_check("database", engine)
            assert (await self.svc.check("database")).status == HealthStatus.HEALTHY
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_summary(self):
        self.svc.register_check("a", AsyncMock(return_value=True))
        assert (await self.svc.get_summary())["status"] == "healthy"
        self.svc.register_check("b", AsyncMock(return_value="Container unreachable"))
        summary = await self.svc.get_summary()
        assert summary["status"] == "unhealthy"
        assert summary["checks"]["b"]["message"] == "Container unreachable"
