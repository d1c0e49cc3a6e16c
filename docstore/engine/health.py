"""
DocStore Health Check — status of the storage backend and the metadata store.

Provides:
    - HealthCheckService: named async checks, run one at a time or together
    - register_storage_check(): wraps BinaryStorageService.health()
    - register_database_check(): SELECT 1 against the async engine
    - get_summary(): overall status plus per-check results (``docstore health``)

A check returns either a bool or a status text. Text "Healthy" counts as
healthy; any other text is the failure description.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Union

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from docstore.storage.service import BinaryStorageService

logger = logging.getLogger("docstore.engine.health")

HEALTHY_TEXT = "Healthy"

CheckFn = Callable[[], Awaitable[Union[bool, str]]]


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class HealthCheckResult:
    """Result of a single health check."""
    name: str
    status: HealthStatus
    latency_ms: float = 0.0
    message: str = ""
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
            "message": self.message,
            "checked_at": self.checked_at.isoformat(),
        }


class HealthCheckService:
    """
    Usage:
        service = HealthCheckService()
        service.register_storage_check("storage", storage_service)
        result = await service.check("storage")
        summary = await service.get_summary()
    """

    def __init__(self, timeout: float = 10.0):
        self._timeout = timeout
        self._checks: Dict[str, CheckFn] = {}
        self._results: Dict[str, HealthCheckResult] = {}

    def register_check(self, name: str, check_fn: CheckFn) -> None:
        self._checks[name] = check_fn
        self._results[name] = HealthCheckResult(name=name, status=HealthStatus.UNKNOWN)
        logger.debug(f"Registered health check: {name}")

    def register_storage_check(self, name: str, storage: "BinaryStorageService") -> None:
        """Storage probe; the status text from the service becomes the message."""
        self.register_check(name, storage.health)

    def register_database_check(self, name: str, engine: "AsyncEngine") -> None:
        async def db_check() -> bool:
            from sqlalchemy import text
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True

        self.register_check(name, db_check)

    async def check(self, name: str) -> HealthCheckResult:
        if name not in self._checks:
            return HealthCheckResult(
                name=name,
                status=HealthStatus.UNKNOWN,
                message=f"No health check registered for '{name}'",
            )

        start = time.monotonic()
        try:
            outcome = await asyncio.wait_for(self._checks[name](), timeout=self._timeout)
            if isinstance(outcome, str):
                healthy = outcome == HEALTHY_TEXT
                message = outcome
            else:
                healthy = bool(outcome)
                message = "OK" if healthy else "Check returned unhealthy"
        except asyncio.TimeoutError:
            healthy, message = False, f"Timeout after {self._timeout}s"
        except Exception as e:
            logger.debug(f"Health check {name} failed: {e}")
            healthy, message = False, str(e) or e.__class__.__name__

        result = HealthCheckResult(
            name=name,
            status=HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
            latency_ms=(time.monotonic() - start) * 1000,
            message=message,
        )
        self._results[name] = result
        return result

    async def check_all(self) -> Dict[str, HealthCheckResult]:
        """Run all registered checks concurrently."""
        await asyncio.gather(*(self.check(name) for name in self._checks))
        return dict(self._results)

    def get_last_result(self, name: str) -> Optional[HealthCheckResult]:
        return self._results.get(name)

    async def get_summary(self) -> Dict[str, Any]:
        results = await self.check_all()
        if all(r.status == HealthStatus.HEALTHY for r in results.values()):
            overall = HealthStatus.HEALTHY.value
        else:
            overall = HealthStatus.UNHEALTHY.value
        return {
            "status": overall,
            "checks": {name: r.to_dict() for name, r in results.items()},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @property
    def registered_checks(self) -> List[str]:
        return list(self._checks.keys())
