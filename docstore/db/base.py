"""
DocStore Database Base — SQLAlchemy declarative base, audit mixin and the
async engine/session setup.

Provides:
- Base: SQLAlchemy declarative base for all DocStore tables
- AuditMixin: updated_at, updated_by columns stamped on commit
- init_db(): single entry point for engine + session factory creation
- create_tables(): idempotent metadata.create_all (dev / ``docstore init``)
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger("docstore.db")


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all DocStore models."""
    pass


class AuditMixin:
    """Adds updated_at, updated_by columns. Written by the repository on commit."""
    updated_at = Column(DateTime(timezone=True), nullable=True)
    updated_by = Column(Integer, nullable=True)


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def init_db(url: str, echo: bool = False) -> async_sessionmaker[AsyncSession]:
    """
    Create the async engine and session factory for ``url``.

    Calling again with a new url replaces the module-level engine; the old
    one is not disposed (call dispose_db() first when that matters).

    Returns:
        An ``async_sessionmaker`` with expire_on_commit disabled so rows stay
        readable after complete().
    """
    global _engine, _session_factory

    _engine = create_async_engine(url, echo=echo)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    logger.info(f"Database engine initialised: {_engine.url.render_as_string(hide_password=True)}")
    return _session_factory


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError("Database not initialised. Call init_db() first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        raise RuntimeError("Database not initialised. Call init_db() first.")
    return _session_factory


async def create_tables(engine: Optional[AsyncEngine] = None) -> None:
    """Create all DocStore tables if they do not exist."""
    # Registers the table classes on Base.metadata
    from docstore.db import models  # noqa: F401

    target = engine or _engine
    if target is None:
        raise RuntimeError("Database not initialised. Call init_db() first.")
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db() -> None:
    """Close the connection pool and forget the engine."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
