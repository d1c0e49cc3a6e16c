"""
DocStore Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

import pytest

from docstore.documents.repository import InMemoryDocumentRepository
from docstore.documents.service import DocumentLifecycleService
from docstore.engine.config import DocumentsConfig
from docstore.engine.context import CallerContext
from docstore.storage.memory import InMemoryStorageGateway
from docstore.storage.service import BinaryStorageService


# ---------------------------------------------------------------------------
# Global state isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_globals(monkeypatch):
    """Reset module singletons and the environment override between tests."""
    import docstore.engine.config as cfg_mod
    import docstore.engine.logging as log_mod
    from docstore.engine.context import clear_caller_context

    monkeypatch.delenv("DOCSTORE_STORAGE_CONNECTION_STRING", raising=False)
    cfg_mod._config = None
    clear_caller_context()
    yield
    if log_mod._global_queue is not None:
        log_mod.shutdown_logging()
    cfg_mod._config = None
    clear_caller_context()


@pytest.fixture
def project_root(tmp_path):
    """A directory holding a minimal docstore.yaml. Returns the root Path."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "docstore.yaml").write_text(
        "name: TestStore\n"
        "environment: dev\n"
        "storage:\n"
        "  backend: memory\n"
        "database:\n"
        f"  url: sqlite+aiosqlite:///{(root / 'docstore.sqlite').as_posix()}\n"
        "documents:\n"
        "  base_path: Data\n"
        "  valid_roles: ' nurse ;Doctor;ADMIN'\n"
        "logging:\n"
        "  level: debug\n",
        encoding="utf-8",
    )
    return root


# ---------------------------------------------------------------------------
# Callers
# ---------------------------------------------------------------------------

@pytest.fixture
def owner():
    return CallerContext(user_id=1, roles={"NURSE"}, username="owner")


@pytest.fixture
def other_user():
    return CallerContext(user_id=2, roles={"NURSE"}, username="other")


@pytest.fixture
def outsider():
    """Non-admin caller holding none of the document roles."""
    return CallerContext(user_id=3, roles={"CLERK"}, username="outsider")


@pytest.fixture
def admin():
    return CallerContext(user_id=99, is_admin=True, username="admin")


# ---------------------------------------------------------------------------
# Storage / repository / service
# ---------------------------------------------------------------------------

@pytest.fixture
def gateway():
    return InMemoryStorageGateway(account_name="testaccount")


@pytest.fixture
def storage(gateway):
    return BinaryStorageService(gateway)


@pytest.fixture
def repository():
    return InMemoryDocumentRepository()


@pytest.fixture
def documents_config():
    return DocumentsConfig(base_path="Data", valid_roles="NURSE;DOCTOR;ADMIN")


@pytest.fixture
def service(storage, repository, documents_config):
    return DocumentLifecycleService(storage, repository, documents_config)
