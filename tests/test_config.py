"""Unit tests for docstore.engine.config — DocStoreConfig and loading."""

import pytest
from pydantic import ValidationError

from docstore.engine.config import (
    DocStoreConfig,
    DocumentsConfig,
    LoggingConfig,
    StorageConfig,
    get_config,
    load_config,
    reset_config,
)
from docstore.engine.errors import DocStoreConfigError


class TestDocStoreConfig:
    def test_defaults(self):
        cfg = DocStoreConfig()
        assert cfg.environment == "dev"
        assert cfg.storage.backend == "azure"
        assert cfg.documents.base_path == "Data"
        assert cfg.documents.valid_roles == ()
        assert cfg.documents.max_path_segments == 10
        assert cfg.logging.level == "INFO"

    def test_invalid_environment(self):
        with pytest.raises(ValueError, match="dev/staging/prod"):
            DocStoreConfig(environment="test")

    def test_invalid_backend(self):
        with pytest.raises(ValueError, match="azure/memory"):
            StorageConfig(backend="s3")

    def test_logging_level_uppercased(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValueError):
            LoggingConfig(level="loud")


class TestDocumentsConfig:
    def test_roles_from_string(self):
        cfg = DocumentsConfig(valid_roles=" nurse ; Doctor;;NURSE ")
        assert cfg.valid_roles == ("NURSE", "DOCTOR")

    def test_roles_from_list(self):
        cfg = DocumentsConfig(valid_roles=["admin", " clerk"])
        assert cfg.valid_roles == ("ADMIN", "CLERK")

    def test_frozen(self):
        cfg = DocumentsConfig(valid_roles="NURSE")
        with pytest.raises(ValidationError):
            cfg.valid_roles = ("DOCTOR",)

    def test_empty_base_path_rejected(self):
        with pytest.raises(ValueError):
            DocumentsConfig(base_path="  / ")

    def test_segment_capacity_lower_bound(self):
        with pytest.raises(ValueError):
            DocumentsConfig(max_path_segments=4)


class TestLoadConfig:
    def test_load_from_file(self, project_root):
        cfg = load_config(str(project_root / "docstore.yaml"))
        assert cfg.name == "TestStore"
        assert cfg.storage.backend == "memory"
        assert cfg.documents.valid_roles == ("NURSE", "DOCTOR", "ADMIN")
        assert cfg.logging.level == "DEBUG"

    def test_auto_discovery(self, project_root, monkeypatch):
        nested = project_root / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        assert load_config().name == "TestStore"

    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = load_config(str(tmp_path / "nope.yaml"))
        assert cfg.name == "DocStore"

    def test_env_overrides_connection_string(self, project_root, monkeypatch):
        monkeypatch.setenv("DOCSTORE_STORAGE_CONNECTION_STRING", "UseDevelopmentStorage=true")
        cfg = load_config(str(project_root / "docstore.yaml"))
        assert cfg.storage.connection_string == "UseDevelopmentStorage=true"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "docstore.yaml"
        path.write_text("storage: [unclosed\n", encoding="utf-8")
        with pytest.raises(DocStoreConfigError, match="Invalid YAML"):
            load_config(str(path))

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "docstore.yaml"
        path.write_text("environment: qa\n", encoding="utf-8")
        with pytest.raises(DocStoreConfigError, match="Invalid configuration"):
            load_config(str(path))

    def test_get_config_caches(self, project_root, monkeypatch):
        monkeypatch.chdir(project_root)
        first = get_config()
        assert get_config() is first
        reset_config()
        assert get_config() is not first
