"""Tests for config.py — YAML loading and LLM config building."""

from __future__ import annotations

import pytest

from novel_continuation_generator.config import _resolve_env_vars, build_role_llm_config, load_config
from novel_continuation_generator.models import CompressionMode, ProjectConfig

AZURE = {"api_key": "k", "api_version": "v", "endpoint": "https://test.openai.azure.com"}


@pytest.fixture
def azure_env(monkeypatch):
    monkeypatch.setenv("AZURE_OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("AZURE_OPENAI_API_VERSION", "2024-01-01")
    monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://test.openai.azure.com/")


class TestResolveEnvVars:
    def test_string_replacement(self, monkeypatch):
        monkeypatch.setenv("TEST_VAR", "hello")
        assert _resolve_env_vars("${TEST_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch):
        monkeypatch.delenv("NONEXISTENT_VAR", raising=False)
        assert _resolve_env_vars("${NONEXISTENT_VAR}") == ""

    def test_nested_dict(self, monkeypatch):
        monkeypatch.setenv("MY_KEY", "secret")
        result = _resolve_env_vars({"api_key": "${MY_KEY}", "other": "plain"})
        assert result == {"api_key": "secret", "other": "plain"}

    def test_list(self, monkeypatch):
        monkeypatch.setenv("X", "val")
        assert _resolve_env_vars(["${X}", "static"]) == ["val", "static"]

    def test_non_string_passthrough(self):
        assert _resolve_env_vars(42) == 42
        assert _resolve_env_vars(None) is None


class TestLoadConfig:
    def test_load_sample_config(self, sample_config_path, azure_env):
        config = load_config(sample_config_path)
        assert config.project_name == "The Lighthouse Keeper, continued"
        assert config.target_chapter_count == 12
        assert config.breakdown_chunk_size == 4
        assert config.section_retry_max_attempts == 3
        assert config.stream_update_interval_ms == 250
        assert config.compression_mode is CompressionMode.AUTO
        assert config.models.writer == "gpt-4.1"
        assert config.azure.api_key == "test-key"

    def test_unset_fields_keep_defaults(self, sample_config_path, azure_env):
        config = load_config(sample_config_path)
        assert config.compression_chunk_size == 6000
        assert config.network_enabled is True

    def test_missing_config_raises(self):
        with pytest.raises(FileNotFoundError):
            load_config("nonexistent.yaml")

    def test_endpoint_trailing_slash_stripped(self, sample_config_path, azure_env):
        config = load_config(sample_config_path)
        assert config.azure.endpoint == "https://test.openai.azure.com"

    def test_empty_file_gives_defaults(self, tmp_path, azure_env):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        config = load_config(path)
        assert config.project_name == "novel-continuation"
        assert config.azure.api_key == "test-key"


class TestBuildRoleLlmConfig:
    def test_writer_role(self):
        config = ProjectConfig(models={"default": "gpt-4o", "writer": "gpt-4.1"}, azure=AZURE)
        llm_config = build_role_llm_config("writer", config)
        entry = llm_config["config_list"][0]
        assert entry["model"] == "gpt-4.1"
        assert entry["api_type"] == "azure"
        assert entry["azure_deployment"] == "gpt-4.1"

    def test_breakdown_uses_outliner_model(self):
        config = ProjectConfig(models={"default": "gpt-4o", "outliner": "o3"}, azure=AZURE)
        assert build_role_llm_config("breakdown", config)["config_list"][0]["model"] == "o3"

    def test_unknown_role_uses_default(self):
        config = ProjectConfig(models={"default": "gpt-4o"}, azure=AZURE)
        assert build_role_llm_config("unknown_role", config)["config_list"][0]["model"] == "gpt-4o"

    def test_openai_compatible_endpoint(self):
        config = ProjectConfig(azure={"api_key": "k", "endpoint": "http://localhost:8000/v1"})
        entry = build_role_llm_config("analyst", config)["config_list"][0]
        assert entry["base_url"] == "http://localhost:8000/v1"
        assert "api_type" not in entry

    def test_timeout_and_seed(self):
        config = ProjectConfig(timeout=30, seed=7, azure=AZURE)
        llm_config = build_role_llm_config("compressor", config)
        assert llm_config["timeout"] == 30
        assert llm_config["seed"] == 7
