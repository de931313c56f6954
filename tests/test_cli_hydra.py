"""Tests for the Hydra-based CLI (cli.py)."""

from __future__ import annotations

from pathlib import Path

import pytest
from hydra import compose, initialize_config_dir
from omegaconf import OmegaConf

import novel_continuation_generator
from novel_continuation_generator._hydra_conf import CLI_ONLY_KEYS, NcgConf, register_configs
from novel_continuation_generator.cli import (
    _MODE_DISPATCH,
    _breakdown_plan_mode,
    _resume_prompt_mode,
    _to_project_config,
    _validate_mode,
)
from novel_continuation_generator.models import ProjectConfig
from novel_continuation_generator.tools.resume_directive import RESUME_DIRECTIVE

CONF_DIR = str(Path(novel_continuation_generator.__file__).resolve().parent / "conf")


class TestDefaultConfig:
    """Verify the package's conf/config.yaml loads correctly."""

    def test_default_config_loads(self):
        register_configs()
        with initialize_config_dir(config_dir=CONF_DIR, version_base=None):
            cfg = compose(config_name="config")
            assert cfg.mode == "run"
            assert cfg.resume is False
            assert cfg.breakdown_chunk_size == 5

    def test_default_config_converts_to_project_config(self, monkeypatch):
        monkeypatch.setenv("AZURE_OPENAI_API_KEY", "test")
        monkeypatch.setenv("AZURE_OPENAI_API_VERSION", "2024-01-01")
        monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://test.openai.azure.com")

        register_configs()
        with initialize_config_dir(config_dir=CONF_DIR, version_base=None):
            cfg = compose(config_name="config", overrides=["target_chapter_count=20"])
            pc = _to_project_config(cfg)
            assert isinstance(pc, ProjectConfig)
            assert pc.project_name == "novel-continuation"
            assert pc.target_chapter_count == 20
            assert pc.azure.api_key == "test"


class TestToProjectConfig:
    def test_resume_flag_becomes_directive(self):
        cfg = OmegaConf.create({"mode": "run", "resume": True, "user_notes": "darker"})
        pc = _to_project_config(cfg)
        assert pc.user_notes == f"darker\n{RESUME_DIRECTIVE}"

    def test_cli_keys_stripped(self):
        cfg = OmegaConf.create({"mode": "validate", "phase_key": "analysisRaw", "verbose": True})
        pc = _to_project_config(cfg)
        assert pc.user_notes == ""


class TestModeDispatch:
    """Verify mode dispatch table."""

    def test_all_modes_present(self):
        assert set(_MODE_DISPATCH.keys()) == {"run", "breakdown_plan", "validate", "resume_prompt"}

    def test_all_modes_are_callable(self):
        for name, handler in _MODE_DISPATCH.items():
            assert callable(handler), f"Handler for mode {name!r} is not callable"


class TestCliOnlyKeys:
    """CLI_ONLY_KEYS should match the extra fields in NcgConf."""

    def test_cli_keys_not_in_project_config(self):
        pc_fields = set(ProjectConfig.model_fields.keys())
        for key in CLI_ONLY_KEYS:
            assert key not in pc_fields, f"CLI-only key {key!r} found in ProjectConfig"

    def test_cli_keys_in_ncg_conf(self):
        conf_fields = {f.name for f in NcgConf.__dataclass_fields__.values()}
        for key in CLI_ONLY_KEYS:
            assert key in conf_fields, f"CLI-only key {key!r} not found in NcgConf"

    def test_remaining_fields_match_project_config(self):
        conf_fields = {f.name for f in NcgConf.__dataclass_fields__.values()} - CLI_ONLY_KEYS
        assert conf_fields == set(ProjectConfig.model_fields.keys())


class TestModes:
    def test_breakdown_plan(self, capsys):
        cfg = OmegaConf.create({"target_chapter_count": 12, "breakdown_chunk_size": 5})
        _breakdown_plan_mode(cfg)
        out = capsys.readouterr().out
        assert "3 chunks" in out
        assert "chapters 11-12" in out

    def test_validate_passes(self, tmp_path, capsys):
        content = tmp_path / "chunk.md"
        content.write_text("【Chapter-by-Chapter Table】\n| 1 | arrival |", encoding="utf-8")
        cfg = OmegaConf.create({"phase_key": "breakdownChunk", "content_file": str(content)})
        _validate_mode(cfg)
        assert "all required sections present" in capsys.readouterr().out

    def test_validate_fails_with_exit_code(self, tmp_path):
        content = tmp_path / "chunk.md"
        content.write_text("| 1 | arrival |", encoding="utf-8")
        cfg = OmegaConf.create({"phase_key": "breakdownChunk", "content_file": str(content)})
        with pytest.raises(SystemExit) as exc_info:
            _validate_mode(cfg)
        assert exc_info.value.code == 1

    def test_validate_requires_phase_key(self):
        with pytest.raises(SystemExit):
            _validate_mode(OmegaConf.create({"content_file": "x.md"}))

    def test_resume_prompt(self, tmp_path, capsys):
        task = tmp_path / "task.txt"
        task.write_text("Write chapter 3.", encoding="utf-8")
        partial = tmp_path / "chapter_03.md"
        partial.write_text("The boat left at", encoding="utf-8")
        cfg = OmegaConf.create({"prompt_file": str(task), "content_file": str(partial)})
        _resume_prompt_mode(cfg)
        out = capsys.readouterr().out
        assert "Write chapter 3." in out
        assert "The boat left at" in out

    def test_resume_prompt_missing_file(self, tmp_path):
        cfg = OmegaConf.create({"prompt_file": str(tmp_path / "nope.txt"), "content_file": "x"})
        with pytest.raises(SystemExit):
            _resume_prompt_mode(cfg)
