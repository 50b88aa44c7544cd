"""Unit tests for GeneratorConfig (ritual_grove.config).

Tests cover:
- Defaults
- Delimiter validation
- save/load round trip
- from_env
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from ritual_grove.config import GeneratorConfig


class TestDefaults:
    @pytest.mark.unit
    def test_default_values(self):
        config = GeneratorConfig()
        assert config.rituals_base_path is None
        assert (config.left_delimiter, config.right_delimiter) == ("[[", "]]")
        assert (config.block_start, config.block_end) == ("[%", "%]")
        assert config.template_suffix == ".tmpl"
        assert config.template_file_mode == 0o600
        assert config.directory_mode == 0o750
        assert config.env_prefix == "RITUAL_VAR_"
        assert config.dry_run is False

    @pytest.mark.unit
    def test_variable_and_block_delimiters_must_differ(self):
        with pytest.raises(ValidationError, match="delimiters must differ"):
            GeneratorConfig(left_delimiter="[%")

    @pytest.mark.unit
    def test_empty_delimiter_rejected(self):
        with pytest.raises(ValidationError):
            GeneratorConfig(right_delimiter="")

    @pytest.mark.unit
    def test_mode_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            GeneratorConfig(template_file_mode=0o1777)


class TestPersistence:
    @pytest.mark.unit
    def test_save_and_load(self, tmp_path: Path):
        config = GeneratorConfig(rituals_base_path=tmp_path / "rituals", template_suffix=".j2", dry_run=True)
        path = config.save(tmp_path / "conf" / "ritual.json")
        assert path.exists()

        loaded = GeneratorConfig.load(path)
        assert loaded == config
        assert loaded.rituals_base_path == tmp_path / "rituals"


class TestFromEnv:
    @pytest.mark.unit
    def test_no_environment_gives_defaults(self):
        assert GeneratorConfig.from_env() == GeneratorConfig()

    @pytest.mark.unit
    def test_reads_environment(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("RITUAL_BASE_PATH", str(tmp_path))
        monkeypatch.setenv("RITUAL_LEFT_DELIM", "<<")
        monkeypatch.setenv("RITUAL_RIGHT_DELIM", ">>")
        monkeypatch.setenv("RITUAL_TEMPLATE_SUFFIX", ".tpl")
        monkeypatch.setenv("RITUAL_ENV_PREFIX", "APP_")
        monkeypatch.setenv("RITUAL_DRY_RUN", "yes")

        config = GeneratorConfig.from_env()

        assert config.rituals_base_path == tmp_path
        assert (config.left_delimiter, config.right_delimiter) == ("<<", ">>")
        assert config.template_suffix == ".tpl"
        assert config.env_prefix == "APP_"
        assert config.dry_run is True

    @pytest.mark.unit
    def test_empty_suffix_and_prefix_are_honoured(self, monkeypatch):
        monkeypatch.setenv("RITUAL_TEMPLATE_SUFFIX", "")
        monkeypatch.setenv("RITUAL_ENV_PREFIX", "")
        config = GeneratorConfig.from_env()
        assert config.template_suffix == ""
        assert config.env_prefix == ""

    @pytest.mark.unit
    def test_dry_run_false_values(self, monkeypatch):
        monkeypatch.setenv("RITUAL_DRY_RUN", "off")
        assert GeneratorConfig.from_env().dry_run is False
