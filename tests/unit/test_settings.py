"""Tests for engine settings loading."""

import os
from unittest import mock

import pytest

from formflow.config.settings import EngineSettings, load_settings
from formflow.exceptions import ConfigError
from formflow.schemas.form import LayoutWidth


class TestEngineSettings:
    def test_defaults(self):
        settings = EngineSettings()
        assert settings.max_logic_iterations == 10
        assert settings.history_limit == 50
        assert settings.average_excludes_missing is False
        assert settings.default_layout_width == LayoutWidth.FULL

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError):
            EngineSettings(undo_depth=3)

    def test_from_env_overrides_base(self):
        env = {
            "FORMFLOW_HISTORY_LIMIT": "5",
            "FORMFLOW_AVERAGE_EXCLUDES_MISSING": "yes",
            "FORMFLOW_DEFAULT_LAYOUT_WIDTH": "",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = EngineSettings.from_env({"history_limit": 20, "default_layout_width": "half"})

        assert settings.history_limit == 5
        assert settings.average_excludes_missing is True
        assert settings.default_layout_width == LayoutWidth.HALF

    def test_from_env_custom_prefix(self):
        with mock.patch.dict(os.environ, {"FORMS_MAX_LOGIC_ITERATIONS": "25"}, clear=True):
            settings = EngineSettings.from_env(prefix="FORMS_")
        assert settings.max_logic_iterations == 25


class TestLoadSettings:
    def test_no_file_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with mock.patch.dict(os.environ, {}, clear=True):
            assert load_settings() == EngineSettings()

    def test_yaml_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "formflow.yaml"
        path.write_text("history_limit: 7\naverage_excludes_missing: true\n", encoding="utf-8")

        with mock.patch.dict(os.environ, {}, clear=True):
            settings = load_settings(path)

        assert settings.history_limit == 7
        assert settings.average_excludes_missing is True

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "engine.yaml"
        path.write_text("default_layout_width: third\n", encoding="utf-8")

        with mock.patch.dict(os.environ, {"FORMFLOW_CONFIG": str(path)}, clear=True):
            settings = load_settings()

        assert settings.default_layout_width == LayoutWidth.THIRD

    def test_empty_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        with mock.patch.dict(os.environ, {}, clear=True):
            assert load_settings(path) == EngineSettings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("history_limit: [1, 2\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(path)

    def test_invalid_value(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "engine.yaml"
        path.write_text("history_limit: 1\n", encoding="utf-8")
        with mock.patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigError, match="Invalid engine settings"):
                load_settings(path)
