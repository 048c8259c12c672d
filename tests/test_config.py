"""Tests for settings loading."""

import os
from unittest.mock import patch

import pytest

from scenes.config import get_config_path, get_settings, interpolate_env_vars


class TestInterpolateEnvVars:
    def test_nested_values_are_interpolated(self):
        with patch.dict(os.environ, {"SCENES_DB": "sqlite+aiosqlite:///x.db"}):
            result = interpolate_env_vars({"db": {"url": "$SCENES_DB"}, "list": ["$SCENES_DB", 3]})

        assert result == {"db": {"url": "sqlite+aiosqlite:///x.db"}, "list": ["sqlite+aiosqlite:///x.db", 3]}

    def test_missing_variable_raises(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("SCENES_MISSING", None)
            with pytest.raises(ValueError, match="SCENES_MISSING"):
                interpolate_env_vars("$SCENES_MISSING")


class TestGetConfigPath:
    def test_env_override(self, tmp_path):
        custom = tmp_path / "custom.yaml"
        with patch.dict(os.environ, {"SCENES_CONFIG": str(custom)}):
            assert get_config_path() == custom

    def test_defaults_to_cwd(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("SCENES_CONFIG", None)
            assert get_config_path().name == "app.yaml"


class TestGetSettings:
    def test_defaults_without_app_yaml(self, tmp_path):
        with patch.dict(os.environ, {"SCENES_CONFIG": str(tmp_path / "absent.yaml")}):
            settings = get_settings()

        assert settings.hierarchy.max_depth == 32
        assert settings.storage.asset_dir == "./data/assets"

    def test_yaml_sections_are_merged(self, temp_app_yaml):
        config_path = temp_app_yaml(
            {
                "debug": True,
                "db": {"url": "$SCENES_TEST_DB"},
                "storage": {"asset_dir": "/srv/assets"},
                "hierarchy": {"max_depth": 4},
            }
        )
        env = {"SCENES_CONFIG": str(config_path), "SCENES_TEST_DB": "sqlite+aiosqlite:///t.db"}
        with patch.dict(os.environ, env):
            settings = get_settings()

        assert settings.debug is True
        assert settings.db.url == "sqlite+aiosqlite:///t.db"
        assert settings.storage.asset_dir == "/srv/assets"
        assert settings.hierarchy.max_depth == 4
        assert settings.session.max_age == 60 * 60 * 24 * 7
