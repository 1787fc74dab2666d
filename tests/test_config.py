"""
Tests for settings loading.
"""

import json

import pytest
from pydantic import ValidationError as PydanticValidationError

from analytics_pipeline.config import CONFIG_PATH_ENV, AppSettings, load_settings


class TestAppSettings:
    def test_defaults(self):
        settings = AppSettings()

        assert settings.server_port == 8000
        assert settings.mongo_database == "service"
        assert settings.mongo_collection == "pipelines"
        assert settings.permissions_url == "http://permv2.permissions:8080"
        assert settings.reconcile_on_startup is True
        assert settings.bind_host == "0.0.0.0"

    def test_debug_binds_loopback(self):
        assert AppSettings(debug=True).bind_host == "127.0.0.1"

    def test_admin_token_is_masked(self):
        settings = AppSettings(permissions_admin_token="s3cret")

        assert "s3cret" not in settings.model_dump_json()
        assert settings.permissions_admin_token.get_secret_value() == "s3cret"

    def test_port_range(self):
        with pytest.raises(PydanticValidationError):
            AppSettings(server_port=0)


class TestLoadSettings:
    """Tests for load_settings."""

    def test_empty_environment(self):
        assert load_settings(environ={}) == AppSettings()

    def test_environment_overrides(self):
        settings = load_settings(
            environ={
                "ANALYTICS_PIPELINE_SERVER_PORT": "9000",
                "ANALYTICS_PIPELINE_DEBUG": "true",
                "ANALYTICS_PIPELINE_MONGO_URL": "memory",
                "ANALYTICS_PIPELINE_PERMISSIONS_TIMEOUT": "2.5",
                "UNRELATED": "x",
            }
        )

        assert settings.server_port == 9000
        assert settings.debug is True
        assert settings.mongo_url == "memory"
        assert settings.permissions_timeout == 2.5

    def test_file_then_environment(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"server_port": 7000, "url_prefix": "/api", "log_level": "debug"}))

        settings = load_settings(
            path,
            environ={"ANALYTICS_PIPELINE_SERVER_PORT": "7100"},
        )

        assert settings.server_port == 7100
        assert settings.url_prefix == "/api"
        assert settings.log_level == "debug"

    def test_path_from_environment(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"mongo_database": "analytics"}))

        settings = load_settings(environ={CONFIG_PATH_ENV: str(path)})

        assert settings.mongo_database == "analytics"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.json", environ={})

    def test_file_must_hold_object(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")

        with pytest.raises(ValueError):
            load_settings(path, environ={})

    def test_invalid_value(self):
        with pytest.raises(PydanticValidationError):
            load_settings(environ={"ANALYTICS_PIPELINE_SERVER_PORT": "http"})
