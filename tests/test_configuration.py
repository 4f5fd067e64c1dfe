"""Tests for configuration schema, loader and settings."""

import json

import pytest
import yaml
from pydantic import ValidationError

from yadisk_connector.config import SchedulingSettings, YandexDiskSettings
from yadisk_connector.config.loader import ConfigLoader, ConfigurationError, load_config_from_env
from yadisk_connector.config.schema import (
    ConnectorConfig,
    EXAMPLE_TRIGGER,
    LocationMode,
    PollOptions,
    TriggerConfig,
)


def create_test_config_data():
    return {
        "version": "1.0.0",
        "environment": "development",
        "log_level": "info",
        "triggers": [
            {
                "name": "New documents",
                "workflow_id": "wf-1",
                "node_id": "node-1",
                "options": {
                    "event": "created",
                    "location": "specificPath",
                    "path": "/Documents",
                    "file_type": "document",
                    "limit": 20
                },
                "interval_minutes": 5
            },
            {
                "name": "Any update",
                "workflow_id": "wf-2",
                "node_id": "node-1",
                "is_active": False
            }
        ]
    }


class TestPollOptions:

    def test_defaults(self):
        options = PollOptions()

        assert options.event == "updated"
        assert options.location == LocationMode.ROOT
        assert options.file_type == "all"
        assert options.limit == 50
        assert options.scoped_path is None
        assert options.media_type_hint is None

    def test_api_limit_is_clamped(self):
        assert PollOptions(limit=20).api_limit == 20
        assert PollOptions(limit=5000).api_limit == 1000

    @pytest.mark.parametrize("file_type,hint", [
        ("document", "document"),
        ("image", "image"),
        ("video", "video"),
        ("audio", "audio"),
        ("archive", "compressed"),
        ("all", None),
        ("spreadsheet", None),
    ])
    def test_media_type_hint(self, file_type, hint):
        assert PollOptions(file_type=file_type).media_type_hint == hint

    def test_scoped_path_only_for_specific_path(self):
        assert PollOptions(location="specificPath", path="/n8n").scoped_path == "/n8n"
        assert PollOptions(location="root", path="/n8n").scoped_path is None

    def test_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            PollOptions(limit=0)

    def test_options_are_frozen(self):
        with pytest.raises(ValidationError):
            PollOptions().limit = 10


class TestConnectorConfig:

    def test_schema(self):
        config = ConnectorConfig(**create_test_config_data())

        assert config.log_level == "INFO"
        assert len(config.get_active_triggers()) == 1
        assert config.get_trigger("New documents").state_namespace == "wf-1:node-1"
        assert config.get_trigger("missing") is None

    def test_duplicate_trigger_names(self):
        data = create_test_config_data()
        data["triggers"][1]["name"] = "New documents"

        with pytest.raises(ValidationError):
            ConnectorConfig(**data)

    def test_invalid_interval(self):
        with pytest.raises(ValidationError):
            TriggerConfig(name="t", workflow_id="wf", node_id="n", interval_minutes=0)

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            ConnectorConfig(environment="qa")


class TestConfigLoader:

    def setup_method(self):
        self.loader = ConfigLoader()

    def test_load_yaml(self, tmp_path):
        config_file = tmp_path / "connector.yaml"
        config_file.write_text(yaml.safe_dump(create_test_config_data()))

        config = self.loader.load_from_file(config_file)

        assert config.get_trigger("New documents").options.path == "/Documents"

    def test_load_json(self, tmp_path):
        config_file = tmp_path / "connector.json"
        config_file.write_text(json.dumps(create_test_config_data()))

        assert len(self.loader.load_from_file(config_file).triggers) == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            self.loader.load_from_file(tmp_path / "missing.yaml")

    def test_unsupported_format(self, tmp_path):
        config_file = tmp_path / "connector.toml"
        config_file.write_text("")

        with pytest.raises(ConfigurationError):
            self.loader.load_from_file(config_file)

    def test_invalid_yaml(self, tmp_path):
        config_file = tmp_path / "connector.yaml"
        config_file.write_text("triggers: [unclosed")

        with pytest.raises(ConfigurationError):
            self.loader.load_from_file(config_file)

    def test_invalid_data(self):
        with pytest.raises(ConfigurationError):
            self.loader.load_from_dict({"triggers": [{"name": "no ids"}]})

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CONNECTOR_LOG_LEVEL", "debug")
        monkeypatch.setenv("CONNECTOR_DATABASE_URL", "sqlite:///:memory:")

        config = self.loader.load_from_dict(create_test_config_data())

        assert config.log_level == "DEBUG"
        assert config.database_url == "sqlite:///:memory:"

    def test_save_and_reload(self, tmp_path):
        config = self.loader.load_from_dict(create_test_config_data())

        for suffix in ("yaml", "json"):
            path = tmp_path / f"saved.{suffix}"
            self.loader.save_to_file(config, path, format=suffix)
            reloaded = self.loader.load_from_file(path)
            assert reloaded.triggers == config.triggers

    def test_validate_config_warnings(self):
        config = ConnectorConfig(triggers=[
            TriggerConfig(name="a", workflow_id="wf", node_id="n", options=PollOptions(limit=2000)),
            TriggerConfig(name="b", workflow_id="wf", node_id="n", is_active=False),
        ])

        warnings = self.loader.validate_config(config)

        assert any("exceeds the API maximum" in w for w in warnings)
        assert any("share the same" in w for w in warnings)

    def test_validate_config_without_active_triggers(self):
        warnings = self.loader.validate_config(ConnectorConfig())
        assert "No active triggers configured" in warnings

    def test_default_config(self):
        config = self.loader.create_default_config()
        assert config.triggers == [EXAMPLE_TRIGGER]

    def test_load_config_from_env_file(self, tmp_path, monkeypatch):
        config_file = tmp_path / "custom.yaml"
        config_file.write_text(yaml.safe_dump(create_test_config_data()))
        monkeypatch.setenv("CONNECTOR_CONFIG_FILE", str(config_file))

        assert len(load_config_from_env().triggers) == 2

    def test_load_config_from_env_default(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CONNECTOR_CONFIG_FILE", raising=False)
        monkeypatch.chdir(tmp_path)

        assert load_config_from_env().triggers == [EXAMPLE_TRIGGER]


class TestAppSettings:

    def test_nested_settings_from_env(self, monkeypatch):
        monkeypatch.setenv("YANDEX_DISK_OAUTH_TOKEN", "secret")
        monkeypatch.setenv("SCHEDULE_POLL_INTERVAL_MINUTES", "3")

        assert YandexDiskSettings().oauth_token == "secret"
        assert SchedulingSettings().poll_interval_minutes == 3
