"""Tests for application wiring and the command line."""

import json

import pytest
import yaml

from yadisk_connector.database import close_database
from yadisk_connector.main import TriggerApp, build_parser


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "connector.yaml"
    path.write_text(yaml.safe_dump({
        "database_url": "sqlite:///:memory:",
        "triggers": [
            {"name": "Docs", "workflow_id": "wf", "node_id": "n1", "interval_minutes": 5},
            {"name": "Paused", "workflow_id": "wf", "node_id": "n2", "is_active": False},
        ]
    }))
    return path


@pytest.fixture
def app(config_file, monkeypatch):
    app = TriggerApp(config_file=str(config_file))
    monkeypatch.setattr(app.settings.yandex_disk, "oauth_token", "test-token")
    yield app
    close_database()


class TestCommandLine:

    def test_run_command(self):
        args = build_parser().parse_args(["run", "--config", "connector.yaml"])

        assert args.command == "run"
        assert args.config == "connector.yaml"

    def test_test_command_requires_trigger(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["test"])

        args = build_parser().parse_args(["test", "--trigger", "Docs"])
        assert args.trigger == "Docs"


class TestTriggerApp:

    def test_build_schedules_active_triggers(self, app):
        app.build()

        assert list(app.pollers) == ["Docs"]
        statuses = app.scheduler.get_all_job_statuses()
        assert [status["trigger_name"] for status in statuses] == ["Docs"]
        assert statuses[0]["interval_minutes"] == 5
        assert app.pollers["Docs"].store.namespace == "wf:n1"

    @pytest.mark.asyncio
    async def test_health_reports_unhealthy_before_start(self, app):
        response = await app._health_handler(None)

        assert response.status == 503
        assert json.loads(response.text)["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_status_lists_jobs(self, app):
        app.build()

        response = await app._status_handler(None)
        body = json.loads(response.text)

        assert body["components"]["scheduler"] == "stopped"
        assert body["jobs"][0]["trigger_name"] == "Docs"
        await app.client.close()
