"""Main application entry point."""

import argparse
import asyncio
import json
import signal
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from aiohttp import web, web_runner

from .api_clients.yandex_disk import YandexDiskClient
from .config.loader import ConfigLoader, load_config_from_env
from .config.schema import ConnectorConfig
from .config.settings import get_settings
from .core.errors import ConnectorError
from .core.poller import ChangePoller
from .core.state import SQLCheckpointStore
from .database import init_database, close_database, get_db_manager
from .scheduler.job_scheduler import BatchHandler, SchedulerError, TriggerScheduler
from .utils.logging import setup_logging, get_logger


class TriggerApp:
    """Yandex Disk trigger host application."""

    def __init__(self, config_file: Optional[str] = None, on_batch: Optional[BatchHandler] = None):
        self.settings = get_settings()
        self.logger = get_logger("YandexDiskConnector")
        self.config_file = config_file
        self.on_batch = on_batch
        self.running = False
        self.started_at: Optional[datetime] = None
        self.web_runner = None
        self.config: Optional[ConnectorConfig] = None
        self.client: Optional[YandexDiskClient] = None
        self.scheduler: Optional[TriggerScheduler] = None
        self.pollers: Dict[str, ChangePoller] = {}

    def load_config(self) -> ConnectorConfig:
        loader = ConfigLoader()
        config = loader.load_from_file(self.config_file) if self.config_file else load_config_from_env()
        loader.validate_config(config)
        return config

    def build(self):
        """Wire configuration, database, client and one poller per active trigger."""
        self.config = self.load_config()

        init_database(self.config.database_url, create_tables=True)
        db_manager = get_db_manager()

        self.client = YandexDiskClient(
            oauth_token=self.settings.yandex_disk.oauth_token,
            base_url=self.settings.yandex_disk.base_url
        )

        self.scheduler = TriggerScheduler(
            on_batch=self.on_batch,
            default_interval_minutes=self.settings.scheduling.poll_interval_minutes,
            misfire_grace_seconds=self.settings.scheduling.misfire_grace_seconds
        )

        for trigger in self.config.get_active_triggers():
            poller = ChangePoller(
                client=self.client,
                options=trigger.options,
                store=SQLCheckpointStore(trigger.state_namespace, db_manager),
                name=trigger.name
            )
            self.pollers[trigger.name] = poller
            self.scheduler.add_trigger(trigger, poller)

    async def startup(self):
        self.logger.info(
            "Starting Yandex Disk connector",
            version=self.settings.version,
            environment=self.settings.environment
        )

        Path("./data").mkdir(exist_ok=True)
        Path("./logs").mkdir(exist_ok=True)

        self.build()
        await self._setup_web_server()
        self.scheduler.start()

        self.running = True
        self.started_at = datetime.now(timezone.utc)
        self.logger.info("Yandex Disk connector started", triggers=len(self.pollers))

    async def shutdown(self):
        self.logger.info("Shutting down Yandex Disk connector")
        self.running = False

        if self.scheduler and self.scheduler.running:
            self.scheduler.stop(wait=False)

        await self._stop_web_server()

        if self.client:
            await self.client.close()

        close_database()
        self.logger.info("Yandex Disk connector stopped")

    async def run(self):
        await self.startup()

        try:
            while self.running:
                await asyncio.sleep(1)
        finally:
            await self.shutdown()

    async def test_trigger(self, trigger_name: str):
        """Run a manual preview for one trigger and return its JSON records."""
        self.build()
        try:
            batch = await self.scheduler.trigger_test(trigger_name)
            return batch.to_json()
        finally:
            await self.client.close()
            close_database()

    async def _setup_web_server(self):
        """Set up web server for health checks and status."""
        web_app = web.Application()
        web_app.router.add_get('/health', self._health_handler)
        web_app.router.add_get('/status', self._status_handler)

        self.web_runner = web_runner.AppRunner(web_app)
        await self.web_runner.setup()

        host, port = self.settings.web.host, self.settings.web.port
        site = web_runner.TCPSite(self.web_runner, host, port)
        await site.start()

        self.logger.info(f"Web server started on http://{host}:{port}")

    async def _stop_web_server(self):
        if self.web_runner:
            await self.web_runner.cleanup()
            self.web_runner = None
            self.logger.info("Web server stopped")

    async def _health_handler(self, request):
        uptime = (datetime.now(timezone.utc) - self.started_at).total_seconds() if self.started_at else 0
        health_data = {
            "status": "healthy" if self.running else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": self.settings.version,
            "environment": self.settings.environment,
            "uptime_seconds": uptime
        }

        return web.json_response(health_data, status=200 if self.running else 503)

    async def _status_handler(self, request):
        status_data = {
            "application": {
                "name": self.settings.name,
                "version": self.settings.version,
                "environment": self.settings.environment,
                "running": self.running,
                "timestamp": datetime.now(timezone.utc).isoformat()
            },
            "components": {
                "database": "healthy" if get_db_manager().test_connection() else "unhealthy",
                "scheduler": "running" if self.scheduler and self.scheduler.running else "stopped"
            },
            "scheduler": self.scheduler.get_scheduler_stats() if self.scheduler else None,
            "jobs": self.scheduler.get_all_job_statuses() if self.scheduler else []
        }

        return web.json_response(status_data, dumps=lambda data: json.dumps(data, default=str))


def setup_signal_handlers(app: TriggerApp):
    """Set up signal handlers for graceful shutdown."""
    def signal_handler(signum, frame):
        app.logger.info(f"Received signal {signum}")
        app.running = False

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="yadisk-connector", description="Yandex Disk change-polling trigger")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run all active triggers on their schedule")
    run_parser.add_argument("--config", help="Configuration file (YAML or JSON)")

    test_parser = subparsers.add_parser("test", help="Preview the most recent file for one trigger")
    test_parser.add_argument("--trigger", required=True, help="Trigger name")
    test_parser.add_argument("--config", help="Configuration file (YAML or JSON)")

    return parser


async def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging()
    logger = get_logger("main")

    app = TriggerApp(config_file=args.config)

    if args.command == "test":
        try:
            records = await app.test_trigger(args.trigger)
        except ConnectorError as e:
            print(json.dumps({"error": e.to_dict()}, indent=2))
            return 1
        except SchedulerError as e:
            logger.error("Trigger test failed", error=str(e))
            return 2
        print(json.dumps(records, indent=2))
        return 0

    logger.info("Initializing Yandex Disk connector application")
    setup_signal_handlers(app)
    await app.run()
    return 0


def cli():
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        sys.exit(0)


if __name__ == "__main__":
    cli()
