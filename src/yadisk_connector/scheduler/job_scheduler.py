"""Job scheduler driving the polling triggers."""

import inspect
from typing import Dict, Any, List, Optional, Callable
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.events import EVENT_JOB_EXECUTED, EVENT_JOB_ERROR, EVENT_JOB_MISSED
from apscheduler.job import Job

from ..config.schema import TriggerConfig
from ..core.errors import ConnectorError
from ..core.poller import ChangePoller, EmittedBatch, PollMode, PollResult
from ..utils.logging import get_logger, log_async_execution_time


BatchHandler = Callable[[str, EmittedBatch], Any]


class SchedulerError(Exception):
    """Raised when scheduler operations fail."""
    pass


def log_batch(trigger_name: str, batch: EmittedBatch):
    """Default batch handler: log each emitted record."""
    logger = get_logger("batch")
    for record in batch.to_json():
        logger.info("Item emitted", trigger=trigger_name, path=record.get("path"), name=record.get("name"))


class TriggerScheduler:
    """Runs one interval job per active trigger."""

    def __init__(
        self,
        on_batch: Optional[BatchHandler] = None,
        default_interval_minutes: int = 1,
        misfire_grace_seconds: int = 60
    ):
        """Initialize trigger scheduler.

        Args:
            on_batch: Called with ``(trigger_name, batch)`` for every emitted batch;
                may be a coroutine function
            default_interval_minutes: Interval for triggers without an override
            misfire_grace_seconds: How late a run may start before it is skipped
        """
        self.on_batch = on_batch or log_batch
        self.default_interval_minutes = default_interval_minutes
        self.logger = get_logger(self.__class__.__name__)

        # One cycle per trigger at a time; overdue runs collapse into one
        self.scheduler = AsyncIOScheduler(
            job_defaults={
                'coalesce': True,
                'max_instances': 1,
                'misfire_grace_time': misfire_grace_seconds
            }
        )

        self.pollers: Dict[str, ChangePoller] = {}
        self.active_jobs: Dict[str, Job] = {}
        self.job_stats: Dict[str, Dict[str, Any]] = {}

        self.scheduler.add_listener(self._job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._job_error, EVENT_JOB_ERROR)
        self.scheduler.add_listener(self._job_missed, EVENT_JOB_MISSED)

        self.logger.info("Trigger scheduler initialized", default_interval_minutes=default_interval_minutes)

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self):
        """Start the scheduler; must be called from a running event loop."""
        if self.scheduler.running:
            self.logger.warning("Scheduler is already running")
            return

        try:
            self.scheduler.start()
        except Exception as e:
            self.logger.error("Failed to start scheduler", error=str(e))
            raise SchedulerError(f"Failed to start scheduler: {e}")

        self.logger.info("Trigger scheduler started", active_jobs=len(self.active_jobs))

    def stop(self, wait: bool = True):
        if not self.scheduler.running:
            self.logger.warning("Scheduler is not running")
            return

        self.scheduler.shutdown(wait=wait)
        self.active_jobs.clear()
        self.logger.info("Trigger scheduler stopped")

    def add_trigger(self, trigger: TriggerConfig, poller: ChangePoller) -> str:
        """Schedule a poller for a trigger.

        Returns:
            Job ID
        """
        job_id = self._get_job_id(trigger)
        interval = trigger.interval_minutes or self.default_interval_minutes

        try:
            job = self.scheduler.add_job(
                func=self._execute_poll_job,
                trigger=IntervalTrigger(minutes=interval),
                args=[trigger.name],
                id=job_id,
                name=f"Poll: {trigger.name}",
                replace_existing=True
            )
        except Exception as e:
            self.logger.error("Failed to add trigger job", job_id=job_id, error=str(e))
            raise SchedulerError(f"Failed to add job for {trigger.name}: {e}")

        self.pollers[trigger.name] = poller
        self.active_jobs[job_id] = job
        self.job_stats[job_id] = {
            "trigger_name": trigger.name,
            "namespace": trigger.state_namespace,
            "interval_minutes": interval,
            "created_at": datetime.now(timezone.utc),
            "last_run": None,
            "run_count": 0,
            "success_count": 0,
            "error_count": 0,
            "emitted_count": 0,
            "last_result": None
        }

        self.logger.info(
            "Trigger job added",
            job_id=job_id,
            trigger_name=trigger.name,
            interval_minutes=interval
        )
        return job_id

    def remove_trigger(self, trigger: TriggerConfig) -> bool:
        """Remove a trigger job. Returns False if it was not scheduled."""
        job_id = self._get_job_id(trigger)

        if job_id not in self.active_jobs:
            self.logger.warning("Job not found for removal", job_id=job_id)
            return False

        self.scheduler.remove_job(job_id)
        del self.active_jobs[job_id]
        del self.job_stats[job_id]
        self.pollers.pop(trigger.name, None)

        self.logger.info("Trigger job removed", job_id=job_id)
        return True

    async def trigger_test(self, trigger_name: str) -> EmittedBatch:
        """Run a manual preview poll; the checkpoint is left untouched.

        Raises:
            SchedulerError: If the trigger is unknown
            ConnectorError: If the preview fails or finds nothing
        """
        poller = self.pollers.get(trigger_name)
        if poller is None:
            raise SchedulerError(f"Unknown trigger: {trigger_name}")

        self.logger.info("Manually testing trigger", trigger_name=trigger_name)
        return await poller.poll(PollMode.MANUAL)

    @log_async_execution_time
    async def run_now(self, trigger_name: str) -> PollResult:
        """Run one automated cycle immediately, outside the schedule."""
        if trigger_name not in self.pollers:
            raise SchedulerError(f"Unknown trigger: {trigger_name}")
        return await self._execute_poll_job(trigger_name)

    async def _execute_poll_job(self, trigger_name: str) -> PollResult:
        """Run one automated cycle and hand a non-empty batch to ``on_batch``.

        Errors propagate so the scheduler records them; the next run retries
        with the untouched checkpoint.
        """
        poller = self.pollers[trigger_name]

        try:
            result = await poller.poll(PollMode.AUTOMATED)
        except ConnectorError as e:
            self.logger.error(
                "Poll job failed",
                trigger_name=trigger_name,
                kind=e.kind.value,
                error=e.message,
                description=e.description
            )
            raise

        if isinstance(result, EmittedBatch):
            outcome = self.on_batch(trigger_name, result)
            if inspect.isawaitable(outcome):
                await outcome

        return result

    def get_job_status(self, trigger: TriggerConfig) -> Optional[Dict[str, Any]]:
        job_id = self._get_job_id(trigger)

        if job_id not in self.job_stats:
            return None

        return self._status_for(job_id)

    def get_all_job_statuses(self) -> List[Dict[str, Any]]:
        return [self._status_for(job_id) for job_id in self.job_stats]

    def _status_for(self, job_id: str) -> Dict[str, Any]:
        status = self.job_stats[job_id].copy()
        job = self.active_jobs.get(job_id)
        status.update({
            "job_id": job_id,
            "next_run": getattr(job, "next_run_time", None) if job else None,
            "is_scheduled": job is not None
        })
        return status

    def get_scheduler_stats(self) -> Dict[str, Any]:
        return {
            "is_running": self.scheduler.running,
            "total_jobs": len(self.active_jobs),
            "total_runs": sum(stats["run_count"] for stats in self.job_stats.values()),
            "total_successes": sum(stats["success_count"] for stats in self.job_stats.values()),
            "total_errors": sum(stats["error_count"] for stats in self.job_stats.values()),
            "total_emitted": sum(stats["emitted_count"] for stats in self.job_stats.values())
        }

    def _get_job_id(self, trigger: TriggerConfig) -> str:
        return f"poll_{trigger.state_namespace}"

    def _job_executed(self, event):
        """Handle job execution event."""
        stats = self.job_stats.get(event.job_id)
        if stats is None:
            return

        stats["last_run"] = datetime.now(timezone.utc)
        stats["run_count"] += 1
        stats["success_count"] += 1

        retval = getattr(event, "retval", None)
        emitted = len(retval) if isinstance(retval, EmittedBatch) else 0
        stats["emitted_count"] += emitted
        stats["last_result"] = {"success": True, "emitted": emitted, "error_message": None}

    def _job_error(self, event):
        """Handle job error event."""
        stats = self.job_stats.get(event.job_id)
        if stats is not None:
            stats["last_run"] = datetime.now(timezone.utc)
            stats["run_count"] += 1
            stats["error_count"] += 1
            stats["last_result"] = {
                "success": False,
                "emitted": 0,
                "error_message": str(event.exception)
            }

        self.logger.error("Scheduled job failed", job_id=event.job_id, error=str(event.exception))

    def _job_missed(self, event):
        self.logger.warning(
            "Scheduled job missed",
            job_id=event.job_id,
            scheduled_run_time=event.scheduled_run_time
        )
