"""Scheduler package for running polling triggers."""

from .job_scheduler import TriggerScheduler, SchedulerError, log_batch

__all__ = [
    "TriggerScheduler",
    "SchedulerError",
    "log_batch"
]
