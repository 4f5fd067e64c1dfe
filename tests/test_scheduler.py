"""Tests for the trigger scheduler."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from yadisk_connector.config.schema import PollOptions, TriggerConfig
from yadisk_connector.core.errors import ConnectorError, ErrorKind
from yadisk_connector.core.poller import NO_DATA, ChangePoller, EmittedBatch, PollMode
from yadisk_connector.core.state import CHECKPOINT_KEY, InMemoryCheckpointStore, format_checkpoint
from yadisk_connector.scheduler import SchedulerError, TriggerScheduler

from conftest import BASE_TIME, make_item, seconds


def make_trigger(name="Docs", interval=None):
    return TriggerConfig(
        name=name,
        workflow_id="wf-1",
        node_id=f"node-{name}",
        options=PollOptions(event="created"),
        interval_minutes=interval
    )


def make_poller(items, error=None):
    client = AsyncMock()
    if error is not None:
        client.recent.side_effect = error
    else:
        client.recent.return_value = items
    store = InMemoryCheckpointStore({CHECKPOINT_KEY: format_checkpoint(BASE_TIME)})
    poller = ChangePoller(
        client=client,
        options=PollOptions(event="created"),
        store=store,
        clock=lambda: BASE_TIME + seconds(60)
    )
    return poller, store


def fresh_item(name="a.txt"):
    moment = BASE_TIME + seconds(10)
    return make_item(name, created=moment, modified=moment)


class TestTriggerScheduler:

    def test_add_and_remove_trigger(self):
        scheduler = TriggerScheduler(default_interval_minutes=2)
        trigger = make_trigger()
        poller, _ = make_poller([])

        job_id = scheduler.add_trigger(trigger, poller)

        assert job_id == "poll_wf-1:node-Docs"
        status = scheduler.get_job_status(trigger)
        assert status["interval_minutes"] == 2
        assert status["is_scheduled"] is True
        assert status["run_count"] == 0

        assert scheduler.remove_trigger(trigger) is True
        assert scheduler.remove_trigger(trigger) is False
        assert scheduler.get_job_status(trigger) is None

    def test_interval_override(self):
        scheduler = TriggerScheduler(default_interval_minutes=2)
        trigger = make_trigger(interval=15)
        poller, _ = make_poller([])

        scheduler.add_trigger(trigger, poller)

        assert scheduler.get_all_job_statuses()[0]["interval_minutes"] == 15

    def test_job_defaults(self):
        scheduler = TriggerScheduler(misfire_grace_seconds=30)

        assert scheduler.scheduler._job_defaults["max_instances"] == 1
        assert scheduler.scheduler._job_defaults["coalesce"] is True
        assert scheduler.scheduler._job_defaults["misfire_grace_time"] == 30

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        scheduler = TriggerScheduler()
        scheduler.add_trigger(make_trigger(), make_poller([])[0])

        scheduler.start()
        assert scheduler.running

        scheduler.stop(wait=False)
        assert scheduler.active_jobs == {}

    @pytest.mark.asyncio
    async def test_batch_handed_to_callback(self):
        on_batch = Mock()
        scheduler = TriggerScheduler(on_batch=on_batch)
        trigger = make_trigger()
        poller, store = make_poller([fresh_item()])
        scheduler.add_trigger(trigger, poller)

        result = await scheduler.run_now("Docs")

        assert isinstance(result, EmittedBatch)
        on_batch.assert_called_once_with("Docs", result)
        assert store.get(CHECKPOINT_KEY) == format_checkpoint(BASE_TIME + seconds(60))

    @pytest.mark.asyncio
    async def test_async_callback_is_awaited(self):
        on_batch = AsyncMock()
        scheduler = TriggerScheduler(on_batch=on_batch)
        scheduler.add_trigger(make_trigger(), make_poller([fresh_item()])[0])

        await scheduler.run_now("Docs")

        on_batch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_data_skips_callback(self):
        on_batch = Mock()
        scheduler = TriggerScheduler(on_batch=on_batch)
        scheduler.add_trigger(make_trigger(), make_poller([])[0])

        assert await scheduler.run_now("Docs") is NO_DATA
        on_batch.assert_not_called()

    @pytest.mark.asyncio
    async def test_poll_errors_propagate(self):
        scheduler = TriggerScheduler()
        poller, store = make_poller([], error=RuntimeError("boom"))
        scheduler.add_trigger(make_trigger(), poller)

        with pytest.raises(ConnectorError):
            await scheduler.run_now("Docs")

        assert store.get(CHECKPOINT_KEY) == format_checkpoint(BASE_TIME)

    @pytest.mark.asyncio
    async def test_trigger_test_runs_manual_preview(self):
        scheduler = TriggerScheduler()
        poller, store = make_poller([fresh_item("latest.txt")])
        scheduler.add_trigger(make_trigger(), poller)

        batch = await scheduler.trigger_test("Docs")

        assert batch.mode == PollMode.MANUAL
        assert batch.to_json()[0]["name"] == "latest.txt"
        assert store.get(CHECKPOINT_KEY) == format_checkpoint(BASE_TIME)

    @pytest.mark.asyncio
    async def test_trigger_test_with_empty_disk(self):
        scheduler = TriggerScheduler()
        scheduler.add_trigger(make_trigger(), make_poller([])[0])

        with pytest.raises(ConnectorError) as exc_info:
            await scheduler.trigger_test("Docs")

        assert exc_info.value.kind == ErrorKind.NO_DATA

    @pytest.mark.asyncio
    async def test_unknown_trigger(self):
        scheduler = TriggerScheduler()

        with pytest.raises(SchedulerError):
            await scheduler.trigger_test("missing")
        with pytest.raises(SchedulerError):
            await scheduler.run_now("missing")

    def test_job_event_statistics(self):
        scheduler = TriggerScheduler()
        trigger = make_trigger()
        job_id = scheduler.add_trigger(trigger, make_poller([])[0])
        batch = EmittedBatch(items=(fresh_item(),), window_start=BASE_TIME, window_end=BASE_TIME + seconds(60))

        scheduler._job_executed(SimpleNamespace(job_id=job_id, retval=batch))
        scheduler._job_executed(SimpleNamespace(job_id=job_id, retval=NO_DATA))
        scheduler._job_error(SimpleNamespace(job_id=job_id, exception=RuntimeError("boom")))

        status = scheduler.get_job_status(trigger)
        assert status["run_count"] == 3
        assert status["success_count"] == 2
        assert status["error_count"] == 1
        assert status["emitted_count"] == 1
        assert status["last_result"]["error_message"] == "boom"

        stats = scheduler.get_scheduler_stats()
        assert stats["total_runs"] == 3
        assert stats["total_emitted"] == 1
