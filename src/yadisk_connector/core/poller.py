"""Change poller: one poll cycle of the Yandex Disk trigger."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..api_clients.base import BaseAPIClient, RemoteItem
from ..config.schema import PollOptions
from ..utils.logging import get_logger, log_async_execution_time
from .errors import ConnectorError, ErrorKind, wrap_error
from .filters import build_pipeline, run_pipeline
from .state import CHECKPOINT_KEY, CheckpointStore, format_checkpoint, parse_checkpoint


# Items requested when a user tests the trigger from the editor
MANUAL_PREVIEW_LIMIT = 1

TRIGGER_ERROR_MESSAGE = "An error occurred in Yandex 360 Disk Trigger"


class PollMode(str, Enum):
    """How the host invoked the poller."""
    MANUAL = "manual"
    AUTOMATED = "trigger"


class NoData:
    """Sentinel meaning "do not start a workflow execution this cycle"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_DATA"


NO_DATA = NoData()


@dataclass(frozen=True)
class EmittedBatch:
    """Non-empty, filtered and capped items handed back to the host."""

    items: Tuple[RemoteItem, ...]
    window_start: datetime
    window_end: datetime
    mode: PollMode = PollMode.AUTOMATED

    def __post_init__(self):
        if not self.items:
            raise ValueError("EmittedBatch requires at least one item")

    def __len__(self) -> int:
        return len(self.items)

    def to_json(self) -> List[Dict[str, Any]]:
        """One JSON record per item, in emitted order."""
        return [item.to_dict() for item in self.items]


PollResult = Union[EmittedBatch, NoData]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChangePoller:
    """Detects created/updated files by polling the recent-items listing."""

    def __init__(
        self,
        client: BaseAPIClient,
        options: PollOptions,
        store: CheckpointStore,
        clock: Callable[[], datetime] = utcnow,
        name: Optional[str] = None
    ):
        """Initialize the poller.

        Args:
            client: Remote storage API client
            options: Trigger options; snapshotted at the start of each cycle
            store: Checkpoint store scoped to this trigger instance
            clock: Returns the current aware UTC time
            name: Trigger name used in log context
        """
        self.client = client
        self.options = options
        self.store = store
        self.clock = clock
        self.name = name or "yandex_disk_trigger"
        self.logger = get_logger(self.__class__.__name__).bind(trigger=self.name)

    def read_checkpoint(self) -> Optional[datetime]:
        value = self.store.get(CHECKPOINT_KEY)
        if not value:
            return None
        try:
            return parse_checkpoint(value)
        except ValueError:
            self.logger.warning("Ignoring unparsable checkpoint", value=value)
            return None

    def _capture_window(self) -> Tuple[datetime, datetime]:
        """Resolve ``(window_start, window_end]`` once for the cycle.

        The end is truncated to whole seconds so it equals the persisted value,
        and never falls behind the stored checkpoint.
        """
        window_end = self._now()
        window_start = self.read_checkpoint() or window_end

        if window_end < window_start:
            self.logger.warning(
                "Clock is behind the stored checkpoint; holding the checkpoint",
                checkpoint=format_checkpoint(window_start),
                now=format_checkpoint(window_end)
            )
            window_end = window_start

        return window_start, window_end

    def _now(self) -> datetime:
        return self.clock().astimezone(timezone.utc).replace(microsecond=0)

    @log_async_execution_time
    async def poll(self, mode: PollMode = PollMode.AUTOMATED) -> PollResult:
        """Run one poll cycle.

        Returns:
            EmittedBatch with matching items, or NO_DATA when nothing matched

        Raises:
            ConnectorError: On any failure, or when a manual preview finds nothing
        """
        options = self.options.model_copy()

        try:
            if mode == PollMode.MANUAL:
                return await self._preview()
            return await self._run_cycle(options)
        except Exception as e:
            raise wrap_error(e, TRIGGER_ERROR_MESSAGE, str(e))

    async def _run_cycle(self, options: PollOptions) -> PollResult:
        window_start, window_end = self._capture_window()

        self.logger.info(
            "Starting poll cycle",
            window_start=window_start.isoformat(),
            window_end=window_end.isoformat(),
            watch_event=options.event,
            file_type=options.file_type,
            path=options.scoped_path,
            limit=options.limit
        )

        try:
            items = await self.client.recent(
                limit=options.api_limit,
                media_type=options.media_type_hint
            )
        except Exception as e:
            error = wrap_error(
                e,
                "Failed to fetch recent files from Yandex Disk",
                "Check your OAuth credentials and configuration"
            )
            self.logger.error("Poll cycle aborted", kind=error.kind.value, error=str(e))
            raise error

        matched = run_pipeline(items, build_pipeline(options, window_start, window_end))

        self.store.set(CHECKPOINT_KEY, format_checkpoint(window_end))

        self.logger.info(
            "Poll cycle completed",
            fetched=len(items),
            emitted=len(matched),
            checkpoint=format_checkpoint(window_end)
        )

        if not matched:
            return NO_DATA

        return EmittedBatch(
            items=tuple(matched),
            window_start=window_start,
            window_end=window_end
        )

    async def _preview(self) -> EmittedBatch:
        """Fetch the most recent item for an interactive test; never touches state."""
        now = self._now()

        try:
            items = await self.client.recent(limit=MANUAL_PREVIEW_LIMIT)
        except Exception as e:
            raise wrap_error(
                e,
                "Failed to fetch recent files from Yandex Disk",
                "Check your OAuth credentials and try again"
            )

        if not items:
            raise ConnectorError(
                "No recent files found in Yandex Disk",
                description="Upload some files to your Yandex Disk to test this trigger",
                kind=ErrorKind.NO_DATA
            )

        self.logger.info("Manual preview fetched", items=len(items))

        return EmittedBatch(
            items=tuple(items[:MANUAL_PREVIEW_LIMIT]),
            window_start=now,
            window_end=now,
            mode=PollMode.MANUAL
        )
