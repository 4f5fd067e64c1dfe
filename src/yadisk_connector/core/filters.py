"""Filter pipeline stages applied to the remote item listing.

Every stage is a pure function taking a sequence of items and returning a new
list in the same relative order. Stages are safe to call with no items.
"""

from datetime import datetime, timedelta
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

from ..api_clients.base import RemoteItem
from ..config.schema import EventType, FileType, PollOptions
from ..utils.logging import get_logger


logger = get_logger("filters")

PATH_PREFIX = "disk:"
ROOT_PATH = PATH_PREFIX + "/"

# Tolerance between creation and modification times for event classification
EVENT_TOLERANCE = timedelta(seconds=1)

MIME_PREFIXES: Dict[str, Tuple[str, ...]] = {
    FileType.DOCUMENT.value: ("application/pdf", "application/msword", "application/vnd.", "text/"),
    FileType.IMAGE.value: ("image/",),
    FileType.VIDEO.value: ("video/",),
    FileType.AUDIO.value: ("audio/",),
    FileType.ARCHIVE.value: ("application/zip", "application/x-rar", "application/x-tar", "application/gzip"),
}

ItemFilter = Callable[[Sequence[RemoteItem]], List[RemoteItem]]


class FilterStage(NamedTuple):
    """A named pipeline stage bound to its parameters."""
    name: str
    apply: ItemFilter


# Order is load-bearing: the limit must run last so earlier stages never
# see a truncated list.
PIPELINE_ORDER = ("modified_time", "event_type", "path", "file_type", "limit")


def filter_by_modified_time(
    items: Sequence[RemoteItem],
    start: datetime,
    end: datetime
) -> List[RemoteItem]:
    """Keep items modified inside the half-open window ``(start, end]``."""
    return [item for item in items if start < item.modified_at <= end]


def filter_by_event_type(items: Sequence[RemoteItem], event: str) -> List[RemoteItem]:
    """Classify items as created or updated from their timestamps.

    ``created`` keeps items whose creation and modification times are less
    than one second apart; ``updated`` keeps items modified more than one
    second after creation. A gap of exactly one second matches neither.
    Any other event value keeps everything.
    """
    if event == EventType.CREATED.value:
        return [
            item for item in items
            if abs(item.created_at - item.modified_at) < EVENT_TOLERANCE
        ]

    if event == EventType.UPDATED.value:
        return [
            item for item in items
            if item.modified_at > item.created_at + EVENT_TOLERANCE
        ]

    return list(items)


def normalize_path(path: Optional[str]) -> str:
    """Normalize a user supplied path to the API form ``disk:/a/b``.

    Empty input and ``/`` both normalize to the root ``disk:/``.
    """
    normalized = (path or "").strip()

    if normalized.startswith(PATH_PREFIX):
        normalized = normalized[len(PATH_PREFIX):]

    if not normalized.startswith("/"):
        normalized = "/" + normalized

    normalized = normalized.rstrip("/")
    return PATH_PREFIX + (normalized or "/")


def filter_by_path(items: Sequence[RemoteItem], path: Optional[str]) -> List[RemoteItem]:
    """Keep items at ``path`` or below it, matching whole path segments only."""
    normalized = normalize_path(path)

    if normalized == ROOT_PATH:
        return list(items)

    prefix = normalized + "/"
    return [
        item for item in items
        if item.path == normalized or item.path.startswith(prefix)
    ]


def filter_by_file_type(items: Sequence[RemoteItem], file_type: str) -> List[RemoteItem]:
    """Keep items whose MIME type belongs to the given category."""
    prefixes = MIME_PREFIXES.get(file_type)
    if not prefixes:
        return list(items)

    return [
        item for item in items
        if item.mime_type and item.mime_type.startswith(prefixes)
    ]


def apply_limit(items: Sequence[RemoteItem], limit: int) -> List[RemoteItem]:
    """Keep the first ``limit`` items; zero or negative keeps all."""
    if limit <= 0:
        return list(items)
    return list(items[:limit])


def build_pipeline(
    options: PollOptions,
    window_start: datetime,
    window_end: datetime
) -> List[FilterStage]:
    """Bind the configured options to the ordered list of stages.

    The path stage is only present when a specific path is watched.
    """
    stages = [
        FilterStage("modified_time", lambda items: filter_by_modified_time(items, window_start, window_end)),
        FilterStage("event_type", lambda items: filter_by_event_type(items, options.event)),
    ]

    scoped_path = options.scoped_path
    if scoped_path is not None:
        stages.append(FilterStage("path", lambda items: filter_by_path(items, scoped_path)))

    stages.extend([
        FilterStage("file_type", lambda items: filter_by_file_type(items, options.file_type)),
        FilterStage("limit", lambda items: apply_limit(items, options.limit)),
    ])

    return stages


def run_pipeline(items: Sequence[RemoteItem], stages: Sequence[FilterStage]) -> List[RemoteItem]:
    """Apply stages in order, logging how many items survive each one."""
    result = list(items)

    for stage in stages:
        before = len(result)
        result = stage.apply(result)
        logger.debug("Filter stage applied", stage=stage.name, before=before, after=len(result))

    return result
