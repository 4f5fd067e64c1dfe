"""Core trigger logic package."""

from .errors import ConnectorError, ErrorKind, classify_error, wrap_error
from .filters import (
    FilterStage,
    PIPELINE_ORDER,
    filter_by_modified_time,
    filter_by_event_type,
    filter_by_path,
    filter_by_file_type,
    apply_limit,
    normalize_path,
    build_pipeline,
    run_pipeline
)
from .poller import ChangePoller, EmittedBatch, NoData, NO_DATA, PollMode, PollResult
from .state import (
    CHECKPOINT_KEY,
    CheckpointStore,
    InMemoryCheckpointStore,
    SQLCheckpointStore,
    format_checkpoint,
    parse_checkpoint
)

__all__ = [
    "ConnectorError",
    "ErrorKind",
    "classify_error",
    "wrap_error",
    "FilterStage",
    "PIPELINE_ORDER",
    "filter_by_modified_time",
    "filter_by_event_type",
    "filter_by_path",
    "filter_by_file_type",
    "apply_limit",
    "normalize_path",
    "build_pipeline",
    "run_pipeline",
    "ChangePoller",
    "EmittedBatch",
    "NoData",
    "NO_DATA",
    "PollMode",
    "PollResult",
    "CHECKPOINT_KEY",
    "CheckpointStore",
    "InMemoryCheckpointStore",
    "SQLCheckpointStore",
    "format_checkpoint",
    "parse_checkpoint"
]
