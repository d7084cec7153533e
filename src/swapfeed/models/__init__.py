"""Data models for the swapfeed daemon."""

from swapfeed.models.events import Pool, RawEvent, SwapEvent
from swapfeed.models.records import (
    ActivityRecord,
    DispatchResult,
    FeedEntry,
    PoolTickResult,
    TickReport,
)
from swapfeed.models.config import DaemonConfig

__all__ = [
    "Pool", "RawEvent", "SwapEvent",
    "ActivityRecord", "DispatchResult", "FeedEntry", "PoolTickResult", "TickReport",
    "DaemonConfig",
]
