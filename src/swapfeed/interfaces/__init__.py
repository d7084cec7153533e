"""Protocol interfaces for all swapfeed components."""

from swapfeed.interfaces.ledger import LedgerReader, SWAPPED
from swapfeed.interfaces.store import CursorStore, FeedStore, FollowerIndex, PoolRegistry
from swapfeed.interfaces.feed_api import FeedQueryAPI

__all__ = [
    "LedgerReader", "SWAPPED",
    "CursorStore", "FeedStore", "FollowerIndex", "PoolRegistry",
    "FeedQueryAPI",
]
