"""Ingestion pipeline - poll scheduler and fan-out dispatcher."""

from swapfeed.pipeline.dispatcher import FanoutDispatcher
from swapfeed.pipeline.scheduler import PollScheduler, block_ranges

__all__ = ["FanoutDispatcher", "PollScheduler", "block_ranges"]
