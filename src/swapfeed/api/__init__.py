"""API components - feed queries and quotes."""

from swapfeed.api.feed_service import FeedService

__all__ = ["FeedService"]
