"""Wiring of concrete clients into the feed engine."""

from ensfeed.orchestration.orchestrator import FeedRuntime, build_feed, open_feed

__all__ = ["FeedRuntime", "build_feed", "open_feed"]
