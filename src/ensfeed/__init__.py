from __future__ import annotations

from .core.config import FeedConfig
from .core.errors import DecodeFailure, SourceUnavailable
from .core.models import DomainEvent, EventKind
from .core.use_cases import Feed, FeedReconciler, NameResolver, looks_opaque
from .orchestration import open_feed

__all__ = [
    "FeedConfig",
    "DecodeFailure",
    "SourceUnavailable",
    "DomainEvent",
    "EventKind",
    "Feed",
    "FeedReconciler",
    "NameResolver",
    "looks_opaque",
    "open_feed",
]
