from ensfeed.core.use_cases.normalize import EventNormalizer
from ensfeed.core.use_cases.reconcile_feed import (
    Feed,
    FeedReconciler,
    ReconcileConfig,
    compute_scan_window,
)
from ensfeed.core.use_cases.resolve_name import NameResolver, looks_opaque

__all__ = [
    "EventNormalizer",
    "Feed",
    "FeedReconciler",
    "ReconcileConfig",
    "compute_scan_window",
    "NameResolver",
    "looks_opaque",
]
