"""Core data models, configuration, errors and use cases.

This package provides:
- Data models (EventLog, RawLog, DomainEvent and payloads)
- Configuration (FeedConfig)
- Error taxonomy (SourceUnavailable, DecodeFailure)
"""

from ensfeed.core.config import FeedConfig
from ensfeed.core.errors import DecodeFailure, EnsFeedError, SourceUnavailable
from ensfeed.core.models import (
    EVENT_KINDS,
    DomainEvent,
    EventKind,
    EventLog,
    RawLog,
    RegisteredPayload,
    TransferredPayload,
    UpdatedPayload,
)

__all__ = [
    "FeedConfig",
    "DecodeFailure",
    "EnsFeedError",
    "SourceUnavailable",
    "EVENT_KINDS",
    "DomainEvent",
    "EventKind",
    "EventLog",
    "RawLog",
    "RegisteredPayload",
    "TransferredPayload",
    "UpdatedPayload",
]
