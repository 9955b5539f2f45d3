"""Error taxonomy for the feed engine.

Only two failure kinds cross component boundaries, and both are recovered
locally by the reconciler / resolver:

- `SourceUnavailable`: the ledger-query provider could not service a request.
- `DecodeFailure`: call data or a log did not match a known ABI shape.
"""

from __future__ import annotations


class EnsFeedError(Exception):
    """Base class for all ensfeed errors."""


class SourceUnavailable(EnsFeedError):
    """The RPC node could not be reached or answered with an error."""


class DecodeFailure(EnsFeedError):
    """Raw bytes did not decode against any known signature."""
