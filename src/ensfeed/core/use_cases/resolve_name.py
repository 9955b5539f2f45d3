"""Recover plaintext names from hashed indexed parameters.

An indexed `string` event argument is delivered as keccak256(value). The
plaintext is still available as the first argument of the transaction that
emitted the event, so the resolver decodes that call data. Every failure
degrades to returning the value it was given.
"""

from __future__ import annotations

import logging
import re

from ensfeed.core.errors import DecodeFailure, SourceUnavailable
from ensfeed.core.interfaces import IEventSource
from ensfeed.decoding.decoder import decode_call
from ensfeed.decoding.registries import make_name_registry_functions
from ensfeed.decoding.specs import FunctionRegistry

logger = logging.getLogger(__name__)

_OPAQUE_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


def looks_opaque(value: object) -> bool:
    """True iff `value` has the shape of a 32-byte content hash (0x + 64 hex digits).

    Heuristic only: a plaintext name that happens to have this shape is treated
    as a hash.
    """
    return isinstance(value, str) and _OPAQUE_RE.match(value) is not None


class NameResolver:
    """Resolve hashed names through the originating transaction's call data."""

    def __init__(self, source: IEventSource, functions: FunctionRegistry | None = None) -> None:
        self._source = source
        self._functions = functions if functions is not None else make_name_registry_functions()

    async def resolve(self, name: str, tx_hash: str) -> str:
        """Return the plaintext name, or `name` unchanged when it cannot be recovered."""
        if not looks_opaque(name):
            return name
        try:
            return await self._resolve_from_tx(tx_hash)
        except (SourceUnavailable, DecodeFailure) as e:
            logger.debug("name %s in %s left unresolved: %s", name, tx_hash, e)
            return name
        except Exception:
            logger.warning("unexpected error resolving name in %s", tx_hash, exc_info=True)
            return name

    async def _resolve_from_tx(self, tx_hash: str) -> str:
        input_hex = await self._source.fetch_transaction_input(tx_hash)
        if input_hex is None:
            raise DecodeFailure(f"transaction {tx_hash} not found")
        call = decode_call(input_hex, self._functions)
        if not call.args or not isinstance(call.args[0], str):
            raise DecodeFailure(f"{call.name} has no string first argument")
        return call.args[0]
