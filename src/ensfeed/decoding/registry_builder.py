"""Registry builder utilities for creating registries from Solidity signatures.

This module provides the core tools for building registries:
- `event_spec_from_signature()` / `function_spec_from_signature()` parse one
  human-readable signature into a spec
- `make_event_registry()` / `make_function_registry()` accept one or many
"""

from __future__ import annotations

from eth_utils import keccak

from .specs import DataFieldSpec, EventRegistry, EventSpec, FunctionRegistry, FunctionSpec, TopicFieldSpec


# ---- Helpers: parse signatures ----
def _split_params(params_str: str) -> list[str]:
    """Split the parameter list by commas while respecting nested tuple types.

    Very lightweight splitter sufficient for typical signatures.
    """
    items: list[str] = []
    depth = 0
    buf: list[str] = []
    for ch in params_str:
        if ch == '(':
            depth += 1
            buf.append(ch)
        elif ch == ')':
            depth -= 1
            buf.append(ch)
        elif ch == ',' and depth == 0:
            items.append(''.join(buf).strip())
            buf = []
        else:
            buf.append(ch)
    if buf:
        items.append(''.join(buf).strip())
    return [i for i in items if i]


def _parse_param(p: str, fallback_name: str) -> tuple[str, str, bool]:
    """Parse one parameter fragment into (name, abi_type, indexed)."""
    s = ' '.join(p.strip().split())  # normalize spaces
    indexed = False
    if ' indexed ' in f' {s} ':
        indexed = True
        s = f' {s} '.replace(' indexed ', ' ').strip()
    # data location keywords only appear in function signatures copied from source
    for kw in (' memory ', ' calldata '):
        s = f' {s} '.replace(kw, ' ').strip()
    tokens = s.split()
    if not tokens:
        return (fallback_name, 'bytes32', indexed)
    if len(tokens) == 1:
        # Unnamed parameter
        return (fallback_name, tokens[0], indexed)
    # Last token is the name, the rest is the type (can include tuple syntax)
    return (tokens[-1], ' '.join(tokens[:-1]), indexed)


def _split_signature(signature: str) -> tuple[str, list[tuple[str, str, bool]]]:
    sig = signature.strip()
    for prefix in ("event ", "function "):
        if sig.startswith(prefix):
            sig = sig[len(prefix):].strip()
    open_paren = sig.find('(')
    close_paren = sig.rfind(')')
    if open_paren == -1 or close_paren == -1 or close_paren < open_paren:
        raise ValueError(f"Invalid signature: {signature}")
    name = sig[:open_paren].strip()
    params_str = sig[open_paren + 1 : close_paren].strip()
    parsed = [
        _parse_param(part, fallback_name=f"arg{i}")
        for i, part in enumerate(_split_params(params_str))
    ]
    return name, parsed


def _canonical(name: str, parsed: list[tuple[str, str, bool]]) -> str:
    return f"{name}({','.join(t for (_, t, _) in parsed)})"


def event_spec_from_signature(signature: str) -> EventSpec:
    """Build an EventSpec from a Solidity event signature string.

    Example input:
      "NameRegistered(string indexed name, address indexed owner, string imageHash)"
    """
    name, parsed = _split_signature(signature)
    topic0 = '0x' + keccak(text=_canonical(name, parsed)).hex()

    indexed_params = [(n, t) for (n, t, ix) in parsed if ix]
    data_params = [(n, t) for (n, t, ix) in parsed if not ix]

    return EventSpec(
        topic0=topic0,
        name=name,
        topic_fields=[TopicFieldSpec(n, idx + 1, t) for idx, (n, t) in enumerate(indexed_params)],
        data_fields=[DataFieldSpec(n, idx, t) for idx, (n, t) in enumerate(data_params)],
    )


def function_spec_from_signature(signature: str) -> FunctionSpec:
    """Build a FunctionSpec from a Solidity function signature string.

    Example input:
      "transferName(string name, address newOwner)"
    """
    name, parsed = _split_signature(signature)
    if any(ix for (_, _, ix) in parsed):
        raise ValueError(f"Function parameters cannot be indexed: {signature}")
    selector = '0x' + keccak(text=_canonical(name, parsed))[:4].hex()
    return FunctionSpec(
        selector=selector,
        name=name,
        inputs=[(n, t) for (n, t, _) in parsed],
    )


def make_event_registry(signatures: str | list[str]) -> EventRegistry:
    """Create an event registry from one or multiple event signatures."""
    sig_list = [signatures] if isinstance(signatures, str) else signatures
    reg: EventRegistry = {}
    for signature in sig_list:
        spec = event_spec_from_signature(signature)
        reg[spec.topic0] = spec
    return reg


def make_function_registry(signatures: str | list[str]) -> FunctionRegistry:
    """Create a function registry (keyed by selector) from one or many signatures."""
    sig_list = [signatures] if isinstance(signatures, str) else signatures
    reg: FunctionRegistry = {}
    for signature in sig_list:
        spec = function_spec_from_signature(signature)
        reg[spec.selector] = spec
    return reg
