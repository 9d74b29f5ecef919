"""Chain addressing — dotted paths into an observable tree.

A chain names a location in the tree: "a.b.2" is index 2 of property b of
property a. The empty chain is the root. Channel names put a per-model
prefix in front of a chain so different models never share a topic.

Everything here is pure: no state, no errors.
"""

from __future__ import annotations

CHAIN_SEPARATOR = "."
WILDCARD = "*"
MODEL_PREFIX = "Model"
CHAIN_CHANGED = "chainChanged"


def extend_chain(parent_chain: str | None, segment: object) -> str:
    """Append one segment to a chain. An empty parent yields the bare segment."""
    if parent_chain:
        return f"{parent_chain}{CHAIN_SEPARATOR}{segment}"
    return str(segment)


def split_chain(chain: str | None) -> list[str]:
    """Split a chain into whitespace-stripped segments. Empty chain -> []."""
    if not chain:
        return []
    return [segment.strip() for segment in chain.split(CHAIN_SEPARATOR)]


def chain_prefixes(chain: str | None) -> list[str]:
    """Root-to-leaf prefixes: "a.b.c" -> ["a", "a.b", "a.b.c"]."""
    prefixes: list[str] = []
    current = ""
    for segment in split_chain(chain):
        current = extend_chain(current, segment)
        prefixes.append(current)
    return prefixes


def channel_prefix(prefix: str, model_index: int) -> str:
    return f"{prefix}{CHAIN_SEPARATOR}{model_index}{CHAIN_SEPARATOR}"


def channel_for(prefix: str, chain: str) -> str:
    """Channel name for a chain under a model's channel prefix."""
    return prefix + chain
