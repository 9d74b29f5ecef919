"""Change notifier — per-model state and the related-chain fanout.

A ModelContext is owned by one Model and shared by every node of its tree.
It holds the channel prefix, the transport, the observed-chain set, and the
root node. Nodes call notify(chain) after each write; notify publishes one
"chainChanged" message per related chain:

1. the wildcard "*",
2. every root-to-leaf prefix of the changed chain ("a", "a.b", "a.b.2"),
3. every observed chain that starts with the changed chain as a literal
   string prefix, in the order they were first observed.

Rule 2 reaches ancestors of the write; rule 3 reaches descendants that a
wholesale replacement affected.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from bindable import _anchor
from bindable.chain import (
    CHAIN_CHANGED,
    MODEL_PREFIX,
    WILDCARD,
    chain_prefixes,
    channel_for,
    channel_prefix,
    split_chain,
)
from bindable.observable import ObservableNode

logger = logging.getLogger("bindable.context")


def related_chains(changed_chain: str, observed_chains: Iterable[str]) -> list[str]:
    """Every chain that must be told about a write to changed_chain, in publish order."""
    related: dict[str, None] = {WILDCARD: None}
    # The empty chain is the root itself and is its own only prefix.
    for prefix in chain_prefixes(changed_chain) or [""]:
        related[prefix] = None
    for chain in observed_chains:
        if chain.startswith(changed_chain):
            related[chain] = None
    return list(related)


class ModelContext:
    """Per-model state shared by the root handle and every node."""

    __slots__ = ("model_index", "channel_prefix", "transport", "observed_chains", "root", "handle")

    def __init__(self, transport, prefix: str = MODEL_PREFIX) -> None:
        self.model_index = _anchor.next_model_index()
        self.channel_prefix = channel_prefix(prefix, self.model_index)
        self.transport = transport
        # Insertion-ordered set; never pruned.
        self.observed_chains: dict[str, None] = {}
        self.root: ObservableNode | None = None
        self.handle: Any = None

    def channel(self, chain: str) -> str:
        return channel_for(self.channel_prefix, chain)

    def notify(self, chain: str) -> None:
        """Publish a chainChanged message on every chain related to chain."""
        chains = related_chains(chain, self.observed_chains)
        logger.debug("Model %d: %r changed, notifying %s", self.model_index, chain, chains)
        for related in chains:
            self.transport.publish(self.channel(related), {"type": CHAIN_CHANGED, "chain": related})

    def on_change(self, chain: str, callback: Callable[[dict], None]) -> Callable[[], None]:
        """Observe chain and subscribe callback to it. Returns the transport's disposer."""
        self.observed_chains[chain] = None
        return self.transport.subscribe(self.channel(chain), callback)

    def get_chain_value(self, chain: str | None) -> Any:
        """Value at chain, the root handle for an empty chain, None if any step is missing."""
        if not chain:
            return self.handle if self.handle is not None else self.root
        current: Any = self.root
        for segment in split_chain(chain):
            current = _step(current, segment)
            if current is None:
                return None
        return current

    def set_chain_value(self, chain: str | None, value: Any) -> bool:
        """Write value at chain through the node write path. False if the walk fails."""
        segments = split_chain(chain)
        if not segments:
            return False
        parent: Any = self.root
        for segment in segments[:-1]:
            parent = _step(parent, segment)
            if parent is None:
                return False
        if not isinstance(parent, ObservableNode):
            return False
        return parent.set(segments[-1], value)


def _step(current: Any, segment: str) -> Any:
    if isinstance(current, ObservableNode):
        return current.get(segment)
    return None
