"""Model — the root handle of an observable tree.

wrap(value) copies a plain dict or list into a tree of observable nodes and
returns a Model. The Model reads and writes like the wrapped value and adds
the root-only operations: chain access, subscriptions, snapshots, and
expressions.

Usage:
    model = wrap({"a": 1, "b": {"c": 2}})
    model.on_change("b", lambda message: print(message["chain"]))
    model["b"]["c"] = 3          # prints "b"
    model.set_chain_value("b.c", 4)
    model.to_object()            # {"a": 1, "b": {"c": 4}}
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Iterator

from bindable import pubsub
from bindable.chain import CHAIN_CHANGED, MODEL_PREFIX
from bindable.context import ModelContext
from bindable.expression import ExpressionRegistry
from bindable.observable import ObservableNode, wrap_value

logger = logging.getLogger("bindable.model")


def compact_chain_changed(message: dict, channel: str) -> str | None:
    """Pending chainChanged messages collapse per channel."""
    if message.get("type") == CHAIN_CHANGED:
        return channel
    return None


pubsub.hub.register_compactor(CHAIN_CHANGED, compact_chain_changed)


def _json_default(value: Any) -> Any:
    if isinstance(value, ObservableNode):
        return value.to_plain()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class Model:
    """Root handle: transparent access to the root node plus the model operations."""

    __slots__ = ("_context", "_expressions")

    def __init__(self, value: Any, *, prefix: str = MODEL_PREFIX, transport=None) -> None:
        if not isinstance(value, (dict, list, ObservableNode)):
            raise TypeError(f"Only dicts and lists can be wrapped into a model, not {type(value).__name__}")
        if transport is None:
            transport = pubsub.hub
        else:
            transport.register_compactor(CHAIN_CHANGED, compact_chain_changed)

        self._context = ModelContext(transport, prefix)
        self._context.root = wrap_value(value, "", self._context)
        self._context.handle = self
        self._expressions = ExpressionRegistry(self, self.on_change)
        logger.debug("Created model %d (%s)", self._context.model_index, type(self._context.root).__name__)

    @property
    def root(self) -> ObservableNode:
        return self._context.root

    @property
    def model_index(self) -> int:
        return self._context.model_index

    @property
    def channel_prefix(self) -> str:
        return self._context.channel_prefix

    @property
    def observed_chains(self) -> list[str]:
        return list(self._context.observed_chains)

    # --- Change notifier ---

    def notify(self, chain: str) -> None:
        self._context.notify(chain)

    def on_change(self, chain: str, callback: Callable[[dict], None]) -> Callable[[], None]:
        """Call callback with {"type": "chainChanged", "chain": ...} whenever chain changes.

        Returns a disposer that removes the subscription.
        """
        return self._context.on_change(chain, callback)

    def get_chain_value(self, chain: str | None = None) -> Any:
        return self._context.get_chain_value(chain)

    def set_chain_value(self, chain: str, value: Any) -> bool:
        return self._context.set_chain_value(chain, value)

    # --- Snapshot ---

    def to_object(self, chain: str | None = None) -> Any:
        """Plain, detached copy of the value at chain (the whole model by default).

        Goes through a JSON round trip, so anything JSON cannot carry raises.
        Non-container values come back unchanged.
        """
        source = self.root if not chain else self.get_chain_value(chain)
        if isinstance(source, (ObservableNode, dict, list)):
            return json.loads(json.dumps(source, default=_json_default))
        return source

    # --- Expressions ---

    def add_expression(self, name: str, callback: Callable[[Model], Any], *chains: Any) -> None:
        self._expressions.add_expression(name, callback, *chains)

    def has_expression(self, name: str) -> bool:
        return self._expressions.has_expression(name)

    def evaluate_expression(self, name: str) -> Any:
        return self._expressions.evaluate_expression(name)

    def on_change_expression_chain(self, name: str, callback: Callable[[dict], None]) -> list[Callable[[], None]]:
        return self._expressions.on_change_expression_chain(name, callback)

    def expression_names(self) -> list[str]:
        return self._expressions.expression_names()

    # --- Transparent access to the root node ---

    def __getitem__(self, key: Any) -> Any:
        return self.root[key]

    def __setitem__(self, key: Any, value: Any) -> None:
        self.root[key] = value

    def __delitem__(self, key: Any) -> None:
        del self.root[key]

    def __contains__(self, key: Any) -> bool:
        return key in self.root

    def __len__(self) -> int:
        return len(self.root)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.root)

    def __bool__(self) -> bool:
        return bool(self.root)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Model):
            return self.root == other.root
        return self.root == other

    __hash__ = None

    def __getattr__(self, name: str) -> Any:
        # Only reached for names Model does not define: dict/list methods of the root.
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._context.root, name)

    def __repr__(self) -> str:
        return f"Model({self._context.model_index}, {self.root!r})"


def wrap(value: Any, *, prefix: str = MODEL_PREFIX, transport=None) -> Model:
    """Wrap a plain dict or list into an observable Model."""
    return Model(value, prefix=prefix, transport=transport)
