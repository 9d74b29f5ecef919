"""List operations and the notification each one emits.

Every operation an ObservableList supports is listed in ArrayOp together
with its NotifyPolicy:

- INDEX: notify the chain of the last element (the one just pushed).
- PARENT: notify the list's own chain once.
- NONE: read-only, no notification.

Ancestors and the wildcard are still reached through the notifier's prefix
expansion, so INDEX does not starve observers of the list itself.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from bindable.chain import extend_chain

if TYPE_CHECKING:
    from bindable.observable import ObservableList

logger = logging.getLogger("bindable.array_ops")


class NotifyPolicy(Enum):
    INDEX = "index"
    PARENT = "parent"
    NONE = "none"


class ArrayOp(Enum):
    """Supported list operations, each mapped to a fixed NotifyPolicy."""

    PUSH = ("push", NotifyPolicy.INDEX)
    APPEND = ("append", NotifyPolicy.INDEX)
    EXTEND = ("extend", NotifyPolicy.INDEX)

    COPY_WITHIN = ("copy_within", NotifyPolicy.PARENT)
    FILL = ("fill", NotifyPolicy.PARENT)
    POP = ("pop", NotifyPolicy.PARENT)
    REVERSE = ("reverse", NotifyPolicy.PARENT)
    SHIFT = ("shift", NotifyPolicy.PARENT)
    SORT = ("sort", NotifyPolicy.PARENT)
    SPLICE = ("splice", NotifyPolicy.PARENT)
    UNSHIFT = ("unshift", NotifyPolicy.PARENT)
    INSERT = ("insert", NotifyPolicy.PARENT)
    REMOVE = ("remove", NotifyPolicy.PARENT)
    CLEAR = ("clear", NotifyPolicy.PARENT)
    DELETE = ("delete", NotifyPolicy.PARENT)
    ASSIGN_SLICE = ("assign_slice", NotifyPolicy.PARENT)

    # slice copies; it never mutates the receiver
    SLICE = ("slice", NotifyPolicy.NONE)
    INDEX_OF = ("index", NotifyPolicy.NONE)
    COUNT = ("count", NotifyPolicy.NONE)
    COPY = ("copy", NotifyPolicy.NONE)

    def __init__(self, method: str, policy: NotifyPolicy) -> None:
        self.method = method
        self.policy = policy

    @property
    def mutates(self) -> bool:
        return self.policy is not NotifyPolicy.NONE

    def notify_target(self, chain: str, length: int) -> str | None:
        """Chain to notify after the operation, or None."""
        if self.policy is NotifyPolicy.INDEX:
            return extend_chain(chain, length - 1)
        if self.policy is NotifyPolicy.PARENT:
            return chain
        return None


def intercept(node: ObservableList, op: ArrayOp, fn: Callable[..., Any], *args: Any) -> Any:
    """Run fn(*args) on behalf of node, then notify according to op's policy.

    Failures are logged and re-raised unchanged; a failed call notifies nothing.
    """
    try:
        result = fn(*args)
    except Exception:
        logger.exception("List operation %r failed at chain %r", op.method, node.chain)
        raise

    target = op.notify_target(node.chain, len(node))
    if target is not None:
        if op.policy is NotifyPolicy.PARENT:
            node._rebase_children()
        node._notify(target)
    return result
