"""bindable: chain-addressed observable models for plain Python data."""

from importlib.metadata import version as _version

__version__ = _version("bindable")

from bindable.chain import CHAIN_CHANGED, WILDCARD, extend_chain, split_chain
from bindable.exceptions import BindableError, InvalidExpressionError, UndefinedExpressionError
from bindable.observable import ObservableDict, ObservableList, ObservableNode, set_scheduler
from bindable.array_ops import ArrayOp, NotifyPolicy
from bindable.expression import Expression
from bindable.pubsub import PubSub
from bindable.model import Model, wrap
# textual NOT auto-imported — opt-in only

__all__ = [
    "Model",
    "wrap",
    "ObservableNode",
    "ObservableDict",
    "ObservableList",
    "ArrayOp",
    "NotifyPolicy",
    "Expression",
    "PubSub",
    "set_scheduler",
    "extend_chain",
    "split_chain",
    "CHAIN_CHANGED",
    "WILDCARD",
    "BindableError",
    "InvalidExpressionError",
    "UndefinedExpressionError",
]
