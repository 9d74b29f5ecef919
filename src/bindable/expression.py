"""Expressions — named derived values with declared watch chains.

An expression is a function of the model root. It is never cached: every
evaluation calls the function again. Its watch chains say which writes
may change its result, so callers can subscribe to all of them at once
through on_change_expression_chain().
"""

from __future__ import annotations

from typing import Any, Callable

from bindable.exceptions import InvalidExpressionError, UndefinedExpressionError


class Expression:
    """A named computation bound to the model root."""

    __slots__ = ("name", "watch_chain", "_fn", "_subject")

    def __init__(self, name: str, fn: Callable[[Any], Any], watch_chain: tuple[str, ...], subject: Any) -> None:
        self.name = name
        self.watch_chain = watch_chain
        self._fn = fn
        self._subject = subject

    @property
    def callback(self) -> Callable[[], Any]:
        return self.evaluate

    def evaluate(self) -> Any:
        """Call the function with the root as its subject."""
        return self._fn(self._subject)

    def __repr__(self) -> str:
        fn_name = getattr(self._fn, "__name__", repr(self._fn))
        return f"Expression({self.name!r}, {fn_name}, watch={list(self.watch_chain)!r})"


def _collect_chains(chains: tuple[Any, ...]) -> tuple[str, ...]:
    """Chains given as varargs or as one list/tuple; drop non-strings and empties."""
    if chains and isinstance(chains[0], (list, tuple)):
        chains = tuple(chains[0])
    return tuple(chain for chain in chains if isinstance(chain, str) and chain)


class ExpressionRegistry:
    """Expression table of one model. Watching is delegated to on_change."""

    def __init__(self, subject: Any, on_change: Callable[[str, Callable], Callable[[], None]]) -> None:
        self._subject = subject
        self._on_change = on_change
        self._expressions: dict[str, Expression] = {}

    def add_expression(self, name: str, callback: Callable[[Any], Any], *chains: Any) -> None:
        """Register (or silently replace) expression name.

        Usage:
            model.add_expression("total", lambda m: m["a"] + m["b"], "a", "b")
            model.add_expression("total", lambda m: m["a"] + m["b"], ["a", "b"])
        """
        if not isinstance(name, str) or not name:
            raise InvalidExpressionError("Expression name must be a valid string")
        if not callable(callback):
            raise InvalidExpressionError("Expression must have a callback")
        self._expressions[name] = Expression(name, callback, _collect_chains(chains), self._subject)

    def has_expression(self, name: str) -> bool:
        expression = self._expressions.get(name) if isinstance(name, str) else None
        return expression is not None and callable(expression.callback)

    def get_expression(self, name: str) -> Expression:
        if not self.has_expression(name):
            raise UndefinedExpressionError(f'Expression "{name}" is not defined')
        return self._expressions[name]

    def evaluate_expression(self, name: str) -> Any:
        return self.get_expression(name).evaluate()

    def on_change_expression_chain(self, name: str, callback: Callable[[dict], None]) -> list[Callable[[], None]]:
        """Subscribe callback to each watch chain of name. Returns one disposer per chain."""
        expression = self.get_expression(name)
        return [self._on_change(chain, callback) for chain in expression.watch_chain]

    def expression_names(self) -> list[str]:
        return list(self._expressions)

    def __contains__(self, name: str) -> bool:
        return self.has_expression(name)

    def __len__(self) -> int:
        return len(self._expressions)
