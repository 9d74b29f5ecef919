"""Bindable exceptions."""

from __future__ import annotations


class BindableError(Exception):
    """Base exception for bindable model errors."""

    pass


class InvalidExpressionError(BindableError, ValueError):
    """Raised when an expression is registered with a bad name or callback."""

    pass


class UndefinedExpressionError(BindableError, KeyError):
    """Raised when an expression name was never registered on the model."""

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ""
