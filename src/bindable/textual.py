"""Textual integration for bindable. Opt-in — requires textual.

Binds model chains and expressions to widget updates. Every effect is
guarded: it is skipped while the app is not running or is paused, NoMatches
from widget queries is swallowed, and calls from other threads are marshaled
through app.call_from_thread.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded effects during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def _guard(app, fn):
    _main = threading.get_ident()

    def _guarded(*args):
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe, *args)
        else:
            _safe(*args)

    def _safe(*args):
        try:
            fn(*args)
        except NoMatches:
            pass

    return _guarded


def on_change(app, model, chain, effect):
    """model.on_change() that safely bridges to Textual widgets.

    effect receives the chainChanged message. Returns the disposer.
    """
    return model.on_change(chain, _guard(app, effect))


def on_expression(app, model, name, effect):
    """Re-evaluate expression name whenever one of its watch chains changes.

    effect receives the fresh value. Returns one disposer per watch chain.
    """
    def _evaluate(message):
        effect(model.evaluate_expression(name))

    return model.on_change_expression_chain(name, _guard(app, _evaluate))
