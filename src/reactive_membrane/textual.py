"""Textual integration for reactive_membrane. Opt-in — requires textual.

// [LAW:single-enforcer] Guard + NoMatches + thread-marshal enforced here, not at callsites.
// [LAW:locality-or-seam] Textual coupling isolated in this module — the membrane stays agnostic.
// [LAW:no-shared-mutable-globals] _paused_apps and _deferred have a single owner (this
//   module), explicit API (pause/resume/is_safe), documented invariant (id present ↔ inside
//   pause context; deferred consumers are replayed by resume()).
"""

import logging
import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

from reactive_membrane import _tracking
from reactive_membrane.consumer import Consumer

logger = logging.getLogger(__name__)

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()

# Consumers whose rendering was skipped while their app was unsafe.
_deferred: dict[int, list] = {}


@contextmanager
def pause(app):
    """Suspend widget consumers during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)
        resume(app)


def resume(app) -> None:
    """Queue every consumer deferred while app was unsafe.

    pause() calls this on exit. Call it once the app starts running (e.g.
    from on_mount) to render consumers mounted before that; any widget
    consumer of the app rehydrating while it is safe calls it as well.
    """
    bridge = _tracking.get_bridge()
    for consumer in _deferred.pop(id(app), []):
        if not consumer.disposed:
            bridge.mark_dirty(consumer)
            bridge.schedule_rerender(consumer)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


class WidgetConsumer(Consumer):
    """Consumer bound to a Textual app.

    Rehydration waits while the app is paused or not running, and NoMatches
    from widget queries (the widget is gone) is ignored.
    """

    __slots__ = ("_app",)

    def __init__(self, app, render_fn, *, name=None):
        super().__init__(render_fn, name=name)
        self._app = app

    def _defer(self) -> None:
        deferred = _deferred.setdefault(id(self._app), [])
        if self not in deferred:
            deferred.append(self)
            logger.debug("Deferred %r until %r is safe", self, self._app)
        # Clean again, so the next change to what it read queues it anew.
        self.dirty = False

    def render(self):
        try:
            return super().render()
        except NoMatches:
            return None

    def _rehydrate(self) -> None:
        if not is_safe(self._app):
            self._defer()
            return
        resume(self._app)
        super()._rehydrate()


def mount(app, fn, *, name=None) -> WidgetConsumer:
    """mount() that safely bridges to Textual widgets.

    Renders immediately when the app is safe. Otherwise the first render
    waits for resume(app), called by pause() on exit; an app that was not
    running yet must call resume(app) itself once it is.
    """
    consumer = WidgetConsumer(app, fn, name=name)
    if is_safe(app):
        consumer.render()
    else:
        consumer._defer()
    return consumer


def use_app_scheduler(app) -> None:
    """Flush dirty consumers on the app's message loop.

    From the thread that installed it, flushes go through app.call_later;
    from any other thread they are marshaled with app.call_from_thread.
    """
    _main = threading.get_ident()

    def _schedule(flush):
        if threading.get_ident() != _main:
            app.call_from_thread(flush)
        else:
            app.call_later(flush)

    _tracking.set_scheduler(_schedule)
