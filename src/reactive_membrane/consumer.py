"""Consumers — renderers whose reads are tracked and who re-render when dirty.

A Consumer wraps a render function. render() runs it inside a render pass:
every property read through a membrane proxy registers the consumer as a
dependent. When one of those properties changes, the consumer is marked
dirty and queued; the queue rehydrates it once, however many of its
dependencies changed in between.

All state lives in _anchor — instances are thin handles holding an _id.
"""

from __future__ import annotations

from typing import Callable

from reactive_membrane import _anchor
from reactive_membrane._tracking import render_pass
from reactive_membrane.registry import remove_consumer


class Consumer:
    """A tracked renderer with a dirty flag and the dependency sets it joined."""

    __slots__ = ("_id",)

    def __init__(self, render_fn: Callable[[], object], *, name: str | None = None) -> None:
        self._id = _anchor.new_id()
        _anchor.render_fns[self._id] = render_fn
        _anchor.names[self._id] = name or getattr(render_fn, "__name__", "consumer")
        _anchor.dirty_flags[self._id] = False
        _anchor.listener_sets[self._id] = []
        _anchor.outputs[self._id] = None
        _anchor.disposed[self._id] = False

    @property
    def _fn(self) -> Callable[[], object]:
        return _anchor.render_fns[self._id]

    @property
    def name(self) -> str:
        return _anchor.names[self._id]

    @property
    def dirty(self) -> bool:
        return _anchor.dirty_flags[self._id]

    @dirty.setter
    def dirty(self, value: bool) -> None:
        _anchor.dirty_flags[self._id] = value

    @property
    def listeners(self) -> list:
        return _anchor.listener_sets[self._id]

    @property
    def output(self):
        """Result of the last render."""
        return _anchor.outputs[self._id]

    @property
    def disposed(self) -> bool:
        return _anchor.disposed[self._id]

    def render(self):
        """Drop old dependencies and render again, tracking fresh ones.

        A refused pass (another consumer is rendering) leaves dependencies
        and the dirty flag untouched.
        """
        with render_pass(self):
            remove_consumer(self)
            try:
                _anchor.outputs[self._id] = self._fn()
            finally:
                _anchor.dirty_flags[self._id] = False
        return _anchor.outputs[self._id]

    def _rehydrate(self) -> None:
        """Called by the rehydration queue for a consumer marked dirty."""
        if _anchor.disposed[self._id] or not _anchor.dirty_flags[self._id]:
            return
        self.render()

    def dispose(self) -> None:
        """Stop this consumer. Disconnects from all dependencies."""
        _anchor.disposed[self._id] = True
        remove_consumer(self)

    def __repr__(self) -> str:
        if _anchor.disposed[self._id]:
            state = "disposed"
        else:
            state = "dirty" if _anchor.dirty_flags[self._id] else "clean"
        return f"Consumer({self.name}, {state})"


def mount(fn: Callable[[], object], *, name: str | None = None) -> Consumer:
    """Render fn immediately, then again whenever anything it read changes.

    Returns the Consumer (call .dispose() to stop).

    Usage:
        state = wrap({"count": 0})
        log = []

        view = mount(lambda: log.append(state["count"]))
        # log == [0] — rendered immediately

        state["count"] = 1
        flush()
        # log == [0, 1] — re-rendered because count changed

        view.dispose()
    """
    consumer = Consumer(fn, name=name)
    consumer.render()
    return consumer
