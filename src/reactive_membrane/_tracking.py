"""Render tracking — the bridge between the membrane and the host render loop.

A context variable holds the active RenderContext. While it is set, reads
through membrane proxies are recorded as dependencies of its consumer and
writes are refused.

Dirty consumers are queued for rehydration. The queue is drained by flush(),
either called directly, by the installed scheduler hook, or when the
outermost transaction() exits.
"""

from __future__ import annotations

import contextvars
import logging
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Protocol

from reactive_membrane.errors import InvariantViolation

if TYPE_CHECKING:
    from reactive_membrane.consumer import Consumer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderContext:
    """One render pass for one consumer."""

    consumer: Consumer


# The active render pass, if any. Not reentrant: one consumer at a time.
current_render: contextvars.ContextVar[RenderContext | None] = contextvars.ContextVar(
    "current_render", default=None
)


@contextmanager
def render_pass(consumer):
    """Enter a render pass for consumer. Nested passes are refused."""
    active = current_render.get()
    if active is not None:
        raise InvariantViolation(
            f"Cannot start rendering {consumer!r} while {active.consumer!r} is being "
            "rendered. Nested render passes are not supported."
        )
    token = current_render.set(RenderContext(consumer))
    try:
        yield
    finally:
        current_render.reset(token)


# ─── Bridge ──────────────────────────────────────────────────────────────────


class RenderBridge(Protocol):
    def is_rendering_active(self) -> bool: ...
    def current_consumer(self): ...
    def mark_dirty(self, consumer) -> None: ...
    def schedule_rerender(self, consumer) -> None: ...


class DefaultBridge:
    """Answers from the render context variable and queues dirty consumers here."""

    def is_rendering_active(self) -> bool:
        return current_render.get() is not None

    def current_consumer(self):
        context = current_render.get()
        return context.consumer if context is not None else None

    def mark_dirty(self, consumer) -> None:
        consumer.dirty = True

    def schedule_rerender(self, consumer) -> None:
        _enqueue(consumer)


_default_bridge = DefaultBridge()
_bridge: RenderBridge = _default_bridge


def get_bridge() -> RenderBridge:
    return _bridge


def set_bridge(bridge: RenderBridge | None) -> None:
    """Replace the render bridge. None restores the default one."""
    global _bridge
    _bridge = bridge if bridge is not None else _default_bridge


# ─── Rehydration queue ───────────────────────────────────────────────────────

# Consumers marked dirty, in the order they were dirtied.
_pending: deque = deque()

# Batch depth counter. When > 0, the scheduler hook is not called.
_batch_depth: int = 0

_scheduler: Callable[[Callable[[], None]], object] | None = None
_flush_requested: bool = False


def set_scheduler(scheduler: Callable[[Callable[[], None]], object] | None) -> None:
    """Install the deferral hook used to flush the queue.

    The hook receives flush() once per epoch (the first time a consumer is
    queued after the last flush) and must call it later, e.g.:
        reactive_membrane.set_scheduler(loop.call_soon)

    Without a hook the queue waits for an explicit flush().
    """
    global _scheduler, _flush_requested
    _scheduler = scheduler
    _flush_requested = False


def _enqueue(consumer) -> None:
    global _flush_requested
    _pending.append(consumer)
    logger.debug("Queued %r for rehydration (%d pending)", consumer, len(_pending))
    if _batch_depth == 0 and _scheduler is not None and not _flush_requested:
        _flush_requested = True
        _scheduler(flush)


def flush() -> None:
    """Rehydrate every queued consumer, including ones queued during the flush.

    Called while a render pass is active (a batch closing inside a render
    function), it does nothing: the queue is left for the outer flush, since
    rehydrating here would nest render passes.
    """
    global _flush_requested
    if _bridge.is_rendering_active():
        return
    _flush_requested = False
    while _pending:
        consumer = _pending.popleft()
        consumer._rehydrate()


def begin_batch() -> None:
    """Enter a batching scope. Nested batches are supported."""
    global _batch_depth
    _batch_depth += 1


def end_batch() -> None:
    """Exit a batching scope. When the outermost scope exits, flush pending consumers.

    No consumer is queued by a batch opened inside a render pass (writes are
    refused there), so its flush is skipped and nothing is lost.
    """
    global _batch_depth
    _batch_depth -= 1
    if _batch_depth == 0:
        flush()


def get_pending_count() -> int:
    """Number of consumers waiting to rehydrate. Useful for testing."""
    return len(_pending)


def is_rendering_active() -> bool:
    return _bridge.is_rendering_active()


def current_consumer():
    return _bridge.current_consumer()
