"""Batched writes — rehydrate dirty consumers once per batch, not per write.

Inside a transaction the scheduler hook stays quiet; consumers dirtied by
the writes are queued, and the queue is flushed when the outermost batch
closes. A consumer reading two properties never renders a half-applied
update.

Batches may also run inside a render function (read-only helpers decorated
with @action): writes are refused there anyway, and the closing flush is
left to whoever is flushing the queue outside the render pass.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, Iterator, ParamSpec, TypeVar

from reactive_membrane._tracking import begin_batch, end_batch

P = ParamSpec("P")
R = TypeVar("R")


@contextmanager
def transaction() -> Iterator[None]:
    """Batch every proxy write made inside the block.

    Usage:
        todos = wrap({"items": [], "done": 0})

        with transaction():
            todos["items"].append({"title": "ship"})
            todos["done"] += 1
        # consumers reading items and done re-render once, here
    """
    begin_batch()
    try:
        yield
    finally:
        end_batch()


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator form of transaction(): each call of fn is one batch."""

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with transaction():
            return fn(*args, **kwargs)

    return wrapper
