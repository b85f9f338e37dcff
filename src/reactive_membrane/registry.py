"""Dependency registry — which consumers read which (target, property) pairs.

Entries are indexed by target handle and created lazily on the first tracked
read. Nothing here prunes empty entries: consumers remove themselves with
remove_consumer(), and release() drops a target's entries entirely.
"""

from __future__ import annotations

from reactive_membrane import _anchor
from reactive_membrane._tracking import get_bridge
from reactive_membrane.membrane import unwrap


def record_dependency(consumer, target, key) -> None:
    """Register consumer as a dependent of (target, key). Idempotent."""
    target = unwrap(target)
    props = _anchor.listeners.setdefault(_anchor.handle_of(target), {})
    consumers = props.get(key)
    if consumers is None:
        consumers = props[key] = set()
    if consumer not in consumers:
        consumers.add(consumer)
        # kept so the consumer can unsubscribe itself later on
        consumer.listeners.append(consumers)


def notify_dependents(target, key) -> None:
    """Mark every clean dependent of (target, key) dirty and schedule it once."""
    target = unwrap(target)
    if not _anchor.is_pinned(target):
        return
    props = _anchor.listeners.get(id(target))
    if not props:
        return
    consumers = props.get(key)
    if not consumers:
        return
    bridge = get_bridge()
    for consumer in list(consumers):
        if not consumer.dirty:
            bridge.mark_dirty(consumer)
            bridge.schedule_rerender(consumer)


def remove_consumer(consumer) -> None:
    """Remove consumer from every dependency set it joined."""
    for consumers in consumer.listeners:
        consumers.discard(consumer)
    consumer.listeners.clear()


def dependents(target, key) -> set:
    """Snapshot of the consumers registered against (target, key)."""
    target = unwrap(target)
    if not _anchor.is_pinned(target):
        return set()
    return set(_anchor.listeners.get(id(target), {}).get(key, ()))
