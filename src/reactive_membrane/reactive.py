"""Reactive proxies — the membrane around observable records and sequences.

wrap() hands out exactly one proxy per Original Target. Reads through a
proxy during a render pass register the rendering consumer as a dependent of
(target, key) and return nested observables wrapped in their own proxies.
Writes outside a render pass go through to the target and notify dependents.

The Shadow Target behind each proxy stays empty on the common path. It only
receives copies of non-configurable descriptors, and is locked when the
target stops being extensible, so the consistency checks in membrane.py
always pass.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from reactive_membrane import _anchor
from reactive_membrane import objectmodel as om
from reactive_membrane._tracking import get_bridge
from reactive_membrane.errors import RenderPurityError, UsageError
from reactive_membrane.membrane import MembraneProxy, create_proxy, unwrap
from reactive_membrane.objectmodel import LENGTH, PropertyDescriptor
from reactive_membrane.registry import notify_dependents, record_dependency

logger = logging.getLogger(__name__)

_MISSING = object()
_IMMUTABLE = (type(None), bool, int, float, complex, str, bytes, tuple, frozenset, range)

_dev_warnings = True


def set_dev_warnings(enabled: bool) -> None:
    """Toggle the warnings logged for non-reactive values read through a proxy."""
    global _dev_warnings
    _dev_warnings = enabled


def is_observable(value) -> bool:
    """Plain dicts and lists (exact types), and proxies around them."""
    if isinstance(value, MembraneProxy):
        return True
    return type(value) is dict or type(value) is list


def _is_object(value) -> bool:
    return not isinstance(value, _IMMUTABLE) and not callable(value)


def _wrap_descriptor(descriptor: PropertyDescriptor) -> PropertyDescriptor:
    if is_observable(descriptor.value):
        return replace(descriptor, value=wrap(descriptor.value))
    return descriptor


def _unwrap_descriptor(descriptor: PropertyDescriptor) -> PropertyDescriptor:
    return replace(descriptor, value=unwrap(descriptor.value))


def _mirror(shadow, original_target, key) -> None:
    """Copy the target's descriptor for key onto the shadow.

    A sequence shadow cannot have holes, so earlier indices it lacks are
    copied as well.
    """
    if isinstance(shadow, list) and key != LENGTH:
        keys = range(min(len(shadow), key), key + 1)
    else:
        keys = (key,)
    for k in keys:
        descriptor = om.get_own_property_descriptor(original_target, k)
        # Configurable ones may still change; wrapping waits for the next read.
        if not descriptor.configurable:
            descriptor = _wrap_descriptor(descriptor)
        om.define_property(shadow, k, descriptor)


def _lock_shadow_target(shadow, original_target) -> None:
    for key in om.own_keys(original_target):
        _mirror(shadow, original_target, key)
    om.prevent_extensions(shadow)


def _warn_non_reactive(value, key, original_target) -> None:
    bridge = get_bridge()
    if bridge.is_rendering_active():
        logger.warning(
            "Rendering a non-reactive value %r from member property %r of %r is not common "
            "because mutations on that value will not re-render the template.",
            value, key, bridge.current_consumer(),
        )
    else:
        logger.warning(
            "Returning a non-reactive value %r to member property %r of %r is not common "
            "because mutations on that value cannot be observed.",
            value, key, original_target,
        )


class ReactiveProxyHandler:
    """Traps for one Original Target."""

    __slots__ = ("original_target",)

    def __init__(self, value) -> None:
        self.original_target = value

    def get(self, shadow, key):
        target = self.original_target
        bridge = get_bridge()
        if bridge.is_rendering_active():
            consumer = bridge.current_consumer()
            if consumer is not None:
                record_dependency(consumer, target, key)
        value = om.get(target, key)
        observable = is_observable(value)
        if _dev_warnings and not observable and _is_object(value):
            _warn_non_reactive(value, key, target)
        return wrap(value) if observable else value

    def set(self, shadow, key, value) -> bool:
        target = self.original_target
        bridge = get_bridge()
        if bridge.is_rendering_active():
            consumer = bridge.current_consumer()
            raise RenderPurityError(
                f"Setting property {key!r} of {target!r} during the rendering process of "
                f"{consumer!r} is invalid. The render phase must have no side effects on "
                "the state of any component.",
                key=key,
                consumer=consumer,
            )
        value = unwrap(value)
        old = om.get(target, key) if om.has_own(target, key) else _MISSING
        if not om.same_value(old, value):
            om.set_value(target, key, value)
            notify_dependents(target, key)
        elif key == LENGTH and isinstance(target, list):
            # append() writes the new index first, so by the time the length
            # write arrives the list already has that length.
            notify_dependents(target, key)
        return True

    def delete_property(self, shadow, key) -> bool:
        target = self.original_target
        if isinstance(target, list) and om.has_own(target, key) and key != LENGTH:
            # Removing an element shifts every later index.
            shifted = range(key, len(target))
            om.delete_property(target, key)
            for index in shifted:
                notify_dependents(target, index)
            notify_dependents(target, LENGTH)
            return True
        om.delete_property(target, key)
        notify_dependents(target, key)
        return True

    def has(self, shadow, key) -> bool:
        return om.has_own(self.original_target, key)

    def own_keys(self, shadow) -> list:
        return om.own_keys(self.original_target)

    def is_extensible(self, shadow) -> bool:
        if not om.is_extensible(shadow):
            return False
        target = self.original_target
        if not om.is_extensible(target):
            _lock_shadow_target(shadow, target)
            return False
        return True

    def prevent_extensions(self, shadow) -> bool:
        target = self.original_target
        _lock_shadow_target(shadow, target)
        om.prevent_extensions(target)
        return True

    def get_prototype_of(self, shadow) -> type:
        return om.get_prototype_of(self.original_target)

    def set_prototype_of(self, shadow, prototype) -> bool:
        raise UsageError(
            f"Invalid setPrototypeOf invocation for reactive proxy {self.original_target!r}. "
            "Prototype of reactive objects cannot be changed."
        )

    def get_own_property_descriptor(self, shadow, key) -> PropertyDescriptor | None:
        descriptor = om.get_own_property_descriptor(self.original_target, key)
        if descriptor is None or descriptor.configurable:
            return descriptor
        # Non-configurable: report it wrapped, and copy it to the shadow the
        # first time so the shadow can back the report.
        if not om.has_own(shadow, key):
            _mirror(shadow, self.original_target, key)
        return _wrap_descriptor(descriptor)

    def define_property(self, shadow, key, descriptor: PropertyDescriptor) -> bool:
        unwrapped = _unwrap_descriptor(descriptor)
        om.define_property(self.original_target, key, unwrapped)
        if not descriptor.configurable:
            _mirror(shadow, self.original_target, key)
        return True

    def apply(self, shadow, args, kwargs):
        raise UsageError(f"invalid call invocation for reactive proxy {self.original_target!r}")

    def construct(self, shadow, args, kwargs):
        raise UsageError(
            f"invalid construction invocation for reactive proxy {self.original_target!r}"
        )


def wrap(value):
    """Return the one membrane proxy for an observable value."""
    if not is_observable(value):
        raise UsageError(
            f"Cannot wrap non-observable value {value!r} of type {type(value).__name__}: "
            "only plain dicts and lists can be made reactive."
        )
    value = unwrap(value)
    handle = _anchor.handle_of(value)
    proxy = _anchor.proxies.get(handle)
    if proxy is None:
        shadow = [] if isinstance(value, list) else {}
        proxy = create_proxy(shadow, ReactiveProxyHandler(value))
        _anchor.proxies[handle] = proxy
    return proxy


def release(value, *, recursive: bool = False) -> None:
    """Drop the proxy, shadow target, shape and dependents kept for value.

    Nested dicts and lists read through the proxy were pinned on their own
    and stay pinned. Pass recursive=True to release everything reachable
    from value too, e.g. when a whole subtree is replaced.
    """
    target = unwrap(value)
    if not recursive:
        _anchor.release(target)
        return
    seen = set()
    stack = [target]
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        children = current.values() if isinstance(current, dict) else current
        stack.extend(child for child in children if type(child) in (dict, list))
        _anchor.release(current)
