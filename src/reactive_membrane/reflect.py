"""Reflective operations on observable values.

Each function works on both membrane proxies and raw targets. For a proxy
the call goes through the matching trap, so the shadow consistency checks
apply; for a raw dict or list it goes straight to the object model.

Usage:
    state = wrap({"id": 7})
    reflect.define_property(state, "id", PropertyDescriptor(7, writable=False, configurable=False))
    reflect.get_own_property_descriptor(state, "id").writable  # False
"""

from __future__ import annotations

from dataclasses import replace

from reactive_membrane import objectmodel as om
from reactive_membrane.errors import UsageError
from reactive_membrane.membrane import MembraneProxy
from reactive_membrane.objectmodel import PropertyDescriptor


def get(obj, key):
    if isinstance(obj, MembraneProxy):
        return obj._get(key)
    return om.get(obj, key)


def set(obj, key, value) -> None:
    if isinstance(obj, MembraneProxy):
        obj._set(key, value)
    else:
        om.set_value(obj, key, value)


def has(obj, key) -> bool:
    if isinstance(obj, MembraneProxy):
        return obj._has(key)
    return om.has_own(obj, key)


def delete_property(obj, key) -> None:
    if isinstance(obj, MembraneProxy):
        obj._delete(key)
    else:
        om.delete_property(obj, key)


def own_keys(obj) -> list:
    if isinstance(obj, MembraneProxy):
        return obj._own_keys()
    return om.own_keys(obj)


def get_own_property_descriptor(obj, key) -> PropertyDescriptor | None:
    if isinstance(obj, MembraneProxy):
        return obj._get_own_property_descriptor(key)
    return om.get_own_property_descriptor(obj, key)


def define_property(obj, key, descriptor: PropertyDescriptor) -> None:
    if isinstance(obj, MembraneProxy):
        obj._define_property(key, descriptor)
    else:
        om.define_property(obj, key, descriptor)


def is_extensible(obj) -> bool:
    if isinstance(obj, MembraneProxy):
        return obj._is_extensible()
    return om.is_extensible(obj)


def prevent_extensions(obj) -> None:
    if isinstance(obj, MembraneProxy):
        obj._prevent_extensions()
    else:
        om.prevent_extensions(obj)


def freeze(obj) -> None:
    """Make obj non-extensible and all of its own properties read-only."""
    if not isinstance(obj, MembraneProxy):
        om.freeze(obj)
        return
    obj._prevent_extensions()
    for key in obj._own_keys():
        descriptor = obj._get_own_property_descriptor(key)
        if descriptor is not None:
            obj._define_property(key, replace(descriptor, writable=False, configurable=False))


def get_prototype_of(obj) -> type:
    if isinstance(obj, MembraneProxy):
        return obj._get_prototype_of()
    return om.get_prototype_of(obj)


def set_prototype_of(obj, prototype) -> None:
    if isinstance(obj, MembraneProxy):
        obj._set_prototype_of(prototype)
        return
    raise UsageError(f"Cannot change the prototype of {type(obj).__name__} values")


def apply(obj, *args, **kwargs):
    if not callable(obj):
        raise UsageError(f"{obj!r} is not callable")
    return obj(*args, **kwargs)


def construct(obj, *args, **kwargs):
    if isinstance(obj, MembraneProxy):
        return obj._construct(args, kwargs)
    if not isinstance(obj, type):
        raise UsageError(f"{obj!r} is not a constructor")
    return obj(*args, **kwargs)
