"""Membrane proxies — container wrappers that route every operation to a handler.

A MembraneProxy sits in front of a Shadow Target: an empty skeleton of the
same kind as the real data. Each operation is answered by the handler, and
the answer is then checked against the shadow the same way a host proxy
implementation would check it. A handler that reports something the shadow
cannot back (a non-configurable property the shadow lacks, an extensibility
state that disagrees, ...) makes the operation fail with ObjectModelError.

Two wrapper kinds implement the Python container protocols on top of the
traps: RecordProxy (MutableMapping) and SequenceProxy (MutableSequence).
"""

from __future__ import annotations

from collections.abc import MutableMapping, MutableSequence
from typing import Any, Protocol

from reactive_membrane import objectmodel as om
from reactive_membrane.errors import ObjectModelError
from reactive_membrane.objectmodel import LENGTH, PropertyDescriptor


class ProxyHandler(Protocol):
    original_target: Any

    def get(self, shadow, key): ...
    def set(self, shadow, key, value) -> bool: ...
    def delete_property(self, shadow, key) -> bool: ...
    def has(self, shadow, key) -> bool: ...
    def own_keys(self, shadow) -> list: ...
    def is_extensible(self, shadow) -> bool: ...
    def prevent_extensions(self, shadow) -> bool: ...
    def get_prototype_of(self, shadow) -> type: ...
    def set_prototype_of(self, shadow, prototype) -> bool: ...
    def get_own_property_descriptor(self, shadow, key) -> PropertyDescriptor | None: ...
    def define_property(self, shadow, key, descriptor: PropertyDescriptor) -> bool: ...
    def apply(self, shadow, args, kwargs): ...
    def construct(self, shadow, args, kwargs): ...


def _fixed(shadow, key) -> PropertyDescriptor | None:
    """The shadow's descriptor for key if it is non-configurable."""
    descriptor = om.get_own_property_descriptor(shadow, key)
    if descriptor is not None and not descriptor.configurable:
        return descriptor
    return None


def _matches_fixed_value(shadow, key, value) -> bool:
    fixed = _fixed(shadow, key)
    if fixed is None or fixed.writable:
        return True
    return om.same_value(unwrap(value), unwrap(fixed.value))


class MembraneProxy:
    """Base proxy: trap dispatch plus shadow consistency checks."""

    __slots__ = ("_shadow", "_handler")

    def __init__(self, shadow, handler: ProxyHandler) -> None:
        object.__setattr__(self, "_shadow", shadow)
        object.__setattr__(self, "_handler", handler)

    # --- Traps ---

    def _get(self, key):
        value = self._handler.get(self._shadow, key)
        if not _matches_fixed_value(self._shadow, key, value):
            raise ObjectModelError(
                f"get on proxy: property {key!r} is read-only and non-configurable "
                "but the trap returned a different value"
            )
        return value

    def _set(self, key, value) -> None:
        if not self._handler.set(self._shadow, key, value):
            raise ObjectModelError(f"set on proxy: trap returned falsish for property {key!r}")
        if not _matches_fixed_value(self._shadow, key, value):
            raise ObjectModelError(
                f"set on proxy: cannot change read-only non-configurable property {key!r}"
            )

    def _delete(self, key) -> None:
        if not self._handler.delete_property(self._shadow, key):
            raise ObjectModelError(
                f"deleteProperty on proxy: trap returned falsish for property {key!r}"
            )
        if _fixed(self._shadow, key) is not None:
            raise ObjectModelError(
                f"deleteProperty on proxy: property {key!r} is non-configurable"
            )

    def _has(self, key) -> bool:
        result = bool(self._handler.has(self._shadow, key))
        if not result and _fixed(self._shadow, key) is not None:
            raise ObjectModelError(
                f"has on proxy: cannot report non-configurable property {key!r} as missing"
            )
        return result

    def _own_keys(self) -> list:
        keys = list(self._handler.own_keys(self._shadow))
        for key in om.own_keys(self._shadow):
            if _fixed(self._shadow, key) is not None and key not in keys:
                raise ObjectModelError(
                    f"ownKeys on proxy: result must include non-configurable key {key!r}"
                )
        return keys

    def _is_extensible(self) -> bool:
        result = bool(self._handler.is_extensible(self._shadow))
        if result != om.is_extensible(self._shadow):
            raise ObjectModelError(
                "isExtensible on proxy: trap result does not reflect extensibility "
                f"of proxy target (which is {om.is_extensible(self._shadow)!r})"
            )
        return result

    def _prevent_extensions(self) -> None:
        if not self._handler.prevent_extensions(self._shadow):
            raise ObjectModelError("preventExtensions on proxy: trap returned falsish")
        if om.is_extensible(self._shadow):
            raise ObjectModelError(
                "preventExtensions on proxy: trap returned truish but the proxy target "
                "is extensible"
            )

    def _get_prototype_of(self) -> type:
        prototype = self._handler.get_prototype_of(self._shadow)
        if not om.is_extensible(self._shadow) and prototype is not om.get_prototype_of(
            self._shadow
        ):
            raise ObjectModelError(
                "getPrototypeOf on proxy: proxy target is non-extensible but the trap did "
                "not return its actual prototype"
            )
        return prototype

    def _set_prototype_of(self, prototype) -> None:
        if not self._handler.set_prototype_of(self._shadow, prototype):
            raise ObjectModelError("setPrototypeOf on proxy: trap returned falsish")

    def _get_own_property_descriptor(self, key) -> PropertyDescriptor | None:
        descriptor = self._handler.get_own_property_descriptor(self._shadow, key)
        shadow_descriptor = om.get_own_property_descriptor(self._shadow, key)
        if descriptor is None:
            if shadow_descriptor is not None and not shadow_descriptor.configurable:
                raise ObjectModelError(
                    "getOwnPropertyDescriptor on proxy: cannot report non-configurable "
                    f"property {key!r} as non-existent"
                )
            return None
        if shadow_descriptor is None and not om.is_extensible(self._shadow):
            raise ObjectModelError(
                "getOwnPropertyDescriptor on proxy: cannot report a new property "
                f"{key!r} on a non-extensible object"
            )
        if not descriptor.configurable and (
            shadow_descriptor is None or shadow_descriptor.configurable
        ):
            raise ObjectModelError(
                f"getOwnPropertyDescriptor on proxy: cannot report property {key!r} as "
                "non-configurable because it is configurable or missing on the proxy target"
            )
        return descriptor

    def _define_property(self, key, descriptor: PropertyDescriptor) -> None:
        if not self._handler.define_property(self._shadow, key, descriptor):
            raise ObjectModelError(f"defineProperty on proxy: trap returned falsish for {key!r}")
        if not descriptor.configurable and _fixed(self._shadow, key) is None:
            raise ObjectModelError(
                f"defineProperty on proxy: cannot define non-configurable property {key!r} "
                "which is either non-existent or configurable on the proxy target"
            )

    def _construct(self, args, kwargs):
        return self._handler.construct(self._shadow, args, kwargs)

    # --- Python object protocol ---

    def __call__(self, *args, **kwargs):
        return self._handler.apply(self._shadow, args, kwargs)

    def __setattr__(self, name: str, value) -> None:
        if name == "__class__":
            self._set_prototype_of(value)
            return
        raise AttributeError(
            f"{type(self).__name__!r} object attributes are read-only; use item assignment"
        )

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__!r} object attributes are read-only")

    __hash__ = None


class RecordProxy(MembraneProxy, MutableMapping):
    """Proxy for a plain record. Behaves like a dict."""

    __slots__ = ()

    def __getitem__(self, key):
        return self._get(key)

    def __setitem__(self, key, value) -> None:
        self._set(key, value)

    def __delitem__(self, key) -> None:
        self._delete(key)

    def __contains__(self, key) -> bool:
        return self._has(key)

    def __iter__(self):
        for key in self._own_keys():
            descriptor = self._get_own_property_descriptor(key)
            if descriptor is not None and descriptor.enumerable:
                yield key

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return f"RecordProxy({unwrap(self)!r})"


class SequenceProxy(MembraneProxy, MutableSequence):
    """Proxy for a sequence. Behaves like a list.

    Every list method is expressed as trap calls, so dependents are notified
    per index and per "length" the way the individual writes happen.
    """

    __slots__ = ()

    def _index(self, index, *, clamp: bool = False) -> int:
        if not isinstance(index, int) or isinstance(index, bool):
            raise TypeError(f"sequence indices must be integers, not {type(index).__name__}")
        # Only negative or clamped indices read "length"; items[0] tracks index 0 alone.
        if index < 0:
            index += len(self)
        if clamp:
            index = min(max(index, 0), len(self))
        return index

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self._get(i) for i in range(*index.indices(len(self)))]
        if index == LENGTH:
            return self._get(LENGTH)
        index = self._index(index)
        if index < 0:
            raise IndexError("sequence index out of range")
        return self._get(index)

    def __setitem__(self, index, value) -> None:
        if isinstance(index, slice):
            raise TypeError("slice assignment is not supported on reactive sequences")
        if index == LENGTH:
            self._set(LENGTH, value)
            return
        index = self._index(index)
        if index < 0:
            raise IndexError("sequence assignment index out of range")
        self._set(index, value)

    def __delitem__(self, index) -> None:
        if isinstance(index, slice):
            raise TypeError("slice deletion is not supported on reactive sequences")
        self._delete(self._index(index))

    def __len__(self) -> int:
        return self._get(LENGTH)

    def __iter__(self):
        for i in range(len(self)):
            yield self._get(i)

    def __eq__(self, other) -> bool:
        if isinstance(other, (list, SequenceProxy)):
            return list(self) == list(other)
        return NotImplemented

    __hash__ = None

    def append(self, value) -> None:
        length = len(self)
        self._set(length, value)
        # The backing list already grew; the explicit length write still notifies.
        self._set(LENGTH, length + 1)

    def insert(self, index, value) -> None:
        index = self._index(index, clamp=True)
        length = len(self)
        if index == length:
            self.append(value)
            return
        self.append(self._get(length - 1))
        for i in range(length - 1, index, -1):
            self._set(i, self._get(i - 1))
        self._set(index, value)

    def pop(self, index=-1):
        index = self._index(index)
        if not 0 <= index < len(self):
            raise IndexError("pop index out of range")
        value = self._get(index)
        self._delete(index)
        return value

    def clear(self) -> None:
        self._set(LENGTH, 0)

    def __repr__(self) -> str:
        return f"SequenceProxy({unwrap(self)!r})"


def create_proxy(shadow, handler: ProxyHandler) -> MembraneProxy:
    """Build the wrapper kind matching the shadow target."""
    if isinstance(shadow, list):
        return SequenceProxy(shadow, handler)
    return RecordProxy(shadow, handler)


def is_proxy(value) -> bool:
    return isinstance(value, MembraneProxy)


def unwrap(value):
    """Original Target of a proxy; anything else is returned unchanged."""
    if isinstance(value, MembraneProxy):
        return object.__getattribute__(value, "_handler").original_target
    return value
