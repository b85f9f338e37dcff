"""Object model for plain records (dict) and sequences (list).

Gives Python containers the structural rules a membrane has to stay
consistent with: property descriptors (writable / enumerable /
configurable), extensibility, and a prototype (the container type).

Metadata lives in _anchor.shapes; a target without a shape is extensible and
every property has default attributes. Only mutations that go through this
module (or a membrane proxy) honour the rules.

Sequences expose integer indices plus a virtual "length" property that is
writable, non-enumerable and non-configurable.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from reactive_membrane import _anchor
from reactive_membrane.errors import ObjectModelError

LENGTH = "length"

# (writable, enumerable, configurable)
_DEFAULT_ATTRIBUTES = (True, True, True)
_LENGTH_ATTRIBUTES = (True, False, False)

_SCALARS = (type(None), bool, int, float, complex, str, bytes)


@dataclass(frozen=True)
class PropertyDescriptor:
    value: Any = None
    writable: bool = True
    enumerable: bool = True
    configurable: bool = True


@dataclass
class Shape:
    extensible: bool = True
    attributes: dict = field(default_factory=dict)  # key -> (writable, enumerable, configurable)


def same_value(a: object, b: object) -> bool:
    """Identity for objects, type-and-equality for immutable scalars."""
    if a is b:
        return True
    return type(a) is type(b) and isinstance(a, _SCALARS) and a == b


# ─── Shape bookkeeping ───────────────────────────────────────────────────────


def _shape(target) -> Shape | None:
    return _anchor.shapes.get(id(target)) if _anchor.is_pinned(target) else None


def _shape_for_update(target) -> Shape:
    handle = _anchor.handle_of(target)
    shape = _anchor.shapes.get(handle)
    if shape is None:
        shape = _anchor.shapes[handle] = Shape()
    return shape


def _default_attributes(target, key) -> tuple[bool, bool, bool]:
    if isinstance(target, list) and key == LENGTH:
        return _LENGTH_ATTRIBUTES
    return _DEFAULT_ATTRIBUTES


def _attributes(target, key) -> tuple[bool, bool, bool]:
    shape = _shape(target)
    if shape is not None and key in shape.attributes:
        return shape.attributes[key]
    return _default_attributes(target, key)


def _store_attributes(target, key, attributes: tuple[bool, bool, bool]) -> None:
    if attributes == _default_attributes(target, key):
        shape = _shape(target)
        if shape is not None:
            shape.attributes.pop(key, None)
    else:
        _shape_for_update(target).attributes[key] = attributes


def _is_index(key) -> bool:
    return isinstance(key, int) and not isinstance(key, bool)


def _check_index(target: list, key) -> None:
    if key != LENGTH and not _is_index(key):
        raise TypeError(f"sequence indices must be integers, not {type(key).__name__}")


def _check_extensible(target, key) -> None:
    if not is_extensible(target):
        raise ObjectModelError(f"Cannot add property {key!r}, object is not extensible")


def _check_writable(target, key) -> None:
    if not _attributes(target, key)[0]:
        raise ObjectModelError(f"Cannot assign to read only property {key!r}")


def _check_unlocked_from(target: list, start: int) -> None:
    shape = _shape(target)
    if shape is None:
        return
    for key in shape.attributes:
        if _is_index(key) and key >= start:
            raise ObjectModelError(
                f"Cannot remove index {start}: element {key} has locked attributes"
            )


# ─── Queries ─────────────────────────────────────────────────────────────────


def get_prototype_of(target) -> type:
    return type(target)


def is_extensible(target) -> bool:
    shape = _shape(target)
    return shape is None or shape.extensible


def has_own(target, key) -> bool:
    if isinstance(target, list):
        return key == LENGTH or (_is_index(key) and 0 <= key < len(target))
    return key in target


def own_keys(target) -> list:
    if isinstance(target, list):
        return [*range(len(target)), LENGTH]
    return list(target)


def get(target, key):
    """Read an own property. Raises KeyError / IndexError when absent."""
    if isinstance(target, list):
        _check_index(target, key)
        if key == LENGTH:
            return len(target)
        if not 0 <= key < len(target):
            raise IndexError("sequence index out of range")
    return target[key]


def get_own_property_descriptor(target, key) -> PropertyDescriptor | None:
    if not has_own(target, key):
        return None
    writable, enumerable, configurable = _attributes(target, key)
    return PropertyDescriptor(get(target, key), writable, enumerable, configurable)


# ─── Mutations ───────────────────────────────────────────────────────────────


def _resize(target: list, length) -> None:
    if not _is_index(length) or length < 0:
        raise ValueError(f"Invalid sequence length {length!r}")
    current = len(target)
    if length < current:
        _check_unlocked_from(target, length)
        del target[length:]
    elif length > current:
        _check_extensible(target, current)
        target.extend([None] * (length - current))


def set_value(target, key, value) -> None:
    if isinstance(target, list):
        _check_index(target, key)
        if key == LENGTH:
            _check_writable(target, key)
            _resize(target, value)
            return
        if 0 <= key < len(target):
            _check_writable(target, key)
            target[key] = value
        elif key == len(target):
            _check_extensible(target, key)
            target.append(value)
        else:
            raise IndexError("sequence assignment index out of range")
        return
    if key in target:
        _check_writable(target, key)
    else:
        _check_extensible(target, key)
    target[key] = value


def delete_property(target, key) -> None:
    """Delete an own property. Deleting an absent property is a no-op."""
    if isinstance(target, list):
        if key == LENGTH:
            raise ObjectModelError("Cannot delete non-configurable property 'length'")
        if not (_is_index(key) and 0 <= key < len(target)):
            return
        _check_unlocked_from(target, key)
        del target[key]
        return
    if key not in target:
        return
    if not _attributes(target, key)[2]:
        raise ObjectModelError(f"Cannot delete non-configurable property {key!r}")
    del target[key]
    shape = _shape(target)
    if shape is not None:
        shape.attributes.pop(key, None)


def define_property(target, key, descriptor: PropertyDescriptor) -> None:
    current = get_own_property_descriptor(target, key)
    if current is None:
        if isinstance(target, list):
            _check_index(target, key)
            if key != len(target):
                raise IndexError("sequence assignment index out of range")
        _check_extensible(target, key)
    elif not current.configurable:
        if descriptor.configurable or descriptor.enumerable != current.enumerable:
            raise ObjectModelError(f"Cannot redefine property: {key!r}")
        if not current.writable and (
            descriptor.writable or not same_value(descriptor.value, current.value)
        ):
            raise ObjectModelError(f"Cannot redefine property: {key!r}")

    if isinstance(target, list) and key == LENGTH:
        if descriptor.enumerable or descriptor.configurable:
            raise ObjectModelError("Cannot redefine property: 'length'")
        _resize(target, descriptor.value)
    elif isinstance(target, list) and key == len(target):
        target.append(descriptor.value)
    else:
        target[key] = descriptor.value
    _store_attributes(
        target, key, (descriptor.writable, descriptor.enumerable, descriptor.configurable)
    )


def prevent_extensions(target) -> None:
    _shape_for_update(target).extensible = False


def freeze(target) -> None:
    """Make target non-extensible and every own property read-only."""
    prevent_extensions(target)
    for key in own_keys(target):
        descriptor = get_own_property_descriptor(target, key)
        define_property(target, key, replace(descriptor, writable=False, configurable=False))
