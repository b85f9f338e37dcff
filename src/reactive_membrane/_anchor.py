"""Data anchor — plain Python structures that hold all membrane state.

Original Targets are plain dicts and lists: neither hashable nor weakly
referenceable. Each target is therefore identified by a handle (its id) and
pinned here while any table refers to it, so the id cannot be reused.
release() drops every table entry for a target at once.
"""

import itertools

# Target state, keyed by handle
targets: dict[int, object] = {}  # handle -> pinned original target
proxies: dict[int, object] = {}  # handle -> membrane proxy
shapes: dict[int, object] = {}  # handle -> objectmodel.Shape
listeners: dict[int, dict] = {}  # handle -> prop -> set of consumers

# Consumer state
render_fns: dict[int, object] = {}
names: dict[int, str] = {}
dirty_flags: dict[int, bool] = {}
listener_sets: dict[int, list] = {}  # consumer id -> dependency sets joined
outputs: dict[int, object] = {}
disposed: dict[int, bool] = {}

# Consumer id generation — itertools.count is thread-safe (C-level GIL atomic)
_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)


def handle_of(target: object) -> int:
    """Pin target and return its handle."""
    handle = id(target)
    targets.setdefault(handle, target)
    return handle


def is_pinned(target: object) -> bool:
    return targets.get(id(target)) is target


def release(target: object) -> None:
    """Forget target: its proxy, shadow target, shape and dependents.

    Consumers still holding the released dependency sets keep them until
    their next render; they are never notified through them again. Targets
    nested inside this one keep their own pins (see reactive.release).
    """
    handle = id(target)
    if targets.get(handle) is not target:
        return
    proxy = proxies.pop(handle, None)
    if proxy is not None:
        shadow = object.__getattribute__(proxy, "_shadow")
        shapes.pop(id(shadow), None)
        targets.pop(id(shadow), None)
    shapes.pop(handle, None)
    listeners.pop(handle, None)
    del targets[handle]
