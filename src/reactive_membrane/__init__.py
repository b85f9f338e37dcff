"""reactive_membrane: fine-grained dependency tracking for plain dicts and lists."""

from importlib.metadata import version as _version

__version__ = _version("reactive-membrane")

from reactive_membrane import reflect
from reactive_membrane._tracking import (
    DefaultBridge,
    RenderBridge,
    RenderContext,
    current_consumer,
    flush,
    get_pending_count,
    is_rendering_active,
    render_pass,
    set_bridge,
    set_scheduler,
)
from reactive_membrane.action import action, transaction
from reactive_membrane.consumer import Consumer, mount
from reactive_membrane.errors import (
    InvariantViolation,
    MembraneError,
    ObjectModelError,
    RenderPurityError,
    UsageError,
)
from reactive_membrane.membrane import RecordProxy, SequenceProxy, is_proxy, unwrap
from reactive_membrane.objectmodel import PropertyDescriptor
from reactive_membrane.reactive import is_observable, release, set_dev_warnings, wrap
from reactive_membrane.registry import (
    dependents,
    notify_dependents,
    record_dependency,
    remove_consumer,
)
# textual NOT auto-imported — opt-in only

__all__ = [
    "wrap",
    "unwrap",
    "is_observable",
    "is_proxy",
    "release",
    "RecordProxy",
    "SequenceProxy",
    "PropertyDescriptor",
    "reflect",
    "Consumer",
    "mount",
    "render_pass",
    "RenderContext",
    "RenderBridge",
    "DefaultBridge",
    "is_rendering_active",
    "current_consumer",
    "set_bridge",
    "set_scheduler",
    "set_dev_warnings",
    "flush",
    "get_pending_count",
    "action",
    "transaction",
    "record_dependency",
    "notify_dependents",
    "remove_consumer",
    "dependents",
    "MembraneError",
    "InvariantViolation",
    "UsageError",
    "RenderPurityError",
    "ObjectModelError",
]
