"""Exceptions raised by the membrane.

Every check runs before the Original Target is touched, so a raised error
never leaves partial mutation behind.
"""

from __future__ import annotations


class MembraneError(Exception):
    """Base class for all membrane errors."""


class InvariantViolation(MembraneError, RuntimeError):
    """A usage contract of the membrane was broken."""


class UsageError(InvariantViolation, TypeError):
    """An operation the membrane never supports (wrap, call, prototype change)."""


class RenderPurityError(InvariantViolation):
    """A write through a proxy happened while a render pass was active."""

    def __init__(self, message: str, *, key=None, consumer=None) -> None:
        super().__init__(message)
        self.key = key
        self.consumer = consumer


class ObjectModelError(MembraneError, TypeError):
    """The object model rejected an operation (frozen, non-extensible, ...)."""
