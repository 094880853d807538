"""
Custom exceptions for the viewbind framework.
"""

from __future__ import annotations

from typing import Any

from .kinds import BindingStatus


class ViewBindError(Exception):
    """Base exception for all viewbind errors."""
    pass


# Key-path evaluation

class KeyPathError(ViewBindError):
    """Raised by the property-path evaluator when a key path cannot be evaluated."""

    def __init__(self, key_path: str, message: str):
        self.key_path = key_path
        super().__init__(f"Key path '{key_path}': {message}")


class UnknownKeyError(KeyPathError):
    """
    Raised when an object does not know a key of the path.

    This is the only evaluation error after which scope lookup moves on
    to the next candidate scope.
    """

    def __init__(self, key_path: str, key: str, obj: Any):
        self.key = key
        super().__init__(key_path, f"{type(obj).__name__} has no key '{key}'")


class NullSegmentError(KeyPathError):
    """Raised when an intermediate segment of a key path evaluates to None."""

    def __init__(self, key_path: str, key: str):
        self.key = key
        super().__init__(key_path, f"segment '{key}' is None")


class KeyPathSyntaxError(KeyPathError):
    """Raised when a key path is malformed (empty segment, unknown operator)."""
    pass


class KeyPathAssignmentError(KeyPathError):
    """Raised when a value cannot be written back through a key path."""
    pass


# Resolution

class BindingResolutionError(ViewBindError):
    """Raised when the binding attributes of a node cannot be resolved."""

    status: BindingStatus

    def __init__(self, message: str):
        super().__init__(message)


class KeyPathNotFoundError(BindingResolutionError):
    """Raised when no scope of the chain knows the key path."""

    def __init__(self, key_path: str):
        self.key_path = key_path
        self.status = BindingStatus.PATH_NOT_FOUND
        super().__init__(f"No scope could answer key path '{key_path}'")


class InvalidKeyPathError(BindingResolutionError):
    """Raised when a key path cannot be parsed."""

    def __init__(self, key_path: str, original_error: KeyPathError):
        self.key_path = key_path
        self.original_error = original_error
        self.status = BindingStatus.INVALID_KEY_PATH
        super().__init__(str(original_error))


class FormatterNotFoundError(BindingResolutionError):
    """Raised when no routine matches a formatter name."""

    def __init__(self, name: str, message: str = None):
        self.name = name
        self.status = BindingStatus.FORMATTER_NOT_FOUND
        super().__init__(message or f"Formatter '{name}' not found")


# Application

class BindingApplyError(ViewBindError):
    """Raised when a resolved value cannot be delivered to a node."""

    status: BindingStatus


class UnsupportedValueTypeError(BindingApplyError):
    """Raised when a (formatted) value does not match the kinds a node accepts."""

    def __init__(self, value: Any, accepted: Any):
        self.value = value
        self.accepted = accepted
        self.status = BindingStatus.UNSUPPORTED_VALUE_TYPE
        kinds = ", ".join(sorted(kind.name for kind in accepted))
        super().__init__(
            f"Value of type {type(value).__name__} is not supported (accepted: {kinds})"
        )


class FormatterFailedError(BindingApplyError):
    """Raised when a formatter raises while converting a value."""

    def __init__(self, formatter: Any, original_error: Exception):
        self.formatter = formatter
        self.original_error = original_error
        self.status = BindingStatus.FORMATTER_FAILED
        super().__init__(f"Error formatting with {formatter!r}: {original_error}")


class ViewUpdateError(BindingApplyError):
    """Raised when a node's update_view() raises."""

    def __init__(self, original_error: Exception):
        self.original_error = original_error
        self.status = BindingStatus.UPDATE_FAILED
        super().__init__(f"Error updating view: {original_error}")


class ValidationError(ViewBindError):
    """Raised when a value entered in a view is rejected before updating the model."""

    def __init__(self, key_path: str, value: Any, message: str):
        self.key_path = key_path
        self.value = value
        super().__init__(f"Invalid value {value!r} for '{key_path}': {message}")


# Invariant violations (fatal, abort the traversal)

class InvariantViolation(ViewBindError):
    """Raised when the node tree no longer satisfies the tree invariants."""
    pass


class TreeCycleError(InvariantViolation):
    """Raised when a node is reached twice, i.e. the tree contains a cycle."""
    pass


class TreeStructureError(InvariantViolation):
    """Raised when parent and child links disagree."""
    pass


class ScopeBoundaryUnreachable(InvariantViolation):
    """Raised when the ancestor walk neither reaches a boundary nor a root."""
    pass
