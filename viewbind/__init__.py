"""
viewbind - Declarative key-path bindings for view trees.

This framework provides:
- Key-path bindings declared on views, resolved against a bound model object
  and the chain of enclosing views
- Formatter lookup by name along the same chain, or globally ('Type.method')
- Cached resolution with explicit bind / refresh / forced refresh
- Recursive propagation through view trees, stopping lookups at screen
  (scope boundary) nodes

Basic Usage:
    import viewbind

    class Label(viewbind.ViewNode):
        def update_view(self, value):
            self.text = value

    class Screen(viewbind.ViewNode):
        is_scope_boundary = True

        def shout(self, value):
            return value.upper()

    screen = Screen()
    name = screen.add_child(Label(bind_key_path='name'))
    loud = screen.add_child(Label(bind_key_path='name', bind_formatter='shout'))

    person = {'name': 'Ann'}
    viewbind.bind_to_object(screen, person)
    print(name.text, loud.text)   # Ann ANN

    person['name'] = 'Bea'
    viewbind.refresh_bindings(screen)   # values only, bindings are cached
    print(name.text)   # Bea

Key Concepts:
    - ViewNode: Base class for bindable views
    - bind_key_path / bind_formatter: The binding attributes of a view
    - Binder: Resolves, caches and applies bindings
    - bind_to_object(): Bind a view tree to a model object
    - refresh_bindings(): Update displayed values (forced=True resolves again)
    - list_active_bindings(): Debug listing of bindings and their status

See the individual module documentation for more details.
"""

from typing import Any, List, Optional, Type

from .application import ApplyOutcome, accepted_kinds, apply_value, check_value_kind
from .cache import BindingCache, BindingRecord
from .core import Binder, BindingInfo, get_binder
from .exceptions import (
    BindingApplyError,
    BindingResolutionError,
    FormatterFailedError,
    FormatterNotFoundError,
    InvalidKeyPathError,
    InvariantViolation,
    KeyPathAssignmentError,
    KeyPathError,
    KeyPathNotFoundError,
    KeyPathSyntaxError,
    NullSegmentError,
    ScopeBoundaryUnreachable,
    TreeCycleError,
    TreeStructureError,
    UnknownKeyError,
    UnsupportedValueTypeError,
    ValidationError,
    ViewBindError,
    ViewUpdateError,
)
from .keypath import KeyPath, evaluate_key_path, parse_key_path
from .kinds import (
    BOOLEAN,
    DATE,
    NO_VALUE,
    NUMBER,
    OBJECT,
    TEXT,
    BindingStatus,
    ValueKind,
)
from .node import ViewNode
from .resolvers import (
    ConverterFormatter,
    FormatterHandle,
    FormatterRegistry,
    FormatterResolver,
    FunctionFormatter,
    KeyPathResolution,
    KeyPathResolver,
)
from .scope import build_chain

__version__ = "0.1.0"

__all__ = [
    # Core classes
    "ViewNode",
    "Binder",
    "BindingInfo",
    "BindingRecord",
    "BindingCache",
    "ApplyOutcome",
    # Resolution
    "KeyPath",
    "KeyPathResolver",
    "KeyPathResolution",
    "FormatterHandle",
    "FunctionFormatter",
    "ConverterFormatter",
    "FormatterRegistry",
    "FormatterResolver",
    "build_chain",
    "parse_key_path",
    "evaluate_key_path",
    "apply_value",
    "accepted_kinds",
    "check_value_kind",
    # Kinds and statuses
    "ValueKind",
    "BindingStatus",
    "TEXT",
    "NUMBER",
    "BOOLEAN",
    "DATE",
    "OBJECT",
    "NO_VALUE",
    # Default binder
    "get_binder",
    "bind_to_object",
    "refresh_bindings",
    "unbind",
    "list_active_bindings",
    "register_formatter_type",
    "reset",
    "debug_bindings",
    # Exceptions
    "ViewBindError",
    "KeyPathError",
    "UnknownKeyError",
    "NullSegmentError",
    "KeyPathSyntaxError",
    "KeyPathAssignmentError",
    "BindingResolutionError",
    "KeyPathNotFoundError",
    "InvalidKeyPathError",
    "FormatterNotFoundError",
    "BindingApplyError",
    "UnsupportedValueTypeError",
    "FormatterFailedError",
    "ViewUpdateError",
    "ValidationError",
    "InvariantViolation",
    "TreeCycleError",
    "TreeStructureError",
    "ScopeBoundaryUnreachable",
]


def reset() -> None:
    """Reset the default binder (for testing)."""
    Binder.reset()


def bind_to_object(node: ViewNode, obj: Any) -> None:
    """Bind node and its subtree to obj using the default binder."""
    Binder.get_instance().bind_to_object(node, obj)


def refresh_bindings(node: ViewNode, forced: bool = False) -> None:
    """Refresh the bindings of node's subtree using the default binder."""
    Binder.get_instance().refresh_bindings(node, forced=forced)


def unbind(node: ViewNode) -> None:
    """Drop the bindings of node's subtree from the default binder."""
    Binder.get_instance().unbind(node)


def list_active_bindings() -> List[BindingInfo]:
    """List the bindings known to the default binder."""
    return Binder.get_instance().list_active_bindings()


def register_formatter_type(cls: Type, name: Optional[str] = None) -> Type:
    """
    Make cls usable in qualified formatter names ('Name.method') with the
    default binder. Usable as a class decorator.
    """
    return Binder.get_instance().registry.register(cls, name)


def debug_bindings(master: Any = None) -> Any:
    """
    Show the binding debug overlay for the default binder.

    Requires Tkinter. Returns the overlay window.
    """
    from .ui.overlay import BindingDebugOverlay
    return BindingDebugOverlay.show(Binder.get_instance(), master=master)
