"""
ViewNode: the element tree the binding engine walks.

A ViewNode carries the declarative binding attributes (bind_key_path,
bind_formatter, bind_input_checked, bind_update_animated) and the optional
capabilities the engine queries:

- update_view(value): display a value. Nodes without it are transparent
  containers (bindings still propagate through them). A node declaring an
  `animated` parameter is told whether the change may be animated
- accepted_value_kinds(): kinds of values the node can display (default TEXT)
- binds_children_recursively(): whether traversals descend into children
  (default True)
- displayed_value(): value currently shown, for nodes accepting user input

Methods which change the tree or the bindings are marked with
@hidden_from_bindings: key paths and formatter names never reach them.

Usage:
    class NameLabel(ViewNode):
        def update_view(self, value):
            self.text = value

    screen = ViewNode('screen', is_scope_boundary=True)
    label = screen.add_child(NameLabel('label', bind_key_path='name'))
    screen.bind_to_object({'name': 'Ann'})
"""

from __future__ import annotations

import inspect
import weakref
from typing import TYPE_CHECKING, Any, Callable, FrozenSet, Iterator, List, Optional

from .exceptions import TreeCycleError, TreeStructureError
from .keypath import hidden_from_bindings
from .kinds import DEFAULT_ACCEPTED_KINDS, ValueKind

if TYPE_CHECKING:
    from .core import Binder


# Listener signature: callback(node)
NodeListener = Callable[['ViewNode'], None]


class ViewNode:
    """
    A node of the element tree.

    Nodes own their children (ordered) and keep a back-reference to their
    parent. Setting is_scope_boundary marks a node defining a local naming
    context (a screen); scope lookups starting below it never go past it.
    """

    is_scope_boundary: bool = False

    def __init__(
        self,
        name: Optional[str] = None,
        *,
        bind_key_path: Optional[str] = None,
        bind_formatter: Optional[str] = None,
        bind_input_checked: bool = True,
        is_scope_boundary: Optional[bool] = None,
        bind_update_animated: bool = False,
    ):
        # Debug label only. Not an attribute, so a "name" key path still
        # reaches the enclosing scopes.
        self._name = name
        self.bind_key_path = bind_key_path
        self.bind_formatter = bind_formatter
        self.bind_input_checked = bind_input_checked
        self.bind_update_animated = bind_update_animated
        if is_scope_boundary is not None:
            self.is_scope_boundary = is_scope_boundary

        self._parent: Optional[ViewNode] = None
        self._children: List[ViewNode] = []
        self._listeners: List[weakref.ref] = []

    def __repr__(self) -> str:
        if self._name is None:
            return f"<{type(self).__name__} at {id(self):#x}>"
        return f"<{type(self).__name__} {self._name!r}>"

    # Capabilities

    def accepted_value_kinds(self) -> FrozenSet[ValueKind]:
        """Kinds of values this node can display. Defaults to TEXT only."""
        return DEFAULT_ACCEPTED_KINDS

    def binds_children_recursively(self) -> bool:
        """Whether bind/refresh traversals descend into the children."""
        return True

    @property
    def supports_binding(self) -> bool:
        """True if the node implements update_view()."""
        return callable(getattr(self, 'update_view', None))

    # Tree structure

    @property
    def parent(self) -> Optional[ViewNode]:
        return self._parent

    @property
    def children(self) -> List[ViewNode]:
        """A copy of the ordered list of children."""
        return list(self._children)

    @property
    def root(self) -> ViewNode:
        node = self
        for node in self.iter_ancestors():
            pass
        return node

    @hidden_from_bindings
    def add_child(self, child: ViewNode, index: Optional[int] = None) -> ViewNode:
        """
        Append (or insert at index) a child node.

        A child which already has a parent is detached from it first.

        Returns:
            The child, for chaining

        Raises:
            TreeCycleError: If child is this node or one of its ancestors
        """
        if child is self or any(ancestor is child for ancestor in self.iter_ancestors()):
            raise TreeCycleError(f"Adding {child!r} under {self!r} would create a cycle")

        if child._parent is not None:
            child.remove_from_parent()

        if index is None:
            self._children.append(child)
        else:
            self._children.insert(index, child)
        child._parent = self
        return child

    @hidden_from_bindings
    def remove_child(self, child: ViewNode) -> None:
        """
        Detach a child node.

        Cached bindings of the detached subtree are discarded.
        """
        if child._parent is not self:
            raise TreeStructureError(f"{child!r} is not a child of {self!r}")
        self._children.remove(child)
        child._parent = None
        for node in child.iter_subtree():
            node._notify()

    @hidden_from_bindings
    def remove_from_parent(self) -> None:
        """Detach this node from its parent (no-op for a root)."""
        if self._parent is not None:
            self._parent.remove_child(self)

    def iter_ancestors(self) -> Iterator[ViewNode]:
        """Yield the parent, the grandparent... up to the root."""
        seen = {id(self)}
        node = self._parent
        while node is not None:
            if id(node) in seen:
                raise TreeCycleError(f"Cycle detected above {self!r}")
            seen.add(id(node))
            yield node
            node = node._parent

    def iter_subtree(self) -> Iterator[ViewNode]:
        """Yield this node and all its descendants, depth first."""
        seen = set()
        stack = [self]
        while stack:
            node = stack.pop()
            if id(node) in seen:
                raise TreeCycleError(f"{node!r} reached twice below {self!r}")
            seen.add(id(node))
            yield node
            stack.extend(reversed(node._children))

    # Binding attributes

    @hidden_from_bindings
    def bind_to_key_path(self, key_path: Optional[str], formatter: Optional[str] = None) -> None:
        """
        Set the binding attributes programmatically.

        The previously cached binding of this node is dropped; resolution
        happens on the next bind or forced refresh.
        """
        self.bind_key_path = key_path
        self.bind_formatter = formatter
        self._notify()

    @hidden_from_bindings
    def add_listener(self, callback: NodeListener) -> None:
        """
        Register a callback invoked with the node when its cached binding
        becomes stale: its binding attributes changed, or it was detached
        from its tree (alone or with an ancestor).

        Callbacks are held weakly.
        """
        for ref in self._listeners:
            if ref() == callback:
                return
        if inspect.ismethod(callback):
            self._listeners.append(weakref.WeakMethod(callback))
        else:
            self._listeners.append(weakref.ref(callback))

    @hidden_from_bindings
    def _notify(self) -> None:
        live = []
        for ref in self._listeners:
            callback = ref()
            if callback is not None:
                live.append(ref)
                callback(self)
        self._listeners = live

    # Convenience entry points (default binder unless one is given)

    @hidden_from_bindings
    def bind_to_object(self, obj: Any, binder: Optional[Binder] = None) -> None:
        """Bind this node and its subtree to obj (None clears the object)."""
        _binder(binder).bind_to_object(self, obj)

    @hidden_from_bindings
    def refresh_bindings(self, forced: bool = False, binder: Optional[Binder] = None) -> None:
        """Refresh the values displayed by this node and its subtree."""
        _binder(binder).refresh_bindings(self, forced=forced)

    @hidden_from_bindings
    def unbind(self, binder: Optional[Binder] = None) -> None:
        """Drop the bound object and cached bindings of this subtree."""
        _binder(binder).unbind(self)

    @hidden_from_bindings
    def check_displayed_values(self, binder: Optional[Binder] = None) -> List[Exception]:
        """Validate the values displayed by input nodes of this subtree."""
        return _binder(binder).check_displayed_values(self)

    @hidden_from_bindings
    def update_model(self, binder: Optional[Binder] = None) -> List[Exception]:
        """Write the values displayed by input nodes of this subtree to the model."""
        return _binder(binder).update_model(self)


def _binder(binder: Optional[Binder]) -> Binder:
    if binder is not None:
        return binder
    from .core import Binder
    return Binder.get_instance()
