"""
Scope chains: the ordered candidate contexts a key path or formatter name is
looked up in.

For a node, the chain is:
1. the bound object, if any
2. the node itself
3. its ancestors, up to and including the nearest scope boundary (or the root)
"""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Any, List, Optional

from .exceptions import ScopeBoundaryUnreachable

if TYPE_CHECKING:
    from .node import ViewNode


class ScopeRef:
    """
    Non-owning reference to a bound object.

    Objects supporting weak references are held weakly; others (dict, list,
    int...) cannot be, and are held strongly.
    """

    __slots__ = ('_ref', '_strong')

    def __init__(self, obj: Any):
        try:
            self._ref: Optional[weakref.ref] = weakref.ref(obj)
            self._strong = None
        except TypeError:
            self._ref = None
            self._strong = obj

    def __call__(self) -> Any:
        """Return the object, or None once it has been garbage collected."""
        if self._ref is not None:
            return self._ref()
        return self._strong

    @property
    def is_alive(self) -> bool:
        return self() is not None

    def __repr__(self) -> str:
        return f"ScopeRef({self()!r})"


def build_chain(node: ViewNode, bound_object: Any = None) -> List[Any]:
    """
    Build the scope chain of a node.

    Args:
        node: The node whose binding is being resolved
        bound_object: The object the node's subtree is bound to (or None)

    Returns:
        The candidate scopes, most specific first. The chain stops after the
        first scope boundary met (inclusive) and never contains the bound
        object twice.

    Raises:
        ScopeBoundaryUnreachable: If the parent links loop, so that neither a
            boundary nor a root can be reached
    """
    chain: List[Any] = []
    if bound_object is not None:
        chain.append(bound_object)

    seen = set()
    current: Optional[ViewNode] = node
    while current is not None:
        if id(current) in seen:
            raise ScopeBoundaryUnreachable(
                f"Parent links of {node!r} loop back to {current!r}"
            )
        seen.add(id(current))

        if current is not bound_object:
            chain.append(current)
        if current.is_scope_boundary:
            break
        current = current.parent

    return chain
