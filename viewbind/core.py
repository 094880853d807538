"""
Core binding infrastructure: the Binder, which resolves, caches and applies
the bindings of a node tree.

The Binder:
- Walks a node subtree (honoring nodes which do not bind their children)
- Builds the scope chain of each bound node
- Resolves key paths and formatters, and caches the result per node
- Applies values, isolating failures to the node they occur on
"""

from __future__ import annotations

import logging
import threading
import weakref
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator, List, Optional, Set, Tuple

from .application import ApplyOutcome, accepted_kinds, apply_value
from .cache import BindingCache, BindingRecord
from .exceptions import (
    BindingResolutionError,
    KeyPathError,
    TreeCycleError,
    TreeStructureError,
    ViewBindError,
)
from .kinds import NO_VALUE, BindingStatus
from .resolvers import FormatterRegistry, FormatterResolver, KeyPathResolver
from .scope import ScopeRef, build_chain

if TYPE_CHECKING:
    from .node import ViewNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BindingInfo:
    """Debug view of the binding of one node."""
    node: ViewNode
    key_path: str
    status: BindingStatus
    last_value: Any = field(default=NO_VALUE)
    error: Optional[Exception] = field(default=None, repr=False)


class Binder:
    """
    Resolves and applies the bindings of node trees.

    Handles:
    - Bound objects (held weakly where possible)
    - The binding record cache
    - Tree propagation for bind and refresh
    - The debug listing of active bindings

    A default, process-wide instance is available via Binder.get_instance().
    """

    _instance: Optional[Binder] = None
    _lock = threading.Lock()

    def __init__(
        self,
        registry: Optional[FormatterRegistry] = None,
        cache: Optional[BindingCache] = None,
        key_path_resolver: Optional[KeyPathResolver] = None,
        formatter_resolver: Optional[FormatterResolver] = None,
    ):
        self.registry = registry if registry is not None else FormatterRegistry()
        self.cache = cache if cache is not None else BindingCache()
        self.key_path_resolver = key_path_resolver or KeyPathResolver()
        self.formatter_resolver = formatter_resolver or FormatterResolver(self.registry)
        self._bound_objects: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()

    @classmethod
    def get_instance(cls) -> Binder:
        """Get the default instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Discard the default instance (mainly for testing)."""
        with cls._lock:
            cls._instance = None

    # Bound objects

    def bound_object_for(self, node: ViewNode) -> Any:
        """
        The object the node's subtree is currently bound to.

        This is the object bound at the node itself or at its nearest bound
        ancestor. Scope boundaries do not stop this lookup.
        """
        for candidate in (node, *node.iter_ancestors()):
            ref = self._bound_objects.get(candidate)
            if ref is not None:
                return ref()
        return None

    def _clear_bound_objects(self, root: ViewNode) -> None:
        for node in root.iter_subtree():
            self._bound_objects.pop(node, None)

    # Public entry points

    def bind_to_object(self, root: ViewNode, obj: Any) -> None:
        """
        Bind root and its subtree to obj, resolving every binding again.

        Objects bound to nodes of the subtree before are replaced (bind parents
        first when nesting bindings). Binding to None drops the cached records
        of the subtree, then resolves against the node scopes only.
        """
        self._clear_bound_objects(root)
        if obj is None:
            self.cache.invalidate_subtree(root)
        else:
            self._bound_objects[root] = ScopeRef(obj)
        self.propagate(root, obj, forced=True, initial=True)

    def refresh_bindings(self, root: ViewNode, forced: bool = False) -> None:
        """
        Refresh the values displayed in root's subtree.

        Without forced, cached records are reused and only values are read and
        applied again; nodes whose binding never resolved are left alone. With
        forced, bindings are resolved again first.
        """
        self.propagate(root, self.bound_object_for(root), forced=forced)

    def unbind(self, root: ViewNode) -> None:
        """Drop bound objects and binding records of root's subtree."""
        self._clear_bound_objects(root)
        self.cache.invalidate_subtree(root)

    def propagate(self, root: ViewNode, bound_object: Any, forced: bool, initial: bool = False) -> None:
        """
        Resolve (forced) or re-apply (not forced) the bindings of a subtree.

        Values of an initial display are never animated. Otherwise a node
        with bind_update_animated set is asked to animate the change, if its
        update_view() accepts an `animated` argument.

        A node is processed before its children, children in insertion order.
        Failures are recorded per node and never interrupt the traversal.

        Raises:
            InvariantViolation: If the tree is corrupted (cycle, inconsistent
                parent links); the traversal is aborted
        """
        for node, obj in self._walk(root, bound_object):
            animated = not initial and node.bind_update_animated
            if forced:
                self.cache.invalidate(node)
                if node.bind_key_path and node.supports_binding:
                    self._bind_node(node, obj, animated)
            elif node.bind_key_path and node.supports_binding:
                self._refresh_node(node, animated)

    def list_active_bindings(self) -> List[BindingInfo]:
        """List resolved bindings, then bindings which failed to resolve."""
        infos = [
            BindingInfo(node, record.key_path, record.status, record.last_value, record.error)
            for node, record in self.cache.items()
        ]
        infos.extend(
            BindingInfo(node, node.bind_key_path or "", error.status, NO_VALUE, error)
            for node, error in self.cache.failures()
        )
        return infos

    # View -> model

    def check_displayed_values(self, root: ViewNode) -> List[Exception]:
        """
        Validate the values displayed by input nodes of root's subtree.

        Only nodes with a resolved binding, a displayed_value() method and
        bind_input_checked set are checked.

        Returns:
            The validation errors (empty if every value is valid)
        """
        errors: List[Exception] = []
        for node, record in self._input_records(root):
            if not node.bind_input_checked:
                continue
            try:
                record.check_displayed_value(node.displayed_value())
            except ViewBindError as e:
                errors.append(e)
        return errors

    def update_model(self, root: ViewNode) -> List[Exception]:
        """
        Write the values displayed by input nodes of root's subtree back to
        the model, validating them first unless bind_input_checked is unset.

        Returns:
            The errors met (empty if every value was written)
        """
        errors: List[Exception] = []
        for node, record in self._input_records(root):
            try:
                displayed_value = node.displayed_value()
                if node.bind_input_checked:
                    value = record.check_displayed_value(displayed_value)
                else:
                    value = record.model_value(displayed_value)
                record.update_model(value)
            except ViewBindError as e:
                logger.debug("Could not update model from %r: %s", node, e)
                errors.append(e)
        return errors

    # Internals

    def _walk(self, root: ViewNode, bound_object: Any) -> Iterator[Tuple[ViewNode, Any]]:
        """Yield (node, bound object) pairs in propagation order."""
        visited: Set[int] = set()
        stack: List[Tuple[ViewNode, Any]] = [(root, bound_object)]

        while stack:
            node, obj = stack.pop()
            if id(node) in visited:
                raise TreeCycleError(f"{node!r} reached twice while traversing {root!r}")
            visited.add(id(node))

            yield node, obj

            if not node.binds_children_recursively():
                continue

            pending = []
            for child in node.children:
                if child.parent is not node:
                    raise TreeStructureError(
                        f"{child!r} is listed under {node!r} but its parent is {child.parent!r}"
                    )
                ref = self._bound_objects.get(child)
                pending.append((child, ref() if ref is not None else obj))
            stack.extend(reversed(pending))

    def _input_records(self, root: ViewNode) -> Iterator[Tuple[ViewNode, BindingRecord]]:
        for node, _ in self._walk(root, None):
            record = self.cache.get(node)
            if record is not None and callable(getattr(node, 'displayed_value', None)):
                yield node, record

    def _bind_node(self, node: ViewNode, bound_object: Any, animated: bool = False) -> Optional[ApplyOutcome]:
        """Resolve the binding of a node, cache it and apply the value."""
        chain = build_chain(node, bound_object)
        try:
            resolution = self.key_path_resolver.resolve(chain, node.bind_key_path)
            formatter = self.formatter_resolver.resolve(chain, bound_object, node.bind_formatter)
        except BindingResolutionError as e:
            logger.debug("Could not resolve binding of %r: %s", node, e)
            self.cache.record_failure(node, e)
            return None

        record = BindingRecord(
            node=node,
            evaluator=resolution.evaluator,
            formatter=formatter,
            accepted_kinds=accepted_kinds(node),
        )
        self.cache.put(node, record)

        if resolution.error is not None:
            self._record_evaluation_error(record, resolution.error)
            return None
        return self._apply(record, resolution.value, animated)

    def _refresh_node(self, node: ViewNode, animated: bool = False) -> Optional[ApplyOutcome]:
        """Apply the current value of a node using its cached record only."""
        record = self.cache.get(node)
        if record is None:
            return None
        try:
            value = record.current_value()
        except KeyPathError as e:
            self._record_evaluation_error(record, e)
            return None
        return self._apply(record, value, animated)

    def _record_evaluation_error(self, record: BindingRecord, error: KeyPathError) -> None:
        logger.debug("Could not evaluate binding of %r: %s", record.node, error)
        record.set_error(error, BindingStatus.EVALUATION_FAILED)

    def _apply(self, record: BindingRecord, value: Any, animated: bool = False) -> ApplyOutcome:
        outcome = apply_value(record.node, value, record.formatter, record, animated=animated)
        if outcome.status is BindingStatus.UPDATE_FAILED:
            logger.warning("Updating %r failed: %s", record.node, outcome.error)
        elif not outcome.succeeded:
            logger.debug("Could not apply value to %r: %s", record.node, outcome.error)
        return outcome


def get_binder() -> Binder:
    """Get the default Binder."""
    return Binder.get_instance()
