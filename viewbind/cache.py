"""
Binding records and the cache holding them.

A BindingRecord stores what resolving a node's binding produced: the key path
bound to the scope which answered it, the formatter handle and the kinds of
values the node accepts. It also remembers the last value delivered to the
node and the status of the last attempt.

Records are created by a bind or a forced refresh, read by non-forced
refreshes, and dropped when the node is detached, re-resolved, unbound or
garbage collected. Neither the cache nor its records keep nodes alive.
"""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Any, FrozenSet, Iterator, List, Optional, Tuple

from .exceptions import BindingResolutionError, KeyPathAssignmentError, ValidationError
from .kinds import NO_VALUE, BindingStatus, ValueKind
from .resolvers import FormatterHandle, KeyPathEvaluator

if TYPE_CHECKING:
    from .node import ViewNode


def _without_traceback(error: Exception) -> Exception:
    """
    Drop the tracebacks of a stored error and of the errors it wraps.

    Traceback frames reference the nodes being processed as locals.
    """
    seen = set()
    pending = [error]
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        current.__traceback__ = None
        pending.extend((
            current.__cause__,
            current.__context__,
            getattr(current, 'original_error', None),
        ))
    return error


class BindingRecord:
    """Cached outcome of resolving the binding of a node."""

    def __init__(
        self,
        node: ViewNode,
        evaluator: KeyPathEvaluator,
        formatter: Optional[FormatterHandle],
        accepted_kinds: FrozenSet[ValueKind],
    ):
        self._node = weakref.ref(node)
        self.evaluator = evaluator
        self.formatter = formatter
        self.accepted_kinds = accepted_kinds

        self._last_value: Any = NO_VALUE
        self._status = BindingStatus.OK
        self._error: Optional[Exception] = None

    @property
    def node(self) -> Optional[ViewNode]:
        """The node, or None once it has been collected."""
        return self._node()

    def __repr__(self) -> str:
        return f"BindingRecord(node={self.node!r}, key_path={self.key_path!r}, status={self._status.name})"

    @property
    def key_path(self) -> str:
        return self.evaluator.key_path.text

    @property
    def last_value(self) -> Any:
        """Last value successfully delivered to the node (NO_VALUE if none)."""
        return self._last_value

    @property
    def status(self) -> BindingStatus:
        return self._status

    @property
    def error(self) -> Optional[Exception]:
        return self._error

    def current_value(self) -> Any:
        """Read the raw value again from the resolved scope."""
        return self.evaluator.evaluate()

    def set_applied(self, value: Any) -> None:
        """Record a successful delivery."""
        self._last_value = value
        self._status = BindingStatus.OK
        self._error = None

    def set_error(self, error: Exception, status: Optional[BindingStatus] = None) -> None:
        """Record a failure. The last applied value is kept."""
        self._error = _without_traceback(error)
        self._status = status or getattr(error, 'status', BindingStatus.EVALUATION_FAILED)

    # View -> model

    def model_value(self, displayed_value: Any) -> Any:
        """Convert a displayed value back into a model value."""
        if self.formatter is None or not self.formatter.can_parse:
            return displayed_value
        try:
            return self.formatter.parse(displayed_value)
        except (TypeError, ValueError) as e:
            raise ValidationError(self.key_path, displayed_value, str(e)) from e

    def check_displayed_value(self, displayed_value: Any) -> Any:
        """
        Validate a displayed value.

        The value is converted with model_value(), then checked with a
        validate_<key>(value) routine of the object owning the last key, if
        there is one. The routine rejects the value by returning False or
        raising ValueError.

        Returns:
            The model value
        """
        value = self.model_value(displayed_value)
        owner = self.evaluator.owner()
        validator = getattr(owner, f"validate_{self.evaluator.key_path.last_key}", None)
        if not callable(validator):
            return value

        try:
            accepted = validator(value)
        except ValueError as e:
            raise ValidationError(self.key_path, displayed_value, str(e)) from e
        if accepted is False:
            raise ValidationError(self.key_path, displayed_value, "rejected by validator")
        return value

    def update_model(self, value: Any) -> None:
        """Write a model value back through the key path."""
        if self.evaluator.key_path.has_operators:
            raise KeyPathAssignmentError(self.key_path, "key paths with operators are read-only")
        self.evaluator.assign(value)


class BindingCache:
    """
    Binding records keyed by node.

    The cache also remembers the last resolution failure of nodes without a
    record, for debugging. Records of nodes detached from their tree are
    dropped automatically. Nodes are weakly referenced: entries of collected
    nodes disappear.
    """

    def __init__(self):
        self._records: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()
        self._failures: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()

    def get(self, node: ViewNode) -> Optional[BindingRecord]:
        return self._records.get(node)

    def put(self, node: ViewNode, record: BindingRecord) -> None:
        """Store the record of a node, replacing any previous one."""
        self._failures.pop(node, None)
        self._records[node] = record
        node.add_listener(self._on_node_invalidated)

    def invalidate(self, node: ViewNode) -> None:
        """Drop the record (and recorded failure) of a node."""
        self._records.pop(node, None)
        self._failures.pop(node, None)

    def invalidate_subtree(self, node: ViewNode) -> None:
        """Drop the records of a node and all its descendants."""
        for descendant in node.iter_subtree():
            self.invalidate(descendant)

    def record_failure(self, node: ViewNode, error: BindingResolutionError) -> None:
        """Remember why the binding of a node could not be resolved."""
        self._records.pop(node, None)
        self._failures[node] = _without_traceback(error)
        node.add_listener(self._on_node_invalidated)

    def failure(self, node: ViewNode) -> Optional[BindingResolutionError]:
        return self._failures.get(node)

    def records(self) -> List[BindingRecord]:
        return list(self._records.values())

    def items(self) -> List[Tuple[ViewNode, BindingRecord]]:
        """(node, record) pairs of the live nodes."""
        return list(self._records.items())

    def failures(self) -> Iterator[Tuple[ViewNode, BindingResolutionError]]:
        return iter(list(self._failures.items()))

    def clear(self) -> None:
        self._records.clear()
        self._failures.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, node: object) -> bool:
        return node in self._records

    def _on_node_invalidated(self, node: ViewNode) -> None:
        self.invalidate(node)
