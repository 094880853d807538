"""
Value application: format a resolved value, check it against the kinds a node
accepts and deliver it to the node.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, FrozenSet, Iterable, Optional

from .exceptions import (
    BindingApplyError,
    FormatterFailedError,
    UnsupportedValueTypeError,
    ViewUpdateError,
)
from .kinds import DEFAULT_ACCEPTED_KINDS, NO_VALUE, BindingStatus, ValueKind

if TYPE_CHECKING:
    from .cache import BindingRecord
    from .node import ViewNode
    from .resolvers import FormatterHandle


@dataclass(frozen=True)
class ApplyOutcome:
    """Result of applying a value to a node."""
    status: BindingStatus
    value: Any = field(default=NO_VALUE, repr=False)
    error: Optional[BindingApplyError] = None

    @property
    def succeeded(self) -> bool:
        return self.status is BindingStatus.OK


def accepted_kinds(node: Any) -> FrozenSet[ValueKind]:
    """Kinds a node accepts, defaulting to TEXT when it declares none."""
    declare = getattr(node, 'accepted_value_kinds', None)
    kinds = frozenset(declare()) if callable(declare) else frozenset()
    return kinds or DEFAULT_ACCEPTED_KINDS


def check_value_kind(value: Any, kinds: Iterable[ValueKind]) -> None:
    """
    Raise UnsupportedValueTypeError unless value belongs to one of kinds.

    None always passes: it stands for "no value" in every kind.
    """
    kinds = frozenset(kinds)
    if value is None or any(kind.matches(value) for kind in kinds):
        return
    raise UnsupportedValueTypeError(value, kinds)


def _accepts_animated(update_view: Any) -> bool:
    try:
        parameters = inspect.signature(update_view).parameters
    except (ValueError, TypeError):
        return False
    return 'animated' in parameters


def apply_value(
    node: ViewNode,
    value: Any,
    formatter: Optional[FormatterHandle] = None,
    record: Optional[BindingRecord] = None,
    animated: bool = False,
) -> ApplyOutcome:
    """
    Format value, check its kind and deliver it to node.update_view().

    Identical values are delivered again; nothing is short-circuited.

    Args:
        node: The node to update
        value: The raw value read through the key path
        formatter: Optional formatter handle
        record: Optional binding record updated with the outcome
        animated: Whether the change may be animated. Passed to update_view()
            only if it declares an `animated` parameter

    Returns:
        An ApplyOutcome. Failures leave the node untouched.
    """
    kinds = record.accepted_kinds if record is not None else accepted_kinds(node)

    try:
        if formatter is not None:
            try:
                value = formatter.apply(value)
            except Exception as e:
                raise FormatterFailedError(formatter, e) from e

        check_value_kind(value, kinds)

        try:
            if _accepts_animated(node.update_view):
                node.update_view(value, animated=animated)
            else:
                node.update_view(value)
        except Exception as e:
            raise ViewUpdateError(e) from e

    except BindingApplyError as e:
        if record is not None:
            record.set_error(e)
        return ApplyOutcome(e.status, error=e)

    if record is not None:
        record.set_applied(value)
    return ApplyOutcome(BindingStatus.OK, value)
