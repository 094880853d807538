"""
Property-path evaluation for bound views.

A key path is a dot-separated selector into an object graph:
- user.name - attribute or mapping key access, segment by segment
- user.full_name - bound methods are called without arguments (getters),
  except those marked with @hidden_from_bindings
- orders.@count - collection operator applied to the collection on the left
- orders.@sum.amount - operator applied to the remainder evaluated on each item

Supported operators: @count, @sum, @avg, @min, @max, @unionOfObjects and
@distinctUnionOfObjects.

Evaluation distinguishes an unknown key (UnknownKeyError, the object does not
know the name) from other failures such as a None intermediate segment
(NullSegmentError). Scope lookup relies on this distinction.
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Iterable, Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .exceptions import (
    KeyPathAssignmentError,
    KeyPathError,
    KeyPathSyntaxError,
    NullSegmentError,
    UnknownKeyError,
)
from .kinds import OPERATOR_PREFIX

_MISSING = object()


def hidden_from_bindings(func: Callable) -> Callable:
    """
    Mark a method as invisible to key paths and formatter lookup.

    Key paths call zero-argument methods as getters, so methods with side
    effects (tree mutation, teardown) are marked to keep a binding from
    running them. A hidden name is an unknown key.
    """
    func._is_hidden_from_bindings = True
    return func


def is_hidden_from_bindings(func: Any) -> bool:
    return getattr(func, '_is_hidden_from_bindings', False) is True


@dataclass(frozen=True)
class Segment:
    """
    One segment of a key path.

    Attributes:
        name: The key name, or the operator name without its prefix
        is_operator: Whether this segment is a collection operator
    """
    name: str
    is_operator: bool = False

    def __str__(self) -> str:
        return f"{OPERATOR_PREFIX}{self.name}" if self.is_operator else self.name


def _values(items: List[Any]) -> List[Any]:
    return [item for item in items if item is not None]


def _count(items: List[Any]) -> int:
    return len(items)


def _sum(items: List[Any]) -> Any:
    return sum(_values(items), 0)


def _avg(items: List[Any]) -> Any:
    values = _values(items)
    if not values:
        return None
    return sum(values, 0) / len(values)


def _min(items: List[Any]) -> Any:
    values = _values(items)
    return min(values) if values else None


def _max(items: List[Any]) -> Any:
    values = _values(items)
    return max(values) if values else None


def _union(items: List[Any]) -> List[Any]:
    return _values(items)


def _distinct_union(items: List[Any]) -> List[Any]:
    return list(dict.fromkeys(_values(items)))


OPERATORS: Dict[str, Callable[[List[Any]], Any]] = {
    'count': _count,
    'sum': _sum,
    'avg': _avg,
    'min': _min,
    'max': _max,
    'unionOfObjects': _union,
    'distinctUnionOfObjects': _distinct_union,
}


@dataclass(frozen=True)
class KeyPath:
    """A parsed key path. Obtain instances with parse_key_path()."""
    text: str
    segments: Tuple[Segment, ...]

    @property
    def has_operators(self) -> bool:
        return any(segment.is_operator for segment in self.segments)

    @property
    def last_key(self) -> str:
        """Name of the last segment (the key a value would be written to)."""
        return self.segments[-1].name

    def evaluate(self, obj: Any) -> Any:
        """
        Evaluate the key path against obj.

        Raises:
            UnknownKeyError: If an object along the path does not know a key
            NullSegmentError: If an intermediate segment is None
            KeyPathError: For any other evaluation failure
        """
        return self._evaluate(obj, self.segments)

    def owner(self, obj: Any) -> Any:
        """Return the object holding the last key of the path."""
        if self.has_operators:
            raise KeyPathAssignmentError(self.text, "key paths with operators have no owner")
        owner = self._evaluate(obj, self.segments[:-1])
        if owner is None:
            raise NullSegmentError(self.text, str(self.segments[-2]))
        return owner

    def assign(self, obj: Any, value: Any) -> None:
        """
        Write value through the key path.

        Only operator-free key paths can be assigned. The last key is set on
        the object selected by the rest of the path.
        """
        owner = self.owner(obj)
        key = self.last_key

        if isinstance(owner, MutableMapping):
            owner[key] = value
            return
        if isinstance(owner, Mapping):
            raise KeyPathAssignmentError(self.text, f"{type(owner).__name__} is read-only")

        try:
            setattr(owner, key, value)
        except (AttributeError, TypeError) as e:
            raise KeyPathAssignmentError(self.text, f"cannot set '{key}': {e}") from e

    def _evaluate(self, obj: Any, segments: Tuple[Segment, ...]) -> Any:
        current = obj
        previous: Optional[Segment] = None

        for index, segment in enumerate(segments):
            if current is None:
                raise NullSegmentError(self.text, str(previous) if previous else "<root>")
            if segment.is_operator:
                return self._apply_operator(current, segment, segments[index + 1:])
            current = _read_key(current, segment.name, self.text)
            previous = segment

        return current

    def _apply_operator(
        self,
        collection: Any,
        segment: Segment,
        rest: Tuple[Segment, ...],
    ) -> Any:
        if isinstance(collection, Mapping):
            items = list(collection.values())
        elif isinstance(collection, Iterable) and not isinstance(collection, (str, bytes)):
            items = list(collection)
        else:
            raise KeyPathError(
                self.text,
                f"operator '{segment}' needs a collection, got {type(collection).__name__}",
            )

        if rest:
            items = [self._evaluate(item, rest) for item in items]

        try:
            return OPERATORS[segment.name](items)
        except TypeError as e:
            raise KeyPathError(self.text, f"operator '{segment}' failed: {e}") from e

    def __str__(self) -> str:
        return self.text


def _read_key(obj: Any, key: str, key_path: str) -> Any:
    """Read a single key from obj (mapping item, attribute or getter method)."""
    if isinstance(obj, Mapping):
        try:
            return obj[key]
        except KeyError:
            raise UnknownKeyError(key_path, key, obj) from None

    try:
        value = getattr(obj, key)
    except AttributeError as e:
        # Only a name the object does not define is unknown; an
        # AttributeError escaping from a property is a failed read.
        if inspect.getattr_static(obj, key, _MISSING) is _MISSING:
            raise UnknownKeyError(key_path, key, obj) from None
        raise KeyPathError(key_path, f"reading '{key}' raised {e!r}") from e
    except Exception as e:
        raise KeyPathError(key_path, f"reading '{key}' raised {e!r}") from e

    if inspect.ismethod(value):
        if is_hidden_from_bindings(value):
            raise UnknownKeyError(key_path, key, obj)
        try:
            value = value()
        except Exception as e:
            raise KeyPathError(key_path, f"calling '{key}' raised {e!r}") from e

    return value


@functools.lru_cache(maxsize=512)
def parse_key_path(text: str) -> KeyPath:
    """
    Parse a key path string.

    Args:
        text: The key path (e.g. 'customer.address.city', 'items.@sum.price')

    Returns:
        A KeyPath (parsed key paths are cached)

    Raises:
        KeyPathSyntaxError: If the key path is empty, has an empty segment,
            an unknown operator, or a segment after @count
    """
    if not isinstance(text, str) or not text.strip():
        raise KeyPathSyntaxError(str(text), "key path is empty")

    segments = []
    for part in text.split('.'):
        if not part or part != part.strip():
            raise KeyPathSyntaxError(text, f"invalid segment '{part}'")

        if part.startswith(OPERATOR_PREFIX):
            name = part[len(OPERATOR_PREFIX):]
            if name not in OPERATORS:
                raise KeyPathSyntaxError(text, f"unknown operator '{part}'")
            segments.append(Segment(name, is_operator=True))
        else:
            segments.append(Segment(part))

    for segment in segments[:-1]:
        if segment.is_operator and segment.name == 'count':
            raise KeyPathSyntaxError(text, "'@count' must be the last segment")

    return KeyPath(text=text, segments=tuple(segments))


def evaluate_key_path(obj: Any, text: str) -> Any:
    """Parse text and evaluate it against obj."""
    return parse_key_path(text).evaluate(obj)
