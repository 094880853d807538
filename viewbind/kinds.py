"""
Value kinds, binding statuses and constants.

Value kinds describe what a bound view is able to display:
- TEXT: str values
- NUMBER: int, float, Decimal, Fraction... (bool excluded)
- BOOLEAN: bool values
- DATE: datetime.date and datetime.datetime values
- OBJECT: any value at all
"""

import datetime
import numbers
from enum import Enum, auto
from typing import Any, Final, FrozenSet


class ValueKind(Enum):
    """Kinds of values a view can accept."""
    TEXT = auto()
    NUMBER = auto()
    BOOLEAN = auto()
    DATE = auto()
    OBJECT = auto()

    def matches(self, value: Any) -> bool:
        """Return True if value belongs to this kind."""
        if self is ValueKind.OBJECT:
            return True
        if self is ValueKind.TEXT:
            return isinstance(value, str)
        if self is ValueKind.BOOLEAN:
            return isinstance(value, bool)
        if self is ValueKind.NUMBER:
            return isinstance(value, numbers.Number) and not isinstance(value, bool)
        if self is ValueKind.DATE:
            return isinstance(value, datetime.date)
        return False

    @classmethod
    def of(cls, value: Any) -> 'ValueKind':
        """Return the most specific kind of a value."""
        for kind in (cls.BOOLEAN, cls.NUMBER, cls.TEXT, cls.DATE):
            if kind.matches(value):
                return kind
        return cls.OBJECT


class BindingStatus(Enum):
    """Outcome of resolving and applying the binding of a node."""
    OK = auto()
    PATH_NOT_FOUND = auto()
    INVALID_KEY_PATH = auto()
    EVALUATION_FAILED = auto()
    FORMATTER_NOT_FOUND = auto()
    FORMATTER_FAILED = auto()
    UNSUPPORTED_VALUE_TYPE = auto()
    UPDATE_FAILED = auto()

    @property
    def is_resolution_failure(self) -> bool:
        return self in (
            BindingStatus.PATH_NOT_FOUND,
            BindingStatus.INVALID_KEY_PATH,
            BindingStatus.FORMATTER_NOT_FOUND,
        )


# Sentinel value for "nothing applied yet"
class _NoValue:
    """Sentinel class for representing missing values."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_VALUE"

    def __bool__(self) -> bool:
        return False


NO_VALUE: Final = _NoValue()

DEFAULT_ACCEPTED_KINDS: Final[FrozenSet[ValueKind]] = frozenset({ValueKind.TEXT})

# "Type.method" formatter names are looked up globally, bypassing the scope chain
QUALIFIED_NAME_SEPARATOR: Final[str] = "."

# Key path segments starting with this prefix are collection operators
OPERATOR_PREFIX: Final[str] = "@"

# Export individual kinds at module level for convenience
TEXT = ValueKind.TEXT
NUMBER = ValueKind.NUMBER
BOOLEAN = ValueKind.BOOLEAN
DATE = ValueKind.DATE
OBJECT = ValueKind.OBJECT
