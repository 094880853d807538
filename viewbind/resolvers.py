"""
Key path and formatter resolution along a scope chain.

KeyPathResolver finds the first scope which knows a key path. A scope which
raises UnknownKeyError is skipped; any other evaluation failure on a scope is
the answer and stops the search.

FormatterResolver turns a formatter name into a FormatterHandle:
- 'Type.method' (qualified): a class-level routine of Type, looked up in the
  FormatterRegistry or imported ('package.module.Type.method'). The scope
  chain is not consulted.
- 'method' (bare): looked up on the bound object, then on each scope of the
  chain. On each scope an instance-level routine is preferred over a
  class-level (classmethod/staticmethod) one.

A routine taking a value converts it directly. A routine taking no argument
is a factory returning a reusable converter: an object with a format(value)
method (and optionally parse(text)) or a plain callable.
"""

from __future__ import annotations

import importlib
import inspect
import logging
import weakref
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence, Type, Union

from .exceptions import (
    FormatterNotFoundError,
    InvalidKeyPathError,
    KeyPathError,
    KeyPathNotFoundError,
    KeyPathSyntaxError,
    UnknownKeyError,
)
from .keypath import KeyPath, is_hidden_from_bindings, parse_key_path
from .kinds import NO_VALUE, QUALIFIED_NAME_SEPARATOR
from .scope import ScopeRef

logger = logging.getLogger(__name__)


# Key paths

class KeyPathEvaluator:
    """
    A key path bound to the scope which answered it.

    Evaluating it again does not walk the scope chain: the target is fixed
    until the binding is resolved again.
    """

    def __init__(self, key_path: KeyPath, target: Any):
        self.key_path = key_path
        self._target = ScopeRef(target)

    @property
    def target(self) -> Any:
        return self._target()

    def _live_target(self) -> Any:
        target = self._target()
        if target is None:
            raise KeyPathError(self.key_path.text, "bound object is no longer available")
        return target

    def evaluate(self) -> Any:
        """Evaluate the key path against the target scope."""
        return self.key_path.evaluate(self._live_target())

    def owner(self) -> Any:
        """Object holding the last key of the path."""
        return self.key_path.owner(self._live_target())

    def assign(self, value: Any) -> None:
        """Write a value back through the key path."""
        self.key_path.assign(self._live_target(), value)

    def __repr__(self) -> str:
        return f"KeyPathEvaluator({self.key_path.text!r}, target={self._target()!r})"


@dataclass
class KeyPathResolution:
    """
    Outcome of a key path lookup.

    Attributes:
        evaluator: The key path bound to the scope which answered
        value: The value read (NO_VALUE if evaluation failed)
        error: The evaluation error, if the answering scope failed
    """
    evaluator: KeyPathEvaluator
    value: Any = field(default=NO_VALUE, repr=False)
    error: Optional[KeyPathError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class KeyPathResolver:
    """Resolves key paths against a scope chain."""

    def resolve(self, chain: Sequence[Any], key_path: Union[str, KeyPath]) -> KeyPathResolution:
        """
        Find the first scope of the chain knowing key_path.

        Args:
            chain: Candidate scopes, most specific first
            key_path: The key path (string or parsed)

        Returns:
            A KeyPathResolution bound to the answering scope

        Raises:
            InvalidKeyPathError: If key_path cannot be parsed
            KeyPathNotFoundError: If no scope knows the key path
        """
        if isinstance(key_path, KeyPath):
            parsed = key_path
        else:
            try:
                parsed = parse_key_path(key_path)
            except KeyPathSyntaxError as e:
                raise InvalidKeyPathError(str(key_path), e) from e

        for scope in chain:
            try:
                value = parsed.evaluate(scope)
            except UnknownKeyError:
                continue
            except KeyPathError as e:
                return KeyPathResolution(KeyPathEvaluator(parsed, scope), error=e)
            return KeyPathResolution(KeyPathEvaluator(parsed, scope), value=value)

        raise KeyPathNotFoundError(parsed.text)


# Formatters

class FormatterHandle:
    """Normalized conversion from a raw value to a display value."""

    def __init__(self, name: str):
        self.name = name

    def apply(self, value: Any) -> Any:
        raise NotImplementedError

    @property
    def can_parse(self) -> bool:
        return False

    def parse(self, value: Any) -> Any:
        """Convert a displayed value back into a model value."""
        raise NotImplementedError(f"Formatter '{self.name}' cannot parse values")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class FunctionFormatter(FormatterHandle):
    """A routine converting the value directly."""

    def __init__(self, name: str, func: Callable[[Any], Any]):
        super().__init__(name)
        # Methods of views are held weakly so a cached binding does not keep
        # its view tree alive.
        try:
            self._func = weakref.WeakMethod(func)
        except TypeError:
            # Not a method, or its owner does not support weak references
            self._func = lambda: func

    @property
    def func(self) -> Optional[Callable[[Any], Any]]:
        return self._func()

    def apply(self, value: Any) -> Any:
        func = self._func()
        if func is None:
            raise ReferenceError(f"owner of formatter '{self.name}' is no longer available")
        return func(value)


class ConverterFormatter(FormatterHandle):
    """A reusable converter object returned by a formatter factory."""

    def __init__(self, name: str, converter: Any):
        super().__init__(name)
        if callable(getattr(converter, 'format', None)):
            self._format = converter.format
        elif callable(converter):
            self._format = converter
        else:
            raise TypeError(
                f"{type(converter).__name__} is neither callable nor has a format() method"
            )
        self.converter = converter

    def apply(self, value: Any) -> Any:
        return self._format(value)

    @property
    def can_parse(self) -> bool:
        return callable(getattr(self.converter, 'parse', None))

    def parse(self, value: Any) -> Any:
        if not self.can_parse:
            return super().parse(value)
        return self.converter.parse(value)


def _takes_no_arguments(routine: Callable) -> bool:
    """True if routine can only be called without positional arguments."""
    try:
        sig = inspect.signature(routine)
    except (ValueError, TypeError):
        return False
    positional = (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
        inspect.Parameter.VAR_POSITIONAL,
    )
    return not any(p.kind in positional for p in sig.parameters.values())


def make_formatter_handle(name: str, routine: Callable) -> FormatterHandle:
    """Normalize a formatter routine (direct or factory) into a handle."""
    if not _takes_no_arguments(routine):
        return FunctionFormatter(name, routine)

    try:
        converter = routine()
    except Exception as e:
        raise FormatterNotFoundError(name, f"Formatter factory '{name}' raised {e!r}") from e
    try:
        return ConverterFormatter(name, converter)
    except TypeError as e:
        raise FormatterNotFoundError(name, f"Formatter factory '{name}' returned {e}") from e


def instance_routine(scope: Any, name: str) -> Optional[Callable]:
    """Instance-level routine: callable instance attribute or plain method."""
    instance_dict = getattr(scope, '__dict__', None)
    if isinstance(instance_dict, dict):
        value = instance_dict.get(name)
        if callable(value):
            return value

    attr = inspect.getattr_static(type(scope), name, None)
    if inspect.isfunction(attr) and not is_hidden_from_bindings(attr):
        return getattr(scope, name)
    return None


def type_routine(scope: Any, name: str) -> Optional[Callable]:
    """Class-level routine: classmethod or staticmethod of the scope's type."""
    owner = type(scope)
    attr = inspect.getattr_static(owner, name, None)
    if isinstance(attr, (classmethod, staticmethod)) and not is_hidden_from_bindings(attr.__func__):
        return getattr(owner, name)
    return None


class FormatterRegistry(dict):
    """
    Registry of types usable in qualified formatter names.

    Allows lookups like:
        registry.register(Currency)
        'Currency.euros'  ->  Currency.euros

    Types not registered can still be named with their full dotted path,
    e.g. 'myapp.formatting.Currency.euros'.
    """

    def register(self, cls: Type, name: Optional[str] = None) -> Type:
        """Register a type (usable as a class decorator)."""
        self[name or cls.__name__] = cls
        return cls

    def lookup(self, type_name: str) -> Optional[Type]:
        """Return the type named type_name, or None."""
        if type_name in self:
            return self[type_name]

        module_name, _, attr = type_name.rpartition('.')
        if not module_name:
            return None
        try:
            module = importlib.import_module(module_name)
        except ImportError:
            return None
        owner = getattr(module, attr, None)
        return owner if isinstance(owner, type) else None


class FormatterResolver:
    """Resolves formatter names against the bound object and a scope chain."""

    def __init__(self, registry: Optional[FormatterRegistry] = None):
        self.registry = registry if registry is not None else FormatterRegistry()

    def resolve(
        self,
        chain: Sequence[Any],
        bound_object: Any,
        name: Optional[str],
    ) -> Optional[FormatterHandle]:
        """
        Resolve a formatter name.

        Args:
            chain: Candidate scopes, most specific first
            bound_object: The bound object (or None)
            name: The formatter name, bare or qualified (None/'' for none)

        Returns:
            A FormatterHandle, or None if no formatter is requested

        Raises:
            FormatterNotFoundError: If nothing matches the name
        """
        if not name:
            return None
        if QUALIFIED_NAME_SEPARATOR in name:
            return self.resolve_qualified(name)
        if not name.isidentifier():
            raise FormatterNotFoundError(name, f"Invalid formatter name '{name}'")

        candidates = [bound_object] if bound_object is not None else []
        candidates.extend(scope for scope in chain if scope is not bound_object)

        for scope in candidates:
            routine = instance_routine(scope, name)
            if routine is None:
                routine = type_routine(scope, name)
            if routine is not None:
                logger.debug("Formatter '%s' resolved on %r", name, scope)
                return make_formatter_handle(name, routine)

        raise FormatterNotFoundError(name)

    def resolve_qualified(self, name: str) -> FormatterHandle:
        """Resolve a 'Type.method' formatter name, ignoring any scope."""
        type_name, _, method = name.rpartition(QUALIFIED_NAME_SEPARATOR)
        if not type_name or not method.isidentifier():
            raise FormatterNotFoundError(name, f"Invalid formatter name '{name}'")

        owner = self.registry.lookup(type_name)
        if owner is None:
            raise FormatterNotFoundError(name, f"Unknown formatter type '{type_name}'")

        attr = inspect.getattr_static(owner, method, None)
        if not isinstance(attr, (classmethod, staticmethod)):
            raise FormatterNotFoundError(
                name, f"'{type_name}' has no class-level formatter '{method}'"
            )
        return make_formatter_handle(name, getattr(owner, method))
