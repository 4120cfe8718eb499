# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import inspect
import sys

from typing import (
    Any,
    Dict,
    Generic,
    Type,
    TypeVar,
    Union,
    cast,
    get_type_hints,
)


T = TypeVar("T")


class Token(Generic[T]):
    """Registry key for a service, either a name or a class."""

    def __init__(self, key: Union[str, Type[Any]]):
        self.key = key
        self.name = key if isinstance(key, str) else key.__name__

    def __repr__(self):
        return f"Token({self.name!r})"

    def __hash__(self):
        return hash(("__token__", self.key))

    def __eq__(self, other):
        return isinstance(other, Token) and other.key == self.key


ServiceKey = Union[Type[Any], Token[Any], str]


_services: Dict[Token[Any], Any] = {}
_instances: Dict[Token[Any], Any] = {}


def register_service(
    instance: Union[T, Type[T]],
    key: Union[Type[T], Token[T], str, None] = None,
    force: bool = False,
) -> None:
    """
    Register a service in the registry.

    A class is instantiated lazily on first lookup, an object is returned as-is.
    An object registered under another key is also registered under its own type.
    Existing registrations are kept unless ``force`` is set.
    """
    if inspect.isclass(instance):
        _store(_token(instance if key is None else key), instance, force)
        return

    _store(_token(type(instance) if key is None else key), instance, force)

    if key is not None and _token(key) != _token(type(instance)):
        _store(_token(type(instance)), instance, force)


def unregister_service(key: ServiceKey) -> None:
    """Remove a service and its cached instance."""
    token = _token(key)
    _services.pop(token, None)
    _instances.pop(token, None)


def has_service(key: ServiceKey) -> bool:
    return _token(key) in _services


def get_service(key: Union[Type[T], Token[T], str]) -> T:
    """
    Get a service instance.

    Unregistered classes are registered on the fly, so any class with resolvable
    constructor arguments can be used as a singleton service.
    """
    token = _token(key)

    if token not in _services:
        if not isinstance(key, type):
            raise LookupError(f"Service {token.name} is not registered")

        register_service(key)

    if token in _instances:
        return cast(T, _instances[token])

    value = _services[token]

    if not isinstance(value, type):
        return cast(T, value)

    instance = value(**_resolve_dependencies(value))
    _instances[token] = instance

    return cast(T, instance)


def reset_services() -> None:
    """Forget every registered service (used between tests)."""
    _services.clear()
    _instances.clear()


def _token(key: ServiceKey) -> Token[Any]:
    if isinstance(key, Token):
        return key

    return Token(key)


def _store(token: Token[Any], value: Any, force: bool) -> None:
    if force or token not in _services:
        _services[token] = value
        _instances.pop(token, None)


def _resolve_dependencies(service_class: Type[Any]) -> Dict[str, Any]:
    """Build constructor kwargs from the annotations of ``__init__``."""
    signature = inspect.signature(service_class.__init__)
    module = sys.modules.get(service_class.__module__)

    try:
        hints = get_type_hints(
            service_class.__init__, globalns=getattr(module, "__dict__", {})
        )
    except Exception:
        hints = {}

    kwargs = {}

    for name, param in signature.parameters.items():
        if name == "self" or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue

        annotation = hints.get(name, param.annotation)

        if (
            annotation is param.empty
            or not isinstance(annotation, type)
            or annotation in (str, int, float, bool)
        ):
            continue

        if not has_service(annotation) and param.default is not param.empty:
            continue

        try:
            kwargs[name] = get_service(annotation)
        except (LookupError, TypeError):
            if param.default is param.empty:
                raise

    return kwargs


__all__ = [
    "Token",
    "ServiceKey",
    "register_service",
    "unregister_service",
    "has_service",
    "get_service",
    "reset_services",
]
