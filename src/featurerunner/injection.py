"""
Layered injection scopes.

A root scope holds the run-context singletons of a class run. Features
contribute bindings to a child scope through a Binder; lookups that miss in a
child fall back to its parent, never the other way round.

Members are injected into objects whose classes declare ``inject()``
attributes:

    class MyFeature(RunnerFeature):
        runner: FeaturesRunner = inject()
        store: DocumentStore = inject(optional=True)
"""

import typing
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from featurerunner.exceptions import InjectionError
from featurerunner.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

_MISSING = object()


@dataclass(frozen=True)
class _Provider:
    """Binding resolved by calling a factory on every lookup."""

    factory: Callable[[], Any]


class Binder:
    """
    Collects bindings for a scope.

    Later bindings for the same key replace earlier ones.
    """

    def __init__(self) -> None:
        self._bindings: dict[Any, Any] = {}

    def bind(self, key: Any, instance: Any) -> None:
        """Bind key to a fixed instance."""
        if key in self._bindings:
            log.debug("Overriding binding", key=_key_name(key))
        self._bindings[key] = instance

    def bind_provider(self, key: Any, provider: Callable[[], Any]) -> None:
        """Bind key to a factory called on every lookup."""
        self.bind(key, _Provider(provider))

    @property
    def bindings(self) -> dict[Any, Any]:
        """Snapshot of the collected bindings."""
        return dict(self._bindings)


class Scope:
    """A layer of bindings with an optional parent."""

    def __init__(
        self,
        bindings: Mapping[Any, Any],
        parent: "Scope | None" = None,
        name: str = "root",
    ) -> None:
        self._bindings = dict(bindings)
        self.parent = parent
        self.name = name

    def _lookup(self, key: Any) -> Any:
        scope: Scope | None = self
        while scope is not None:
            if key in scope._bindings:
                value = scope._bindings[key]
                if isinstance(value, _Provider):
                    return value.factory()
                return value
            scope = scope.parent
        return _MISSING

    def get(self, key: Any) -> Any:
        """
        Resolve key in this scope or its ancestors.

        Raises:
            InjectionError: If no scope in the chain binds key.
        """
        value = self._lookup(key)
        if value is _MISSING:
            raise InjectionError(key)
        return value

    def find(self, key: Any, default: Any = None) -> Any:
        """Resolve key, returning default when unbound."""
        value = self._lookup(key)
        return default if value is _MISSING else value

    def __contains__(self, key: object) -> bool:
        return self._lookup(key) is not _MISSING

    def keys(self) -> Iterator[Any]:
        """Keys bound in this scope only."""
        return iter(self._bindings)

    def create_child(
        self, configure: Callable[[Binder], None], name: str = "features"
    ) -> "Scope":
        """
        Build a child scope.

        Args:
            configure: Called once with a fresh Binder.
            name: Scope name used in logs.

        Returns:
            The child scope, whose parent is this scope.
        """
        binder = Binder()
        configure(binder)
        child = Scope(binder.bindings, parent=self, name=name)
        log.debug("Created scope", scope=name, parent=self.name, bindings=len(child._bindings))
        return child

    def inject_members(self, target: T) -> T:
        """
        Set every inject() attribute declared by target's class hierarchy.

        Returns:
            The target, for chaining.

        Raises:
            InjectionError: If a required binding is missing.
        """
        for name, point in injection_points(type(target)).items():
            key = point.resolve_key()
            value = self._lookup(key)
            if value is _MISSING:
                if not point.optional:
                    msg = (
                        f"Cannot inject {type(target).__qualname__}.{name}: "
                        f"no binding for {_key_name(key)}"
                    )
                    raise InjectionError(key, msg)
                value = None
            setattr(target, name, value)
        return target

    def __repr__(self) -> str:
        return f"Scope(name={self.name!r}, parent={self.parent.name if self.parent else None!r})"


class InjectionPoint:
    """
    Marks a class attribute to be set by Scope.inject_members.

    Until injected, reading the attribute raises AttributeError.
    """

    def __init__(self, key: Any = None, optional: bool = False) -> None:
        self.key = key
        self.optional = optional
        self.owner: type | None = None
        self.name: str | None = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.owner = owner
        self.name = name

    def __get__(self, instance: object, owner: type) -> Any:
        if instance is None:
            return self
        msg = f"{owner.__qualname__}.{self.name} has not been injected"
        raise AttributeError(msg)

    def resolve_key(self) -> Any:
        """Explicit key, or the attribute's type annotation."""
        if self.key is not None:
            return self.key
        if self.owner is None or self.name is None:
            msg = "inject() used outside of a class body"
            raise InjectionError(None, msg)
        where = f"{self.owner.__qualname__}.{self.name}"
        try:
            hints = typing.get_type_hints(self.owner)
        except NameError as e:
            raise InjectionError(None, f"Cannot evaluate annotation of {where}: {e}") from e
        try:
            hint = hints[self.name]
        except KeyError:
            raise InjectionError(None, f"{where} needs a key or a type annotation") from None
        # X | None resolves to X
        args = typing.get_args(hint)
        if type(None) in args:
            others = [a for a in args if a is not type(None)]
            if len(others) == 1:
                return others[0]
        return hint


def inject(key: Any = None, *, optional: bool = False) -> Any:
    """
    Declare an injected attribute.

    Args:
        key: Binding key; defaults to the attribute's annotation.
        optional: Set None instead of failing when unbound.
    """
    return InjectionPoint(key, optional=optional)


def injection_points(cls: type) -> dict[str, InjectionPoint]:
    """inject() attributes of cls and its bases; subclasses override bases."""
    points: dict[str, InjectionPoint] = {}
    for klass in reversed(cls.__mro__):
        for name, value in vars(klass).items():
            if isinstance(value, InjectionPoint):
                points[name] = value
            elif name in points:
                # plain attribute in a subclass hides the base declaration
                del points[name]
    return points


def create_root(bindings: Mapping[Any, Any], name: str = "root") -> Scope:
    """Create a root scope from fixed singletons."""
    scope = Scope(bindings, name=name)
    log.debug("Created scope", scope=name, bindings=len(bindings))
    return scope


def _key_name(key: Any) -> str:
    return key.__qualname__ if isinstance(key, type) else repr(key)
