"""
Rule declaration and collection.

A rule wraps the execution of a test method (``rule``) or of a whole class run
(``class_rule``). Features and test classes supply rules either as marked
attributes or as marked zero-argument methods:

    class TimingFeature(RunnerFeature):
        timeout = rule(TimeoutRule(seconds=5))

        @class_rule
        def server(self) -> Rule:
            return ServerRule()

Collected rules are ordered features first (in dependency order), then the
test class itself. Earlier rules wrap later ones.
"""

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from featurerunner.exceptions import RuleProductionError
from featurerunner.graph import FeatureGraph
from featurerunner.registry import FeatureRegistry
from featurerunner.utils.logging import get_logger

if TYPE_CHECKING:
    from featurerunner.description import Description, Statement
    from featurerunner.injection import Scope

log = get_logger(__name__)

RULE_ATTR = "__featurerunner_rule__"


@runtime_checkable
class Rule(Protocol):
    """Wraps a statement with extra behavior."""

    def apply(self, base: "Statement", description: "Description") -> "Statement":
        """Return a statement running base with this rule's behavior."""
        ...


class RuleKind(Enum):
    """Whether a rule wraps one test method or the whole class run."""

    CLASS = "class_rule"
    METHOD = "rule"


class RuleField:
    """Class attribute holding a rule value."""

    def __init__(self, value: Any, kind: RuleKind) -> None:
        self.value = value
        self.kind = kind

    def __get__(self, instance: object, owner: type) -> Any:
        return self.value


def _marker(kind: RuleKind) -> Callable[[Any], Any]:
    def mark(value: Any) -> Any:
        if isinstance(value, (classmethod, staticmethod)):
            setattr(value.__func__, RULE_ATTR, kind)
            return value
        if inspect.isfunction(value):
            setattr(value, RULE_ATTR, kind)
            return value
        return RuleField(value, kind)

    mark.__name__ = kind.value
    mark.__doc__ = f"Mark a method or attribute value as a {kind.value}."
    return mark


rule = _marker(RuleKind.METHOD)
class_rule = _marker(RuleKind.CLASS)


@dataclass(frozen=True)
class RuleEntry:
    """A rule together with where it came from."""

    rule: Any
    source: type
    member: str
    from_method: bool


def rule_members(cls: type, kind: RuleKind) -> tuple[list[str], list[str]]:
    """
    Names of the rule fields and rule methods of cls.

    Base class members come first; a subclass redefining a name without the
    marker removes it.

    Returns:
        Tuple of (field names, method names) in declaration order.
    """
    members: dict[str, bool] = {}
    for klass in reversed(cls.__mro__):
        for name, value in vars(klass).items():
            func = value.__func__ if isinstance(value, (classmethod, staticmethod)) else value
            if isinstance(value, RuleField) and value.kind is kind:
                members[name] = False
            elif inspect.isfunction(func) and getattr(func, RULE_ATTR, None) is kind:
                members[name] = True
            elif name in members:
                del members[name]
    fields = [name for name, is_method in members.items() if not is_method]
    methods = [name for name, is_method in members.items() if is_method]
    return fields, methods


class RuleCollector:
    """
    Gathers the rules contributed by the resolved features and the test class.

    Rule values produced by methods get their members injected from the
    current scope.
    """

    def __init__(
        self,
        test_class: type,
        graph: FeatureGraph,
        registry: FeatureRegistry,
        scope: "Callable[[], Scope | None]",
    ) -> None:
        """
        Initialize rule collector.

        Args:
            test_class: Class under run.
            graph: Resolved features, in dependency order.
            registry: Live feature instances.
            scope: Returns the scope used to inject produced rules.
        """
        self.test_class = test_class
        self.graph = graph
        self.registry = registry
        self._scope = scope

    def collect_class_level(self) -> list[RuleEntry]:
        """Class rules: features in dependency order, then the test class."""
        entries: list[RuleEntry] = []
        for identity in self.graph:
            instance = self.registry.lookup(identity)
            target = instance if instance is not None else identity
            entries.extend(self._collect(identity, target, RuleKind.CLASS))
        entries.extend(self._collect(self.test_class, self.test_class, RuleKind.CLASS))
        log.debug("Collected class rules", count=len(entries))
        return entries

    def collect_method_level(self, test: object) -> list[RuleEntry]:
        """Method rules: features in dependency order, then the test instance."""
        entries: list[RuleEntry] = []
        for identity in self.graph:
            instance = self.registry.lookup(identity)
            target = instance if instance is not None else identity
            entries.extend(self._collect(identity, target, RuleKind.METHOD))
        entries.extend(self._collect(self.test_class, test, RuleKind.METHOD))
        log.debug("Collected method rules", count=len(entries))
        return entries

    def _collect(self, owner: type, target: Any, kind: RuleKind) -> list[RuleEntry]:
        fields, methods = rule_members(owner, kind)
        entries: list[RuleEntry] = []

        for name in fields:
            value = getattr(target, name)
            if not isinstance(value, Rule):
                raise RuleProductionError(f"{owner.__qualname__}.{name}") from TypeError(
                    f"{type(value).__qualname__} has no apply(base, description)"
                )
            entries.append(RuleEntry(rule=value, source=owner, member=name, from_method=False))

        for name in methods:
            entries.append(
                RuleEntry(
                    rule=self._produce(owner, target, name),
                    source=owner,
                    member=name,
                    from_method=True,
                )
            )
        return entries

    def _produce(self, owner: type, target: Any, name: str) -> Any:
        member = f"{owner.__qualname__}.{name}"
        try:
            value = getattr(target, name)()
            if not isinstance(value, Rule):
                msg = f"{member} returned {type(value).__qualname__}, not a rule"
                raise TypeError(msg)
            scope = self._scope()
            if scope is not None:
                scope.inject_members(value)
        except Exception as e:
            log.error("Rule production failed", member=member, error=f"{type(e).__name__}: {e!s}")
            raise RuleProductionError(member) from e
        return value
