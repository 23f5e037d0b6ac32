"""
Feature dependency graph resolution.

Computes the ordered list of features a test class needs by following
``requires`` declarations depth-first. Dependencies always precede the
features that require them, declaration order is kept among siblings, and a
feature that is reached again while it is still being resolved is a cycle.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

from featurerunner.declarations import Requires
from featurerunner.exceptions import CycleDetectedError, FeatureDeclarationError
from featurerunner.feature import RunnerFeature
from featurerunner.scanner import AnnotationScanner
from featurerunner.utils.logging import get_logger

log = get_logger(__name__)


class ResolutionStatus(Enum):
    """Progress of a feature through graph resolution."""

    UNVISITED = "unvisited"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"


@dataclass
class FeatureDescriptor:
    """A feature identity with its declared requirements."""

    identity: type[RunnerFeature]
    requires: tuple[type[RunnerFeature], ...]
    status: ResolutionStatus = ResolutionStatus.UNVISITED


@dataclass(frozen=True)
class FeatureGraph:
    """Dependency-ordered, de-duplicated features for one root class."""

    root: type
    order: tuple[type[RunnerFeature], ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[type[RunnerFeature]]:
        return iter(self.order)

    def __len__(self) -> int:
        return len(self.order)

    def __contains__(self, identity: object) -> bool:
        return identity in self.order

    def reversed(self) -> tuple[type[RunnerFeature], ...]:
        """Features in reverse dependency order."""
        return tuple(reversed(self.order))


class FeatureGraphResolver:
    """
    Resolves the features required by a root class.

    Requirements are read through the scanner, which memoises per type, so a
    feature reached from several paths is scanned once.
    """

    def __init__(self, scanner: AnnotationScanner | None = None) -> None:
        """
        Initialize resolver.

        Args:
            scanner: Annotation index to read declarations from.
        """
        self.scanner = scanner or AnnotationScanner()

    def requirements_of(self, target: type) -> tuple[type[RunnerFeature], ...]:
        """
        Declared requirements of a class, in declaration order.

        Raises:
            FeatureDeclarationError: If a requirement is not a RunnerFeature type.
        """
        required: list[type[RunnerFeature]] = []
        for declaration in self.scanner.get_annotations(target, Requires):
            for identity in declaration.value:
                if not (isinstance(identity, type) and issubclass(identity, RunnerFeature)):
                    msg = (
                        f"{target.__qualname__} requires {identity!r}, "
                        "which is not a RunnerFeature subclass"
                    )
                    raise FeatureDeclarationError(msg)
                required.append(identity)
        return tuple(required)

    def resolve(self, root: type) -> FeatureGraph:
        """
        Resolve the ordered feature list for root.

        Args:
            root: Test class (or any class carrying requires declarations).

        Returns:
            FeatureGraph with dependencies before dependents.

        Raises:
            CycleDetectedError: If a feature requires itself transitively.
        """
        descriptors: dict[type, FeatureDescriptor] = {}
        order: list[type[RunnerFeature]] = []
        path: list[type[RunnerFeature]] = []

        def descriptor(identity: type[RunnerFeature]) -> FeatureDescriptor:
            if identity not in descriptors:
                descriptors[identity] = FeatureDescriptor(
                    identity=identity, requires=self.requirements_of(identity)
                )
            return descriptors[identity]

        def visit(identity: type[RunnerFeature]) -> None:
            node = descriptor(identity)
            if node.status is ResolutionStatus.RESOLVED:
                return
            if node.status is ResolutionStatus.IN_PROGRESS:
                raise CycleDetectedError(identity, tuple(path))
            node.status = ResolutionStatus.IN_PROGRESS
            path.append(identity)
            for required in node.requires:
                visit(required)
            path.pop()
            node.status = ResolutionStatus.RESOLVED
            # added last so requirements come first
            order.append(identity)

        for identity in self.requirements_of(root):
            visit(identity)

        graph = FeatureGraph(root=root, order=tuple(order))
        log.debug(
            "Resolved feature graph",
            root=root.__qualname__,
            features=[f.__qualname__ for f in graph],
        )
        return graph
