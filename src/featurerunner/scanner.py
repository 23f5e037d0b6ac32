"""
Annotation index over classes and test functions.

Collects the annotations declared with featurerunner.declarations, walking the
MRO for classes so base-class declarations are inherited. Results are memoised
per target identity for the lifetime of the scanner.
"""

from typing import Any, TypeVar

from featurerunner.declarations import own_annotations
from featurerunner.utils.logging import get_logger

log = get_logger(__name__)

A = TypeVar("A")


class AnnotationScanner:
    """
    Memoised lookup of declared annotations.

    An instance is owned by one FeaturesRunner; there is no process-wide cache.
    """

    def __init__(self) -> None:
        self._cache: dict[Any, tuple[Any, ...]] = {}

    def scan(self, target: Any) -> tuple[Any, ...]:
        """
        Return every annotation declared on target.

        For classes, the target's own annotations come first, followed by those
        of its bases in MRO order. Bound methods are scanned as their function.
        """
        target = getattr(target, "__func__", target)
        try:
            return self._cache[target]
        except KeyError:
            pass
        annotations = self._collect(target)
        self._cache[target] = annotations
        log.debug(
            "Scanned annotations",
            target=getattr(target, "__qualname__", repr(target)),
            count=len(annotations),
        )
        return annotations

    def _collect(self, target: Any) -> tuple[Any, ...]:
        if isinstance(target, type):
            collected: list[Any] = []
            for klass in target.__mro__:
                collected.extend(own_annotations(klass))
            return tuple(collected)
        return own_annotations(target)

    def get_annotations(self, target: Any, kind: type[A]) -> list[A]:
        """All annotations of the given kind, in scan order."""
        return [a for a in self.scan(target) if isinstance(a, kind)]

    def get_annotation(self, target: Any, kind: type[A]) -> A | None:
        """The first annotation of the given kind, or None."""
        for annotation in self.scan(target):
            if isinstance(annotation, kind):
                return annotation
        return None

    def is_scanned(self, target: Any) -> bool:
        """Whether target is already in the memo."""
        return target in self._cache

    def clear(self) -> None:
        """Drop the memo."""
        self._cache.clear()
