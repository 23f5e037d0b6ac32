"""
Declarative metadata attached to test classes, features and test methods.

Decorators store annotation objects on the decorated target; the
AnnotationScanner reads them back (including those inherited from base
classes).

Example:
    @requires(TransactionalFeature)
    @annotate(RepositoryConfig(name="test"))
    class TestDocuments:
        ...
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

T = TypeVar("T")

# Attribute under which annotations are stored on the decorated object
ANNOTATIONS_ATTR = "__featurerunner_annotations__"


@dataclass(frozen=True)
class Requires:
    """Declares the features a test class or a feature depends on."""

    value: tuple[type, ...]


def annotate(*annotations: Any) -> Callable[[T], T]:
    """
    Attach annotation objects to a class or function.

    Stacked decorators keep source order: the topmost decorator's annotations
    come first.

    Args:
        *annotations: Annotation objects (config models, Requires, ...).

    Returns:
        Decorator returning the target unchanged.
    """

    def decorator(target: T) -> T:
        # Only look at the target's own namespace, never an inherited list
        own = vars(target).get(ANNOTATIONS_ATTR)
        if own is None:
            own = []
            setattr(target, ANNOTATIONS_ATTR, own)
        own[0:0] = annotations
        return target

    return decorator


def requires(*features: type) -> Callable[[T], T]:
    """Declare required features. Repeatable."""
    return annotate(Requires(tuple(features)))


def own_annotations(target: Any) -> tuple[Any, ...]:
    """Annotations declared directly on target (not inherited)."""
    try:
        namespace = vars(target)
    except TypeError:
        return ()
    return tuple(namespace.get(ANNOTATIONS_ATTR, ()))
