"""What is being run: a test class, or one method of it."""

from collections.abc import Callable
from dataclasses import dataclass

# A unit of deferred execution; rules and lifecycle steps wrap statements.
Statement = Callable[[], None]


@dataclass(frozen=True)
class Description:
    """Identifies a class run or a single test method run."""

    test_class: type
    method_name: str | None = None

    @property
    def is_suite(self) -> bool:
        """Whether this describes the whole class run."""
        return self.method_name is None

    @property
    def display_name(self) -> str:
        """Human-readable name, e.g. ``TestDocs.test_create``."""
        if self.method_name is None:
            return self.test_class.__qualname__
        return f"{self.test_class.__qualname__}.{self.method_name}"

    def child(self, method_name: str) -> "Description":
        """Description of one method of this class."""
        return Description(test_class=self.test_class, method_name=method_name)
