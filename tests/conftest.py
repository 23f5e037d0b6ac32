"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest
import structlog

from featurerunner.notifier import RunNotifier
from featurerunner.scanner import AnnotationScanner


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging configuration done by CLI runs."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def scanner() -> AnnotationScanner:
    """Fresh annotation index."""
    return AnnotationScanner()


@pytest.fixture
def notifier() -> RunNotifier:
    """Fresh run notifier."""
    return RunNotifier()


@pytest.fixture
def write_file(tmp_path: Path):
    """Write a text file under tmp_path and return its path."""

    def write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return write
