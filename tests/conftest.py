"""
Shared fixtures for style-versioning tests.
"""

import os
import tempfile
from pathlib import Path

import pytest

from style_versioning.cli_config import reset_config
from style_versioning.error_handling import setup_error_handling

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Run every test with default configuration and quiet logging."""
    for key in list(os.environ):
        if key.startswith("STYLE_VERSIONING_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("STYLE_VERSIONING_LOG_LEVEL", "CRITICAL")
    reset_config()
    setup_error_handling()
    yield
    reset_config()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def fixtures_dir():
    """Directory holding the sample fixture manifests."""
    return FIXTURES_DIR


@pytest.fixture
def write_manifest(temp_dir):
    """Write manifest text to a file in the temporary directory."""

    def _write(name: str, content: str) -> Path:
        path = temp_dir / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def satisfied_yaml(write_manifest):
    """A manifest whose only dependency is satisfied."""
    return write_manifest(
        "satisfied.yaml",
        """modules:
  - name: core
    version: 2.0.0
  - name: grid
    version: 1.1.0
    dependencies:
      core: 2.0.0
""",
    )


@pytest.fixture
def mismatch_yaml(write_manifest):
    """A manifest requiring a newer major than the one declared."""
    return write_manifest(
        "mismatch.yaml",
        """modules:
  - name: core
    version: 2.0.0
  - name: grid
    version: 1.1.0
    dependencies:
      core: 3.0.0
""",
    )


@pytest.fixture
def missing_yaml(write_manifest):
    """A manifest requiring a module that is never declared."""
    return write_manifest(
        "missing.yaml",
        """modules:
  - name: grid
    version: 1.1.0
    dependencies:
      buttons: 1.0.0
""",
    )
