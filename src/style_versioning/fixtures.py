"""
Fixture harness.

A fixture is a manifest whose first line states the diagnostic the build is
expected to stop with, for example::

    # expected: Module "grid" requires "core" v3.0.0. But "core" v2.0.0 included.

or ``# expected: no error``. Each fixture runs against its own registry and
passes when the first line of the produced diagnostic matches exactly.
"""

import glob
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from .cli_config import get_config
from .error_handling import StyleVersioningError
from .manifests import apply_manifest, load_manifest
from .registry import registry_scope
from .structured_logging import (
    clear_build_context,
    log_fixture_result,
    set_build_context,
)


@dataclass(frozen=True)
class FixtureResult:
    """Outcome of running one fixture."""

    path: str
    expected: Optional[str]
    actual: str
    passed: bool


@dataclass
class FixtureSuiteResult:
    """Outcome of running a set of fixtures."""

    results: List[FixtureResult] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def passed(self) -> List[FixtureResult]:
        return [result for result in self.results if result.passed]

    @property
    def failed(self) -> List[FixtureResult]:
        return [result for result in self.results if not result.passed]

    @property
    def success(self) -> bool:
        return not self.failed


def first_line(message: str) -> str:
    return message.split("\n")[0]


def discover_fixtures(pattern: Optional[str] = None) -> List[str]:
    """Return fixture paths matching a glob pattern, sorted."""
    if pattern is None:
        pattern = get_config().fixtures.pattern
    return sorted(glob.glob(pattern))


def run_fixture(path: str) -> FixtureResult:
    """
    Run one fixture against a fresh registry.

    A fixture without an expectation line always fails; its actual outcome
    is still reported.
    """
    no_error = get_config().fixtures.no_error_marker
    set_build_context(build_id=Path(path).stem, source=str(path))

    expected = None
    try:
        with registry_scope() as registry:
            manifest = load_manifest(path)
            expected = manifest.expected
            apply_manifest(registry, manifest)
            registry.check()
        actual = no_error
    except (StyleVersioningError, ValueError) as e:
        actual = first_line(str(e))
    finally:
        clear_build_context()

    passed = expected is not None and expected == actual
    log_fixture_result(str(path), passed)
    return FixtureResult(path=str(path), expected=expected, actual=actual, passed=passed)


def run_fixtures(paths: Iterable[str]) -> FixtureSuiteResult:
    """Run every fixture and collect the results in order."""
    start_time = time.time()
    results = [run_fixture(path) for path in paths]
    duration_ms = int((time.time() - start_time) * 1000)
    return FixtureSuiteResult(results=results, duration_ms=duration_ms)
