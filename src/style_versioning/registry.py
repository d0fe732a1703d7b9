"""
Module registry and dependency conflict checker.

Modules register a name, a version and the versions of the modules they
require. Once every module of a build is registered, a single check pass
walks every dependency edge in declaration order and stops at the first
missing or incompatible dependency.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    ClassVar,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from . import semver
from .cli_config import get_config
from .dependency import DependencyRef, ModuleDeclaration
from .error_handling import (
    DependencyConflictError,
    ErrorCategory,
    RegistrationError,
    get_error_handler,
)
from .structured_logging import (
    log_check_passed,
    log_check_started,
    log_dependency_conflict,
    log_dependency_edges_removed,
    log_module_registered,
)

DependencySpec = Union[Mapping[str, str], Sequence[Tuple[str, str]]]

_ORDINALS = {1: "first", 2: "second", 3: "third"}


def type_name(value: Any) -> str:
    """Name a value's type the way stylesheet diagnostics do."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "map"
    if isinstance(value, (list, tuple)):
        return "list"
    return type(value).__name__


def _attribute_error(position: int, expected: str, value: Any) -> RegistrationError:
    return RegistrationError(
        f"The {_ORDINALS[position]} attribute of register() needs to be a "
        f"{expected}. It's currently a {type_name(value)}"
    )


def _version_error(version: str) -> RegistrationError:
    return RegistrationError(f"The version '{version}' is not a valid semver version.")


class ConflictKind(Enum):
    """Kinds of dependency conflict found by the check pass."""

    MISSING = "missing"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class Conflict(ABC):
    """A dependency edge that the registry cannot satisfy."""

    kind: ClassVar[ConflictKind]

    module: str
    dependency: str
    required_version: str

    @property
    @abstractmethod
    def message(self) -> str:
        """The diagnostic text reported for this conflict."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "module": self.module,
            "dependency": self.dependency,
            "required_version": self.required_version,
            "message": self.message,
        }


@dataclass(frozen=True)
class MissingDependency(Conflict):
    """No module with the required name was registered."""

    kind: ClassVar[ConflictKind] = ConflictKind.MISSING

    @property
    def message(self) -> str:
        return (
            f'Module "{self.module}" requires "{self.dependency}" '
            f"v{self.required_version}. But the dependency is missing entirely"
        )


@dataclass(frozen=True)
class VersionMismatch(Conflict):
    """A module with the required name was registered at an incompatible version."""

    kind: ClassVar[ConflictKind] = ConflictKind.MISMATCH

    found_name: str
    found_version: str

    @property
    def message(self) -> str:
        return (
            f'Module "{self.module}" requires "{self.dependency}" '
            f'v{self.required_version}. But "{self.found_name}" '
            f"v{self.found_version} included."
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["found_name"] = self.found_name
        data["found_version"] = self.found_version
        return data


def is_incompatible(required: str, found: semver.Version) -> bool:
    """
    Decide whether a registered version fails a required version.

    The edge fails when the majors differ, or, with matching majors, when
    the required minor is above the found minor or the required patch is
    above the found patch. The patch clause is not gated on the minors
    matching. A required component that does not parse always fails.
    """
    required_major = semver.major(required)
    required_minor = semver.minor(required)
    required_patch = semver.patch(required)
    if required_major is None or required_minor is None or required_patch is None:
        return True

    return (
        found.major != required_major
        or (found.major == required_major and required_minor > found.minor)
        or (found.major == required_major and required_patch > found.patch)
    )


class ModuleRegistry:
    """
    Ordered collection of module declarations for one build.

    Declarations keep their registration order and are never deduplicated;
    only dependency edges can be pruned after registration.
    """

    def __init__(self, reject_duplicate_names: Optional[bool] = None):
        if reject_duplicate_names is None:
            reject_duplicate_names = get_config().check.reject_duplicate_names
        self.reject_duplicate_names = reject_duplicate_names
        self._declarations: List[ModuleDeclaration] = []
        self.error_handler = get_error_handler()

    def __len__(self) -> int:
        return len(self._declarations)

    def __iter__(self) -> Iterator[ModuleDeclaration]:
        return iter(list(self._declarations))

    @property
    def declarations(self) -> List[ModuleDeclaration]:
        return list(self._declarations)

    @property
    def edge_count(self) -> int:
        return sum(len(declaration.dependencies) for declaration in self._declarations)

    def names(self) -> List[str]:
        """Registered module names in registration order."""
        return [declaration.name for declaration in self._declarations]

    def get(self, name: str) -> Optional[ModuleDeclaration]:
        """Return the first declaration registered under ``name``."""
        for declaration in self._declarations:
            if declaration.name == name:
                return declaration
        return None

    def register(
        self,
        name: str,
        version: str,
        dependencies: Optional[DependencySpec] = (),
    ) -> ModuleDeclaration:
        """
        Register a module declaration.

        Args:
            name: Module name
            version: Module version, MAJOR.MINOR.PATCH[-PRERELEASE]
            dependencies: Sequence of (name, version) pairs, or a mapping of
                name to version, in declaration order

        Returns:
            ModuleDeclaration: The appended declaration

        Raises:
            RegistrationError: If any attribute has the wrong type or the
                module version is not valid semver
        """
        try:
            declaration = self._build_declaration(name, version, dependencies)
        except RegistrationError as e:
            self.error_handler.error(
                ErrorCategory.REGISTRATION,
                str(e),
                "registry",
                "register",
                exception=e,
                details={"module_name": name if isinstance(name, str) else None},
            )
            raise

        self._declarations.append(declaration)
        log_module_registered(
            declaration.name, declaration.version_text, len(declaration.dependencies)
        )
        return declaration

    def _build_declaration(
        self, name: Any, version: Any, dependencies: Any
    ) -> ModuleDeclaration:
        if not isinstance(name, str):
            raise _attribute_error(1, "string", name)
        if not name.strip():
            raise RegistrationError(
                "The first attribute of register() needs to be a non-empty "
                "string. It's currently an empty string"
            )
        if not isinstance(version, str):
            raise _attribute_error(2, "string", version)

        parsed = semver.parse(version)
        if parsed is None:
            raise _version_error(version)

        if self.reject_duplicate_names:
            existing = self.get(name)
            if existing is not None:
                raise RegistrationError(
                    f'The module "{name}" has already been registered with '
                    f"v{existing.version_text}"
                )

        refs = [
            DependencyRef(name=dep_name, version=semver.clean(dep_version))
            for dep_name, dep_version in self._dependency_pairs(dependencies)
        ]
        return ModuleDeclaration(
            name=name,
            version=parsed,
            version_text=semver.clean(version),
            dependencies=refs,
        )

    @staticmethod
    def _dependency_pairs(dependencies: Any) -> Iterable[Tuple[str, str]]:
        if isinstance(dependencies, Mapping):
            entries = list(dependencies.items())
        elif isinstance(dependencies, (list, tuple)):
            entries = list(dependencies)
        else:
            raise _attribute_error(3, "list", dependencies)

        pairs = []
        for entry in entries:
            if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                raise _attribute_error(3, "list of (name, version) pairs", entry)
            dep_name, dep_version = entry
            if not isinstance(dep_name, str) or not dep_name.strip():
                raise _attribute_error(3, "list of (name, version) pairs", dep_name)
            if not isinstance(dep_version, str):
                raise _attribute_error(3, "list of (name, version) pairs", dep_version)
            pairs.append((dep_name, dep_version))
        return pairs

    def remove_dependency_edges(self, target_name: str) -> int:
        """
        Drop every dependency edge that points at ``target_name``.

        Used when a module is known to have no presence to validate against.
        Declarations, their order and their names are untouched.

        Returns:
            int: Number of edges removed
        """
        before = self.edge_count
        self._declarations = [
            declaration.without_dependency(target_name)
            for declaration in self._declarations
        ]
        removed = before - self.edge_count
        log_dependency_edges_removed(target_name, removed)
        return removed

    def find_conflict(self) -> Optional[Conflict]:
        """
        Scan every dependency edge and return the first conflict, if any.

        Every declaration whose name matches a required module is compared
        in registration order; the first incompatible one is reported. An
        edge with no matching declaration is reported as missing.
        """
        for declaration in self._declarations:
            for ref in declaration.dependencies:
                found = False
                for candidate in self._declarations:
                    if candidate.name != ref.name:
                        continue
                    found = True
                    if is_incompatible(ref.version, candidate.version):
                        return VersionMismatch(
                            module=declaration.name,
                            dependency=ref.name,
                            required_version=ref.version,
                            found_name=candidate.name,
                            found_version=candidate.version_text,
                        )
                if not found:
                    return MissingDependency(
                        module=declaration.name,
                        dependency=ref.name,
                        required_version=ref.version,
                    )
        return None

    def check(self) -> None:
        """
        Validate every dependency edge against the registered modules.

        Raises:
            DependencyConflictError: For the first missing or incompatible
                dependency, carrying the typed conflict
        """
        log_check_started(len(self._declarations), self.edge_count)

        conflict = self.find_conflict()
        if conflict is None:
            log_check_passed(len(self._declarations), self.edge_count)
            return

        log_dependency_conflict(conflict.kind.value, conflict.module, conflict.dependency)
        error = DependencyConflictError(conflict)
        self.error_handler.error(
            ErrorCategory.RESOLUTION,
            conflict.message,
            "registry",
            "check",
            exception=error,
            details=conflict.to_dict(),
        )
        raise error

    def dispose(self) -> None:
        """Forget every declaration so the registry can be dropped or reused."""
        self._declarations.clear()


def new_registry(reject_duplicate_names: Optional[bool] = None) -> ModuleRegistry:
    """Create an empty registry for one build."""
    return ModuleRegistry(reject_duplicate_names=reject_duplicate_names)


@contextmanager
def registry_scope(
    reject_duplicate_names: Optional[bool] = None,
) -> Iterator[ModuleRegistry]:
    """Provide a fresh registry for one build and dispose of it afterwards."""
    registry = new_registry(reject_duplicate_names)
    try:
        yield registry
    finally:
        registry.dispose()
