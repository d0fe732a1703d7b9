from dataclasses import dataclass, field, replace
from typing import List

from .semver import Version


@dataclass(frozen=True)
class DependencyRef:
    """A (module name, required version) edge inside one declaration."""

    name: str
    version: str


@dataclass(frozen=True)
class ModuleDeclaration:
    """A named, versioned module and the modules it requires, in order.

    ``version_text`` is the version as registered, cleaned but not
    re-rendered, so diagnostics quote it the way it was written.
    """

    name: str
    version: Version
    version_text: str
    dependencies: List[DependencyRef] = field(default_factory=list)

    def without_dependency(self, name: str) -> "ModuleDeclaration":
        """Return a copy of this declaration with every edge to ``name`` dropped."""
        return replace(
            self,
            dependencies=[ref for ref in self.dependencies if ref.name != name],
        )
