"""
Declaration manifest parsing.

A manifest lists module declarations in the order a build registers them,
plus the modules whose dependency edges should be pruned before the check:

    modules:
      - name: core
        version: 2.0.0
      - name: grid
        version: 1.1.0
        dependencies:
          core: 2.0.0
    remove:
      - buttons

YAML, JSON and TOML documents share this shape. Entry values are handed to
the registry untouched so that registration diagnostics surface verbatim.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

import toml
import yaml

from .cli_config import get_config
from .error_handling import ManifestError, log_parsing_error
from .registry import ModuleRegistry


@dataclass(frozen=True)
class ModuleEntry:
    """One module declaration as written in a manifest."""

    name: Any
    version: Any
    dependencies: Any = ()


@dataclass
class Manifest:
    """Module declarations and edge removals read from one document."""

    source: str
    modules: List[ModuleEntry] = field(default_factory=list)
    removals: List[str] = field(default_factory=list)
    expected: Optional[str] = None


def _validate_file_path(file_path: str) -> Path:
    """
    Validate a manifest path.

    Args:
        file_path: The file path to validate

    Returns:
        Path: Validated and resolved path object

    Raises:
        ValueError: If path is invalid, missing, too large or of a
            disallowed type
    """
    if not file_path or not isinstance(file_path, (str, Path)):
        raise ValueError("File path must be a non-empty string")

    try:
        path = Path(file_path).resolve()
    except (OSError, ValueError) as e:
        raise ValueError(f"Invalid file path: {e}")

    if not path.exists():
        raise ValueError(f"File does not exist: {path}")

    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")

    config = get_config()
    allowed_extensions = {ext.lower() for ext in config.security.allowed_file_extensions}
    if path.suffix.lower() not in allowed_extensions:
        raise ValueError(f"File type not allowed: {path.suffix}")

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise ValueError(f"Cannot access file: {e}")

    max_file_size = config.security.max_file_size_bytes
    if file_size > max_file_size:
        raise ValueError(f"File too large: {file_size} bytes (max: {max_file_size})")

    return path


def detect_file_type(file_path: str) -> str:
    """
    Detect the manifest format based on the file suffix.

    Raises:
        ValueError: If the suffix is not a supported manifest format
    """
    suffix = Path(file_path).suffix.lower()
    file_type_map = {
        ".yaml": "yaml",
        ".yml": "yaml",
        ".json": "json",
        ".toml": "toml",
    }

    if suffix in file_type_map:
        return file_type_map[suffix]

    raise ValueError(f"Unsupported file type: {Path(file_path).name}")


def split_expected_line(text: str, prefix: str) -> Tuple[Optional[str], str]:
    """
    Pull an expectation such as ``# expected: no error`` off the first line.

    The first line is blanked rather than removed so that parser line
    numbers still match the file.
    """
    first_line, newline, rest = text.partition("\n")
    if not first_line.startswith(prefix):
        return None, text
    expected = first_line[len(prefix):].rstrip("\r")
    return expected, newline + rest


def parse_manifest_text(
    text: str, file_type: str, source: str = "<string>"
) -> Manifest:
    """
    Parse manifest text of the given format.

    Args:
        text: Document text
        file_type: One of yaml, json, toml
        source: Name used in diagnostics

    Raises:
        ManifestError: If the document is malformed
    """
    expected, body = split_expected_line(text, get_config().fixtures.expected_prefix)

    try:
        if file_type == "yaml":
            data = yaml.safe_load(body)
        elif file_type == "json":
            data = json.loads(body) if body.strip() else None
        elif file_type == "toml":
            data = toml.loads(body)
        else:
            raise ManifestError(f"Unsupported manifest format: {file_type}")
    except (yaml.YAMLError, ValueError) as e:
        if isinstance(e, ManifestError):
            raise
        log_parsing_error(
            f"Invalid {file_type.upper()} manifest: {e}",
            "manifests",
            "parse_manifest_text",
            file_path=source,
            exception=e,
        )
        raise ManifestError(f"Invalid {file_type.upper()} in {source}: {e}") from e

    manifest = manifest_from_data(data, source)
    if expected is not None:
        manifest.expected = expected
    return manifest


def manifest_from_data(data: Any, source: str = "<data>") -> Manifest:
    """
    Build a Manifest from an already-decoded document.

    Raises:
        ManifestError: If the document does not have the manifest shape
    """
    if data is None:
        return Manifest(source=source)

    if not isinstance(data, dict):
        raise ManifestError(
            f"{source}: a manifest must be a mapping with a 'modules' list"
        )

    modules = data.get("modules") or []
    if not isinstance(modules, list):
        raise ManifestError(f"{source}: 'modules' must be a list")

    entries = []
    for index, entry in enumerate(modules, 1):
        if not isinstance(entry, dict):
            raise ManifestError(f"{source}: module entry {index} must be a mapping")
        dependencies = entry.get("dependencies")
        entries.append(
            ModuleEntry(
                name=entry.get("name"),
                version=entry.get("version"),
                dependencies=() if dependencies is None else dependencies,
            )
        )

    removals = data.get("remove") or []
    if not isinstance(removals, list) or not all(
        isinstance(name, str) for name in removals
    ):
        raise ManifestError(f"{source}: 'remove' must be a list of module names")

    expected = data.get("expected")
    if expected is not None and not isinstance(expected, str):
        raise ManifestError(f"{source}: 'expected' must be a string")

    return Manifest(
        source=source, modules=entries, removals=list(removals), expected=expected
    )


def load_manifest(file_path: str) -> Manifest:
    """
    Read and parse a manifest file.

    Raises:
        ValueError: If the path is not an acceptable manifest file
        ManifestError: If the document is malformed
    """
    validated_path = _validate_file_path(str(file_path))
    file_type = detect_file_type(str(validated_path))

    try:
        text = validated_path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        raise ValueError("File contains invalid UTF-8 characters")
    except PermissionError:
        raise ValueError("Permission denied reading file")
    except OSError as e:
        raise ValueError(f"Error reading file: {e}")

    return parse_manifest_text(text, file_type, source=str(file_path))


def apply_manifests(registry: ModuleRegistry, manifests: Iterable[Manifest]) -> None:
    """
    Register every module of every manifest, then prune the listed edges.

    Registration errors propagate unchanged.
    """
    manifests = list(manifests)
    for manifest in manifests:
        for entry in manifest.modules:
            registry.register(entry.name, entry.version, entry.dependencies)

    for manifest in manifests:
        for name in manifest.removals:
            registry.remove_dependency_edges(name)


def apply_manifest(registry: ModuleRegistry, manifest: Manifest) -> None:
    """Register one manifest's modules and prune its listed edges."""
    apply_manifests(registry, [manifest])
