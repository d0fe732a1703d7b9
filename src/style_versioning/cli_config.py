"""
Configuration management for style-versioning.

Provides configurable settings for the semver engine, the dependency check,
the fixture harness, file handling and logging.
"""

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml
import yaml
from rich.console import Console

console = Console(stderr=True)

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
_SECTIONS = ("semver", "check", "fixtures", "security", "logging")
_CONFIG_SUFFIXES = (".json", ".yaml", ".yml", ".toml")


@dataclass
class SemverConfig:
    """Semver engine defaults."""

    default_prerelease_name: str = "beta"


@dataclass
class CheckConfig:
    """Dependency check behaviour."""

    reject_duplicate_names: bool = False
    fail_on_empty: bool = False


@dataclass
class FixtureConfig:
    """Fixture harness configuration."""

    pattern: str = "test/*.yaml"
    expected_prefix: str = "# expected: "
    no_error_marker: str = "no error"


@dataclass
class SecurityConfig:
    """File validation configuration."""

    max_file_size_mb: int = 10
    allowed_file_extensions: List[str] = field(
        default_factory=lambda: [".yaml", ".yml", ".json", ".toml"]
    )

    @property
    def max_file_size_bytes(self) -> int:
        """The size limit in bytes."""
        return self.max_file_size_mb * 1024 * 1024


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = "WARNING"
    enable_json: bool = True


@dataclass
class ComprehensiveConfig:
    """All configuration sections."""

    semver: SemverConfig = field(default_factory=SemverConfig)
    check: CheckConfig = field(default_factory=CheckConfig)
    fixtures: FixtureConfig = field(default_factory=FixtureConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested dictionary, as written by ``config init``."""
        return asdict(self)


# Resolved once per process; see load_config()
_global_config: Optional[ComprehensiveConfig] = None


def validate_config_values(config: ComprehensiveConfig) -> List[str]:
    """
    Check every section for values the tool cannot use.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: One "section.key ..." message per problem; empty when valid
    """
    errors = []

    if not isinstance(config.semver.default_prerelease_name, str) or not (
        config.semver.default_prerelease_name.strip()
    ):
        errors.append("semver.default_prerelease_name must be a non-empty string")
    elif "-" in config.semver.default_prerelease_name:
        errors.append("semver.default_prerelease_name must not contain '-'")

    if not config.fixtures.pattern:
        errors.append("fixtures.pattern must not be empty")
    if not config.fixtures.expected_prefix:
        errors.append("fixtures.expected_prefix must not be empty")
    if not config.fixtures.no_error_marker:
        errors.append("fixtures.no_error_marker must not be empty")

    max_file_size_mb = config.security.max_file_size_mb
    if not isinstance(max_file_size_mb, int) or max_file_size_mb <= 0:
        errors.append("security.max_file_size_mb must be a positive integer")
    for extension in config.security.allowed_file_extensions:
        if not str(extension).startswith("."):
            errors.append(f"security.allowed_file_extensions entry '{extension}' must start with '.'")

    if str(config.logging.log_level).upper() not in _LOG_LEVELS:
        errors.append(f"logging.log_level must be one of {', '.join(_LOG_LEVELS)}")

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """
    Read a YAML, JSON or TOML config file.

    Returns None when the file is missing, has another suffix or does not
    decode; decode problems are printed as warnings.
    """
    if not config_path.exists():
        return None

    loaders = {
        ".yaml": yaml.safe_load,
        ".yml": yaml.safe_load,
        ".json": json.load,
        ".toml": toml.load,
    }
    loader = loaders.get(config_path.suffix.lower())
    if loader is None:
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            return loader(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(
            f"⚠️  Could not read config {config_path}: {e}", style="yellow"
        )
        return None


def config_search_paths() -> List[Path]:
    """Candidate config files, project-level first."""
    project = [Path.cwd() / f".style-versioning{ext}" for ext in _CONFIG_SUFFIXES]
    user_dir = Path.home() / ".config" / "style-versioning"
    user = [user_dir / f"config{ext}" for ext in _CONFIG_SUFFIXES]
    return project + user


def find_config_file() -> Optional[Path]:
    return next((path for path in config_search_paths() if path.exists()), None)


def _env_bool(key: str, default: bool) -> bool:
    value = os.environ.get(key, "").strip().lower()
    if not value:
        return default
    return value in ("true", "1", "yes", "on")


def _env_int(key: str) -> Optional[int]:
    if key not in os.environ:
        return None
    try:
        return int(os.environ[key])
    except ValueError:
        console.print(f"⚠️  Ignoring non-integer {key}={os.environ[key]!r}", style="yellow")
        return None


def load_environment_overrides(config: ComprehensiveConfig) -> None:
    """Apply ``STYLE_VERSIONING_*`` environment variables on top of ``config``."""
    env = os.environ

    if env.get("STYLE_VERSIONING_DEFAULT_PRERELEASE"):
        config.semver.default_prerelease_name = env["STYLE_VERSIONING_DEFAULT_PRERELEASE"]

    config.check.reject_duplicate_names = _env_bool(
        "STYLE_VERSIONING_REJECT_DUPLICATES", config.check.reject_duplicate_names
    )

    if env.get("STYLE_VERSIONING_FIXTURE_PATTERN"):
        config.fixtures.pattern = env["STYLE_VERSIONING_FIXTURE_PATTERN"]
    if env.get("STYLE_VERSIONING_EXPECTED_PREFIX"):
        config.fixtures.expected_prefix = env["STYLE_VERSIONING_EXPECTED_PREFIX"]

    max_file_size_mb = _env_int("STYLE_VERSIONING_MAX_FILE_SIZE_MB")
    if max_file_size_mb is not None:
        config.security.max_file_size_mb = max_file_size_mb

    if env.get("STYLE_VERSIONING_LOG_LEVEL"):
        config.logging.log_level = env["STYLE_VERSIONING_LOG_LEVEL"].upper()


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """Copy known keys of one file section onto its dataclass; warn about the rest."""
    if not isinstance(section_data, dict):
        console.print(
            f"⚠️  Config section {section_name} must be a mapping, ignoring it",
            style="yellow",
        )
        return

    known = {f.name for f in fields(config)}
    for key, value in section_data.items():
        if key in known:
            setattr(config, key, value)
        else:
            console.print(
                f"⚠️  Ignoring unknown key {section_name}.{key}", style="yellow"
            )


def build_config(file_config: Optional[Dict[str, Any]] = None) -> ComprehensiveConfig:
    """Build a configuration from an already-loaded file mapping."""
    config = ComprehensiveConfig()

    for section_name in _SECTIONS:
        if file_config and section_name in file_config:
            apply_config_section(
                getattr(config, section_name), file_config[section_name], section_name
            )

    return config


def load_config() -> ComprehensiveConfig:
    """
    Resolve the configuration once per process.

    Defaults, then the first config file found, then environment overrides.
    Sections that fail validation fall back to their defaults.
    """
    global _global_config

    if _global_config is not None:
        return _global_config

    config_file = find_config_file()
    file_config = load_config_file(config_file) if config_file else None
    if file_config is not None and not isinstance(file_config, dict):
        console.print(f"⚠️  Config {config_file} is not a mapping, ignoring it", style="yellow")
        file_config = None

    config = build_config(file_config)
    load_environment_overrides(config)

    problems = validate_config_values(config)
    if problems:
        console.print("⚠️  Invalid configuration:", style="red")
        for problem in problems:
            console.print(f"  • {problem}", style="red", markup=False)
        console.print("Falling back to defaults for those sections.", style="yellow")
        config = _replace_invalid_sections(config)

    _global_config = config
    return config


def _replace_invalid_sections(config: ComprehensiveConfig) -> ComprehensiveConfig:
    """Swap every section that fails validation for its defaults."""
    defaults = ComprehensiveConfig()
    for section_name in _SECTIONS:
        candidate = ComprehensiveConfig()
        setattr(candidate, section_name, getattr(config, section_name))
        if any(error.startswith(f"{section_name}.") for error in validate_config_values(candidate)):
            setattr(config, section_name, getattr(defaults, section_name))
    return config


def get_config() -> ComprehensiveConfig:
    return load_config()


def set_config(config: ComprehensiveConfig) -> None:
    """Install a configuration directly, bypassing files and environment."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Forget the resolved configuration so the next access reloads it."""
    global _global_config
    _global_config = None


def create_sample_config() -> str:
    """The default configuration as JSON, for ``config init``."""
    return json.dumps(ComprehensiveConfig().to_dict(), indent=2)
