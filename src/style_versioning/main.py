import json
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence

import click
from rich.console import Console
from rich.panel import Panel

from . import semver as semver_engine
from .cli_config import (
    build_config,
    create_sample_config,
    get_config,
    load_config,
    load_config_file,
    validate_config_values,
)
from .dependency import ModuleDeclaration
from .error_handling import (
    DependencyConflictError,
    InvalidComparatorError,
    InvalidVersionError,
    RegistrationError,
    setup_error_handling,
)
from .fixtures import discover_fixtures, run_fixtures
from .manifests import Manifest, apply_manifests, load_manifest
from .registry import Conflict, registry_scope
from .reporting import CheckReporter
from .structured_logging import (
    clear_build_context,
    configure_logging,
    set_build_context,
)

__version__ = "0.5.0"

console = Console()

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def load_manifests(files: Sequence[str]) -> List[Manifest]:
    """Load every manifest, turning read and parse failures into CLI errors."""
    try:
        return [load_manifest(file_path) for file_path in files]
    except ValueError as e:
        raise click.ClickException(f"Failed to read manifest: {str(e)}")


def declaration_to_dict(declaration: ModuleDeclaration) -> dict:
    return {
        "name": declaration.name,
        "version": declaration.version_text,
        "dependencies": [
            {"name": ref.name, "version": ref.version}
            for ref in declaration.dependencies
        ],
    }


def output_json_result(
    files: Sequence[str],
    declarations: List[ModuleDeclaration],
    conflict: Optional[Conflict] = None,
    registration_error: Optional[str] = None,
) -> None:
    """Export a check outcome as JSON."""
    error = None
    if conflict is not None:
        error = conflict.to_dict()
    elif registration_error is not None:
        error = {"kind": "registration", "message": registration_error}

    result = {
        "files": list(files),
        "modules": [declaration_to_dict(declaration) for declaration in declarations],
        "success": error is None,
        "error": error,
    }

    print(json.dumps(result, indent=2, ensure_ascii=False))


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    help="Override the configured log level",
)
@click.pass_context
def cli(ctx, version, log_level):
    """
    📦 style-versioning: versioned dependencies for style modules

    Validates that every module a build declares finds the modules it
    depends on, at compatible versions, before any output is produced.
    """
    if version:
        console.print(f"style-versioning version {__version__}", style="bold blue")
        ctx.exit()

    config = load_config()
    level = (log_level or config.logging.log_level).upper()
    configure_logging(level, config.logging.enable_json)
    setup_error_handling(log_level=getattr(logging, level, logging.WARNING))

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@cli.command()
@click.argument(
    "files",
    nargs=-1,
    type=click.Path(exists=True, readable=True, dir_okay=False),
    required=True,
)
@click.option(
    "--output-format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default="console",
    help="Output format for results",
    show_default=True,
)
@click.option("--quiet", "-q", is_flag=True, help="Only print the diagnostic, if any")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Also print the registered modules",
)
def check(files: tuple, output_format: str, quiet: bool, verbose: bool) -> None:
    """
    Check module declarations for missing or incompatible dependencies.

    Every module of every FILE is registered in order, the listed edges are
    removed, and then every dependency edge is checked.

    Examples:

      style-versioning check modules.yaml

      style-versioning check core.yaml grid.yaml --output-format json
    """
    manifests = load_manifests(files)
    config = get_config()

    set_build_context(build_id=f"check_{int(time.time())}", source=", ".join(files))
    conflict = None
    registration_error = None
    try:
        with registry_scope() as registry:
            try:
                apply_manifests(registry, manifests)
                if config.check.fail_on_empty and not len(registry):
                    raise click.ClickException("No modules were declared")
                registry.check()
            except RegistrationError as e:
                registration_error = str(e)
            except DependencyConflictError as e:
                conflict = e.conflict
            declarations = registry.declarations
    finally:
        clear_build_context()

    if output_format == "json":
        output_json_result(files, declarations, conflict, registration_error)
    elif registration_error is not None:
        console.print(f"❌ {registration_error}", style="red", markup=False, soft_wrap=True)
    elif not quiet or conflict is not None:
        reporter = CheckReporter(console)
        if quiet:
            console.print(conflict.message, style="red", markup=False, soft_wrap=True)
        else:
            reporter.print_check_result(list(files), declarations, conflict, verbose)

    if conflict is not None or registration_error is not None:
        sys.exit(1)


@cli.command("test")
@click.argument(
    "paths",
    nargs=-1,
    type=click.Path(exists=True, readable=True, dir_okay=False),
)
@click.option(
    "--pattern",
    help="Glob for fixture files (default from config: fixtures.pattern)",
)
@click.option("--quiet", "-q", is_flag=True, help="Only report failing fixtures")
def run_tests(paths: tuple, pattern: Optional[str], quiet: bool) -> None:
    """
    Run fixture manifests and compare their diagnostics with expectations.

    Each fixture's first line names the expected diagnostic, for example
    "# expected: no error".

    Examples:

      style-versioning test

      style-versioning test --pattern "fixtures/*.yml"
    """
    fixture_paths = list(paths) or discover_fixtures(pattern)
    if not fixture_paths:
        raise click.ClickException(
            f"No fixtures found matching {pattern or get_config().fixtures.pattern}"
        )

    reporter = CheckReporter(console)
    if not quiet:
        console.print(
            Panel("🧪 [bold blue]Testing fixtures...[/bold blue]", border_style="blue")
        )

    suite = run_fixtures(fixture_paths)

    if not quiet:
        reporter.print_fixture_results(suite)
    else:
        for result in suite.failed:
            console.print(f"❎  {result.path} failed", style="red", markup=False, soft_wrap=True)

    if not suite.success:
        sys.exit(1)


@cli.group("semver")
def semver_group():
    """Semantic version utilities."""
    pass


@semver_group.command("clean")
@click.argument("version")
def semver_clean(version: str):
    """Print VERSION without leading v/= characters and whitespace."""
    print(semver_engine.clean(version))


@semver_group.command("valid")
@click.argument("version")
def semver_valid(version: str):
    """Print whether VERSION is valid; exits 1 when it is not."""
    is_valid = semver_engine.valid(version)
    print("true" if is_valid else "false")
    if not is_valid:
        sys.exit(1)


@semver_group.command("inc")
@click.argument("version")
@click.argument("release")
@click.option("--preid", help="Prerelease name for the pre* release kinds")
def semver_inc(version: str, release: str, preid: Optional[str]):
    """
    Print VERSION incremented by RELEASE.

    RELEASE is one of major, minor, patch, premajor, preminor, prepatch,
    prerelease.
    """
    bumped = semver_engine.inc(version, release, preid)
    if bumped is None:
        raise click.ClickException(f"Cannot increment '{version}' by '{release}'")
    print(bumped)


@semver_group.command("cmp")
@click.argument("version1")
@click.argument("comparator")
@click.argument("version2")
def semver_cmp(version1: str, comparator: str, version2: str):
    """
    Compare two versions; exits 1 when the comparison is false.

    COMPARATOR is one of ==, !=, >, >=, <, <=, === and !==.
    """
    try:
        result = semver_engine.cmp(version1, comparator, version2)
    except (InvalidVersionError, InvalidComparatorError) as e:
        raise click.ClickException(str(e))

    print("true" if result else "false")
    if not result:
        sys.exit(1)


@cli.command()
def info():
    """Show the manifest format, fixture format and configuration options."""
    info_text = """
[bold blue]📋 Manifest Files:[/bold blue]

• [green].yaml / .yml[/green], [green].json[/green] and [green].toml[/green] documents
• [yellow]modules[/yellow] - list of {name, version, dependencies}
• [yellow]dependencies[/yellow] - map of module name to required version
• [yellow]remove[/yellow] - modules whose dependency edges are dropped before the check

[bold blue]🚨 Diagnostics:[/bold blue]

• [red]Missing[/red] - a required module was never declared
• [red]Mismatch[/red] - the declared version has another major, or a lower minor/patch
• [red]Registration[/red] - a declaration has the wrong types or an invalid version

[bold blue]🧪 Fixtures:[/bold blue]

• First line: [green]# expected: <first line of the diagnostic>[/green]
• Or: [green]# expected: no error[/green]

[bold blue]🔧 Check Settings:[/bold blue]

• [yellow]check.reject_duplicate_names[/yellow] - Refuse a module name declared twice
• [yellow]check.fail_on_empty[/yellow] - Fail `check` when the manifests declare no modules

[bold blue]🌍 Environment Variables:[/bold blue]

• [cyan]STYLE_VERSIONING_DEFAULT_PRERELEASE[/cyan] - Default prerelease name
• [cyan]STYLE_VERSIONING_REJECT_DUPLICATES[/cyan] - Reject re-declared module names
• [cyan]STYLE_VERSIONING_FIXTURE_PATTERN[/cyan] - Default fixture glob
• [cyan]STYLE_VERSIONING_LOG_LEVEL[/cyan] - Log level

[bold blue]📄 Configuration Files:[/bold blue]

• [green].style-versioning.json|yaml|toml[/green] - Project-level config
• [green]~/.config/style-versioning/config.json[/green] - User-level config

[bold blue]💡 Usage Examples:[/bold blue]

  style-versioning check modules.yaml
  style-versioning test "test/*.yaml"
  style-versioning semver inc 1.2.3 prerelease --preid rc
  style-versioning semver cmp 1.2.3 ">=" 1.0.0
"""
    console.print(
        Panel(
            info_text,
            title="[bold]style-versioning Information[/bold]",
            border_style="blue",
        )
    )


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(),
    default=".style-versioning.json",
    help="Path where to create the config file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Create a sample configuration file."""
    config_path = Path(path)

    if config_path.exists() and not force:
        console.print(f"⚠️  Config file already exists at {config_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_sample_config())
    except OSError as e:
        raise click.ClickException(f"Failed to create config file: {e}")

    console.print(f"✅ Created configuration file at {config_path}", style="green")
    console.print("Edit this file to customize your settings", style="dim")


@config.command("show")
def config_show():
    """Show current configuration settings."""
    current_config = get_config()

    console.print(
        Panel("[bold blue]🔧 Configuration[/bold blue]", border_style="blue")
    )

    console.print("\n[bold cyan]🔢 Semver Settings:[/bold cyan]")
    console.print(
        f"  Default Prerelease Name: {current_config.semver.default_prerelease_name}"
    )

    console.print("\n[bold cyan]🔍 Check Settings:[/bold cyan]")
    console.print(
        f"  Reject Duplicate Names: {current_config.check.reject_duplicate_names}"
    )
    console.print(f"  Fail on Empty: {current_config.check.fail_on_empty}")

    console.print("\n[bold cyan]🧪 Fixture Settings:[/bold cyan]")
    console.print(f"  Pattern: {current_config.fixtures.pattern}", markup=False)
    console.print(
        f"  Expected Prefix: {current_config.fixtures.expected_prefix!r}", markup=False
    )
    console.print(f"  No Error Marker: {current_config.fixtures.no_error_marker}")

    console.print("\n[bold cyan]🔒 File Settings:[/bold cyan]")
    console.print(f"  Max File Size: {current_config.security.max_file_size_mb} MB")
    console.print(
        f"  Allowed Extensions: {', '.join(current_config.security.allowed_file_extensions)}"
    )

    console.print("\n[bold cyan]📝 Logging Settings:[/bold cyan]")
    console.print(f"  Log Level: {current_config.logging.log_level}")
    console.print(f"  JSON Logs: {current_config.logging.enable_json}")


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
def config_validate(config_file: str):
    """Validate a configuration file."""
    config_data = load_config_file(Path(config_file))

    if config_data is None:
        console.print(f"❌ Could not load config from {config_file}", style="red")
        sys.exit(1)

    if not isinstance(config_data, dict):
        console.print("❌ Configuration must be a mapping of sections", style="red")
        sys.exit(1)

    errors = validate_config_values(build_config(config_data))
    if errors:
        console.print("❌ Configuration validation failed:", style="red")
        for error in errors:
            console.print(f"  • {error}", style="red", markup=False)
        sys.exit(1)

    console.print(f"✅ Configuration file {config_file} is valid", style="green")


if __name__ == "__main__":
    cli()
