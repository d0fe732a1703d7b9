"""
Reporting and output formatting for dependency checks and fixture runs.

Provides color-coded console output using Rich library.
"""

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .dependency import ModuleDeclaration
from .fixtures import FixtureResult, FixtureSuiteResult
from .registry import Conflict


class CheckReporter:
    """Formats and displays check outcomes and fixture results."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_check_result(
        self,
        files: List[str],
        declarations: List[ModuleDeclaration],
        conflict: Optional[Conflict],
        verbose: bool = False,
    ) -> None:
        """
        Print the outcome of a dependency check.

        Args:
            files: Manifest files that were checked
            declarations: Registered declarations, in order
            conflict: The conflict that stopped the check, if any
            verbose: Also print the module table
        """
        if verbose:
            self._print_modules(declarations)

        edge_count = sum(len(declaration.dependencies) for declaration in declarations)

        if conflict is None:
            self.console.print(
                Panel(
                    f"✅ {len(declarations)} modules, {edge_count} dependencies satisfied.",
                    title="[bold green]✅ Dependency Check[/bold green]",
                    border_style="green",
                )
            )
            return

        self.console.print(
            f"❌ {conflict.kind.value.title()} dependency:", style="bold red"
        )
        self.console.print(conflict.message, style="red", markup=False, soft_wrap=True)
        self.console.print(
            f"[dim]Checked {', '.join(files)}[/dim]" if files else "[dim]No files[/dim]"
        )

    def _print_modules(self, declarations: List[ModuleDeclaration]) -> None:
        """Print the registered modules in registration order."""
        table = Table(title="📦 Registered Modules", box=box.ROUNDED, title_style="bold cyan")
        table.add_column("Module", style="bold")
        table.add_column("Version", justify="center")
        table.add_column("Requires")

        for declaration in declarations:
            requires = ", ".join(
                f"{ref.name} v{ref.version}" for ref in declaration.dependencies
            )
            table.add_row(declaration.name, declaration.version_text, requires or "-")

        self.console.print(table)
        self.console.print()

    def print_fixture_results(self, suite: FixtureSuiteResult) -> None:
        """Print one line per fixture, details for failures and a summary."""
        for result in suite.results:
            self._print_fixture(result)

        duration_seconds = suite.duration_ms / 1000
        summary = (
            f"{len(suite.passed)} passed, {len(suite.failed)} failed "
            f"in {duration_seconds:.2f} seconds"
        )

        if suite.success:
            self.console.print(f"\n[bold green]✅ {summary}[/bold green]")
        else:
            self.console.print(f"\n[bold red]❎ {summary}[/bold red]")

    def _print_fixture(self, result: FixtureResult) -> None:
        if result.passed:
            self.console.print(f"✅  {result.path} passed", style="green", markup=False, soft_wrap=True)
            return

        self.console.print(f"❎  {result.path} failed", style="red", markup=False, soft_wrap=True)
        self.console.print("  Error was:")
        self.console.print(f"    {result.actual}", style="yellow", markup=False, soft_wrap=True)
        self.console.print("  Should've:")
        expected = result.expected if result.expected is not None else "(no expectation line)"
        self.console.print(f"    {expected}", style="yellow", markup=False, soft_wrap=True)
