"""
Console reporter for class runs.

Formats run summaries and feature graphs using Rich.
"""

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from featurerunner.engine.class_runner import RunSummary
from featurerunner.exceptions import AggregatedFailure
from featurerunner.graph import FeatureGraph, FeatureGraphResolver
from featurerunner.notifier import MethodResult, Outcome


class ConsoleReporter:
    """Formats and displays run results to the console."""

    def __init__(self, console: Console) -> None:
        """
        Initialize console reporter.

        Args:
            console: Rich Console instance for output.
        """
        self.console = console

    def print_summary(self, summary: RunSummary) -> None:
        """
        Print the results of one class run as a table.

        Args:
            summary: Result of ClassRunner.run().
        """
        table = Table(title=f"{summary.test_class.__qualname__}", show_header=True)
        table.add_column("Test", style="cyan", no_wrap=True)
        table.add_column("Status", justify="center")
        table.add_column("Time", justify="right")
        table.add_column("Details", style="dim")

        for result in summary.results:
            table.add_row(
                result.description.method_name or result.description.display_name,
                self._format_status(result),
                f"{result.duration:.3f}s",
                self._format_details(result),
            )

        self.console.print(table)
        self._print_class_outcome(summary)

    def _format_status(self, result: MethodResult) -> str:
        if result.outcome is Outcome.PASSED:
            return "[green]Pass[/green]"
        if result.outcome is Outcome.SKIPPED:
            return "[yellow]Skipped[/yellow]"
        return "[red]Fail[/red]"

    def _format_details(self, result: MethodResult) -> str:
        if result.error is None:
            return ""
        error = result.error
        if isinstance(error, AggregatedFailure):
            names = ", ".join(i.__qualname__ for i in error.identities)
            return f"{error.phase.value} failed in {names}"
        details = f"{type(error).__name__}: {error!s}"
        details = details if len(details) <= 80 else details[:77] + "..."
        return escape(details)

    def _print_class_outcome(self, summary: RunSummary) -> None:
        counts = (
            f"[green]{summary.passed} passed[/green], "
            f"[red]{summary.failed} failed[/red], "
            f"[yellow]{summary.skipped} skipped[/yellow]"
        )
        self.console.print(counts)
        if summary.skipped_reason is not None:
            self.console.print(f"[yellow]Class skipped: {escape(summary.skipped_reason)}[/yellow]")
        if summary.error is not None:
            error = escape(f"{type(summary.error).__name__}: {summary.error!s}")
            self.console.print(f"[red]Class run failed: {error}[/red]")

    def print_graph(self, graph: FeatureGraph, resolver: FeatureGraphResolver) -> None:
        """
        Print the resolved features of a class with their direct requirements.

        Args:
            graph: Resolved graph.
            resolver: Resolver used to read requirements.
        """
        table = Table(title=f"Features of {graph.root.__qualname__}", show_header=True)
        table.add_column("#", justify="right")
        table.add_column("Feature", style="cyan")
        table.add_column("Requires", style="blue")

        for position, identity in enumerate(graph, start=1):
            required = resolver.requirements_of(identity)
            table.add_row(
                str(position),
                identity.__qualname__,
                ", ".join(r.__qualname__ for r in required) or "-",
            )

        self.console.print(table)
        if not len(graph):
            self.console.print("[dim]No features declared[/dim]")
