"""Command-line interface for running feature-driven test classes."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

app = typer.Typer(
    name="featurerunner",
    help="Run test classes through their declared runner features.",
    no_args_is_help=True,
)

console = Console()


@app.command()
def run(
    target: Annotated[
        str,
        typer.Argument(help="module:Class, module, or path/to/file.py[:Class]."),
    ],
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to runner settings YAML file.",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", "-l", help="Override the configured log level."),
    ] = None,
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Render logs as JSON."),
    ] = False,
) -> None:
    """Run every test method of the target classes."""
    from featurerunner.config.loader import load_settings
    from featurerunner.engine import ClassRunner
    from featurerunner.engine.discovery import load_test_classes
    from featurerunner.engine.reporter import ConsoleReporter
    from featurerunner.exceptions import FeatureRunnerError
    from featurerunner.utils.logging import configure_logging

    try:
        settings = load_settings(config)
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    configure_logging(
        level=log_level or settings.log_level.value,
        json_output=json_logs or settings.json_logs,
    )

    try:
        classes = load_test_classes(target, settings)
    except (ImportError, LookupError, FileNotFoundError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    if not classes:
        console.print(f"[yellow]No test classes found in {target}[/yellow]")
        raise typer.Exit(code=1)

    reporter = ConsoleReporter(console)
    failed = False
    for test_class in classes:
        try:
            summary = ClassRunner(test_class, settings).run()
        except FeatureRunnerError as e:
            console.print(f"[red]{test_class.__qualname__}: {escape(str(e))}[/red]")
            failed = True
            continue
        reporter.print_summary(summary)
        failed = failed or not summary.ok

    if failed:
        raise typer.Exit(code=1)


@app.command()
def graph(
    target: Annotated[
        str,
        typer.Argument(help="module:Class, module, or path/to/file.py[:Class]."),
    ],
) -> None:
    """Show the resolved feature order of the target classes."""
    from featurerunner.engine.discovery import load_test_classes
    from featurerunner.engine.reporter import ConsoleReporter
    from featurerunner.exceptions import FeatureRunnerError
    from featurerunner.graph import FeatureGraphResolver

    try:
        classes = load_test_classes(target)
    except (ImportError, LookupError, FileNotFoundError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    reporter = ConsoleReporter(console)
    resolver = FeatureGraphResolver()
    for test_class in classes:
        try:
            resolved = resolver.resolve(test_class)
        except FeatureRunnerError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            raise typer.Exit(code=1) from e
        reporter.print_graph(resolved, resolver)


@app.command()
def version() -> None:
    """Show version information."""
    from featurerunner import __version__

    console.print(f"featurerunner version {__version__}")


if __name__ == "__main__":
    app()
