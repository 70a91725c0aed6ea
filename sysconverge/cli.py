"""
Sysconverge CLI - Declarative sysadmin account convergence.
"""

import logging
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.panel import Panel

from .core import SysconvergeCore
from .errors import SysconvergeError
from .formatters import ReportFormatter
from .settings import get_settings

# Setup
app = typer.Typer(
    name="sysconverge",
    help="Declarative convergence of local sysadmin accounts",
    add_completion=False,
)
console = Console()


def configure_logging():
    """Configure logging based on settings."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.callback()
def main():
    """Configure logging before any command runs."""
    configure_logging()


# Helper functions to reduce duplication across commands
def _get_main_file(file: Path | None) -> Path:
    """Resolve the declaration file, main.py in the current directory by default.

    Raises:
        typer.Exit: If the file is not found
    """
    main_file = file or Path.cwd() / "main.py"
    if not main_file.exists():
        console.print(
            f"[bold red]✗ Error:[/bold red] No {main_file.name} found"
        )
        console.print(
            "[dim]Hint: cd into the directory that contains main.py or pass --file[/dim]"
        )
        raise typer.Exit(code=1)
    return main_file


def _create_command_panel(title: str, color: str, main_file: Path) -> Panel:
    settings = get_settings()
    return Panel.fit(
        f"[bold {color}]{title}[/bold {color}]\n"
        f"Declarations: {main_file}\n"
        f"OS family: {settings.os_family}",
        border_style=color,
    )


def _handle_command_error(e: Exception, command_type: str) -> NoReturn:
    """Print a fatal error and exit with code 1."""
    console.print(
        f"\n[bold red]✗ {command_type.capitalize()} failed:[/bold red] {e}"
    )
    raise typer.Exit(code=1)


FILE_OPTION = typer.Option(
    None, "--file", "-f", help="Declaration file (default: ./main.py)"
)


@app.command()
def apply(file: Path = FILE_OPTION):
    """Converge the host to the declared sysadmin accounts."""
    main_file = _get_main_file(file)
    console.print(_create_command_panel("Sysconverge Apply", "blue", main_file))

    try:
        report = SysconvergeCore().apply(main_file)
    except (SysconvergeError, FileNotFoundError, ImportError) as e:
        _handle_command_error(e, "apply")

    ReportFormatter(console).print_report(report)
    if report.success:
        console.print("\n[bold green]✓ Converged[/bold green]")
    else:
        console.print("\n[bold red]✗ Some resources did not converge[/bold red]")
        raise typer.Exit(code=1)


@app.command()
def plan(file: Path = FILE_OPTION):
    """Show what apply would change, without changing anything."""
    main_file = _get_main_file(file)
    console.print(_create_command_panel("Sysconverge Plan", "cyan", main_file))

    try:
        entries = SysconvergeCore().plan(main_file)
    except (SysconvergeError, FileNotFoundError, ImportError) as e:
        _handle_command_error(e, "plan")

    ReportFormatter(console).print_plan(entries)
    console.print("\n[dim]Run 'sysconverge apply' to converge.[/dim]")


@app.command()
def version():
    """Show Sysconverge version."""
    from . import __version__

    console.print(f"Sysconverge version: [bold]{__version__}[/bold]")


if __name__ == "__main__":
    app()
