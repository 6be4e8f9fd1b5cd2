"""Shared console and verbosity switches."""

from rich.console import Console  # type: ignore[import]
from rich.markup import escape  # type: ignore[import]

console = Console()

# Global verbosity settings
VERBOSE: bool = False
QUIET: bool = False
DEBUG: bool = False


# Status icons
class Icons:
    SUCCESS = "[green]✓[/green]"
    WARNING = "[yellow]⚠[/yellow]"
    ERROR = "[red]✗[/red]"
    INFO = "[blue]ℹ[/blue]"
    PROGRESS = "[cyan]➤[/cyan]"


def set_verbosity(verbose: bool = False, quiet: bool = False, debug: bool = False) -> None:
    """Set the global verbosity flags"""
    global VERBOSE, QUIET, DEBUG

    VERBOSE = verbose
    QUIET = quiet
    DEBUG = debug


def warn(message: str) -> None:
    """Print a non-fatal warning; shown even in quiet mode"""
    console.print(f"{Icons.WARNING} {escape(message)}")


def success(message: str) -> None:
    if not QUIET:
        console.print(f"{Icons.SUCCESS} {escape(message)}")


def rule(title: str) -> None:
    if not QUIET:
        console.print()
        console.rule(f"[bold blue]{escape(title)}[/bold blue]")
