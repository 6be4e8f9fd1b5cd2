import subprocess
from typing import Any, List, Optional

from . import console as output
from .console import Icons, console
from .errors import ReleaseError


def run_command(
    cmd: List[str],
    check: bool = True,
    capture_output: bool = True,
    show_output: Optional[bool] = None,
    **kwargs: Any,
) -> subprocess.CompletedProcess[str]:
    """Run a command with error handling"""
    # Determine if we should show output based on verbosity settings
    if show_output is None:
        show_output = output.VERBOSE

    if show_output and not output.QUIET:
        console.print(f"[dim]Running: {' '.join(cmd)}[/dim]")

    try:
        return subprocess.run(
            cmd, check=check, capture_output=capture_output, text=True, **kwargs
        )
    except subprocess.CalledProcessError as e:
        if capture_output:
            if not output.QUIET:
                console.print(f"{Icons.ERROR} Command failed: {' '.join(cmd)}")
            if e.stdout and (output.VERBOSE or output.DEBUG):
                console.print(f"[yellow]stdout:[/yellow] {e.stdout}")
            if e.stderr:
                console.print(f"[red]stderr:[/red] {e.stderr}")
        raise ReleaseError(f"Command failed: {' '.join(cmd)}") from e
    except FileNotFoundError as e:
        raise ReleaseError(f"Command not found: {cmd[0]}") from e
