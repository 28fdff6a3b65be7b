"""Rich consoles shared by the CLI and the output helpers.

Normal output goes to stdout; errors go to a separate stderr console so
piped output (``encore likes | ...``) stays clean.
"""

from typing import Iterable, Sequence

from rich.console import Console
from rich.table import Table

_console: Console | None = None
_err_console: Console | None = None


def get_console(stderr: bool = False) -> Console:
    """Get (creating on first use) the stdout or stderr console."""
    global _console, _err_console
    if stderr:
        if _err_console is None:
            _err_console = Console(stderr=True)
        return _err_console
    if _console is None:
        _console = Console()
    return _console


def safe_print(message: str, style: str | None = None) -> None:
    """Print a line, routing error styles to stderr."""
    console = get_console(stderr=bool(style) and "red" in style)
    console.print(message, style=style)


def print_table(
    title: str, columns: Sequence[tuple[str, str | None]], rows: Iterable[Sequence[str]]
) -> None:
    """Render rows as a table; ``columns`` is ``(header, style)`` pairs."""
    table = Table(title=title)
    for header, style in columns:
        table.add_column(header, style=style)
    for row in rows:
        table.add_row(*row)
    get_console().print(table)
